"""Test fixtures for caseflow tests.

Provides fixtures for:
- Sample accounts and party identities
- SQL document store on SQLite
"""

from .sample_data import *
from .database import *
