"""caseflow: legal case lifecycle and multi-party workflow engine."""

__version__ = "0.1.0"
