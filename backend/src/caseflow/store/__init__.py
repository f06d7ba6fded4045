"""Document store adapters.

Usage:
    from caseflow.store import get_document_store, FieldFilter

    store = get_document_store()
    case_id = await store.create("cases", {"title": "Rao v. Mehta"})
    await store.update("cases", case_id, {"status": "filed"})
"""

from .base import (
    SERVER_TIMESTAMP,
    ArrayAppend,
    ArrayUnion,
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    FieldFilter,
    PreconditionMismatch,
    StoreError,
)
from .memory import InMemoryDocumentStore

__all__ = [
    "SERVER_TIMESTAMP",
    "ArrayAppend",
    "ArrayUnion",
    "DocumentExists",
    "DocumentNotFound",
    "DocumentStore",
    "FieldFilter",
    "InMemoryDocumentStore",
    "PreconditionMismatch",
    "StoreError",
    "get_document_store",
]

# Singleton instance
_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Get the process-wide document store selected by settings."""
    global _store
    if _store is None:
        from ..config import get_settings

        if get_settings().store_backend == "sql":
            from .sql import SqlDocumentStore

            _store = SqlDocumentStore()
        else:
            _store = InMemoryDocumentStore()
    return _store
