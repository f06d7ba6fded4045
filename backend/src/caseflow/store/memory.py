"""In-process document store.

Backs development servers and the test-suite. A single asyncio lock
serialises writes, so each update is atomic with respect to other
coroutines on the same loop.
"""

import asyncio
import copy
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from .base import (
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    FieldFilter,
    apply_update,
    check_expected,
    get_path,
    matches,
    plain,
    resolve_sentinels,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDocumentStore(DocumentStore):
    """Dict-of-dicts store with copy-on-read semantics."""

    supports_conditional_writes = True

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _bucket(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def get_by_id(self, collection: str, document_id: str) -> dict[str, Any] | None:
        record = self._bucket(collection).get(document_id)
        return copy.deepcopy(record) if record is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        any_of: Sequence[FieldFilter] = (),
    ) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(record)
            for record in self._bucket(collection).values()
            if matches(record, filters, any_of)
        ]

    async def create(
        self,
        collection: str,
        record: Mapping[str, Any],
        document_id: str | None = None,
    ) -> str:
        async with self._lock:
            bucket = self._bucket(collection)
            document_id = document_id or str(uuid4())
            if document_id in bucket:
                raise DocumentExists(collection, document_id)
            stored = plain(resolve_sentinels(dict(record), self._clock()))
            stored["id"] = document_id
            bucket[document_id] = stored
            return document_id

    async def update(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        async with self._lock:
            bucket = self._bucket(collection)
            current = bucket.get(document_id)
            if current is None:
                raise DocumentNotFound(collection, document_id)
            check_expected(collection, document_id, current, expected)
            updated = apply_update(current, fields, self._clock())
            updated["id"] = document_id
            bucket[document_id] = updated
            return copy.deepcopy(updated)

    async def delete(self, collection: str, document_id: str) -> None:
        async with self._lock:
            self._bucket(collection).pop(document_id, None)

    def dump(self, collection: str) -> list[dict[str, Any]]:
        """Snapshot of a collection, for fixtures and debugging."""
        return [copy.deepcopy(r) for r in self._bucket(collection).values()]

    def peek(self, collection: str, document_id: str, path: str) -> Any:
        """Read a single field without copying the whole record."""
        record = self._bucket(collection).get(document_id)
        return get_path(record, path) if record is not None else None
