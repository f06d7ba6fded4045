"""Generic document-store interface consumed by the workflow core.

Records live in named collections keyed by an opaque string id. The only
atomicity guarantee is per single document; nothing here spans documents.
"""

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class StoreError(Exception):
    """Base class for adapter-level errors."""


class DocumentNotFound(StoreError):
    """Update or delete addressed a document that does not exist."""

    def __init__(self, collection: str, document_id: str):
        super().__init__(f"{collection}/{document_id} does not exist")
        self.collection = collection
        self.document_id = document_id


class DocumentExists(StoreError):
    """Create with an explicit id collided with an existing document."""

    def __init__(self, collection: str, document_id: str):
        super().__init__(f"{collection}/{document_id} already exists")
        self.collection = collection
        self.document_id = document_id


class PreconditionMismatch(StoreError):
    """A conditional update found a field with an unexpected current value."""

    def __init__(self, collection: str, document_id: str, path: str, actual: Any):
        super().__init__(f"{collection}/{document_id}: {path} is {actual!r}")
        self.collection = collection
        self.document_id = document_id
        self.path = path
        self.actual = actual


class _ServerTimestamp:
    """Sentinel resolved to the store's clock at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __deepcopy__(self, memo):
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


class ArrayUnion:
    """Append values to an array field, skipping ones already present."""

    def __init__(self, *values: Any):
        self.values = values

    def __repr__(self) -> str:
        return f"ArrayUnion{self.values!r}"


class ArrayAppend:
    """Append values to an array field unconditionally."""

    def __init__(self, *values: Any):
        self.values = values

    def __repr__(self) -> str:
        return f"ArrayAppend{self.values!r}"


@dataclass(frozen=True)
class FieldFilter:
    """Equality on a dotted field path. ``None`` matches absent or null."""

    path: str
    value: Any


# =========================
# Document helpers
# =========================


def plain(value: Any) -> Any:
    """Reduce enums to their values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(v) for v in value]
    return value


def get_path(document: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path, returning None when any segment is missing."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def resolve_sentinels(value: Any, now: datetime) -> Any:
    """Replace SERVER_TIMESTAMP anywhere inside value."""
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Mapping):
        return {k: resolve_sentinels(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_sentinels(v, now) for v in value]
    return value


def apply_update(
    document: Mapping[str, Any], fields: Mapping[str, Any], now: datetime
) -> dict[str, Any]:
    """Return a copy of document with field updates applied."""
    updated = copy.deepcopy(dict(document))
    for path, raw in fields.items():
        if isinstance(raw, ArrayUnion):
            existing = list(get_path(updated, path) or [])
            for item in raw.values:
                item = plain(resolve_sentinels(item, now))
                if item not in existing:
                    existing.append(item)
            _set_path(updated, path, existing)
        elif isinstance(raw, ArrayAppend):
            existing = list(get_path(updated, path) or [])
            existing.extend(plain(resolve_sentinels(item, now)) for item in raw.values)
            _set_path(updated, path, existing)
        else:
            _set_path(updated, path, plain(resolve_sentinels(raw, now)))
    return updated


def check_expected(
    collection: str,
    document_id: str,
    document: Mapping[str, Any],
    expected: Mapping[str, Any] | None,
) -> None:
    """Raise PreconditionMismatch unless every expected path holds its value."""
    for path, value in (expected or {}).items():
        actual = get_path(document, path)
        if actual != plain(value):
            raise PreconditionMismatch(collection, document_id, path, actual)


def matches(
    document: Mapping[str, Any],
    filters: Sequence[FieldFilter] = (),
    any_of: Sequence[FieldFilter] = (),
) -> bool:
    """Evaluate AND-ed filters plus an optional OR group."""
    for f in filters:
        if get_path(document, f.path) != plain(f.value):
            return False
    if any_of:
        return any(get_path(document, f.path) == plain(f.value) for f in any_of)
    return True


# =========================
# Interface
# =========================


class DocumentStore(ABC):
    """Abstract document store.

    ``update`` must be atomic per document. Timestamp fields accept the
    SERVER_TIMESTAMP sentinel.
    """

    supports_conditional_writes: bool = False

    @abstractmethod
    async def get_by_id(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Fetch one record, or None."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        any_of: Sequence[FieldFilter] = (),
    ) -> list[dict[str, Any]]:
        """Records matching all ``filters`` and at least one of ``any_of``."""

    @abstractmethod
    async def create(
        self,
        collection: str,
        record: Mapping[str, Any],
        document_id: str | None = None,
    ) -> str:
        """Insert a record and return its id."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Apply field updates atomically and return the stored record.

        Args:
            collection: Collection name
            document_id: Record id
            fields: Dotted paths to new values or sentinels
            expected: Compare-and-swap precondition; only honoured by stores
                that set ``supports_conditional_writes``
        """

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> None:
        """Remove a record; missing records are ignored."""

    async def close(self) -> None:
        """Release backend resources."""
