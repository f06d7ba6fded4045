"""SQLAlchemy-backed document store.

All collections share one ``documents`` table holding a JSON payload per
record. Updates are a row-locked read-modify-write inside one transaction,
which gives the per-document atomicity the workflow core relies on.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, UniqueConstraint, delete, or_, select
from sqlalchemy import update as sa_update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base, get_session_factory
from ..errors import StoreUnavailable
from .base import (
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    FieldFilter,
    apply_update,
    check_expected,
    matches,
    resolve_sentinels,
)

logger = logging.getLogger(__name__)

PayloadType = JSON().with_variant(JSONB(), "postgresql")


class DocumentRow(Base):
    """One record of one collection."""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "doc_id"),)

    # sqlite only autoincrements INTEGER primary keys
    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True
    )
    collection: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    doc_id: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(PayloadType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def to_json(value: Any) -> Any:
    """Encode a payload for the JSON column (timestamps become ISO strings)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def _encode_filters(filters: Sequence[FieldFilter]) -> list[FieldFilter]:
    return [FieldFilter(f.path, to_json(f.value)) for f in filters]


def _pushdown(f: FieldFilter):
    """SQL clause for a filter, or None when it must be evaluated in Python."""
    if f.value is not None and not isinstance(f.value, str):
        return None
    extracted = DocumentRow.data[tuple(f.path.split("."))].as_string()
    if f.value is None:
        return extracted.is_(None)
    return extracted == f.value


class SqlDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy session factory."""

    supports_conditional_writes = True

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_by_id(self, collection: str, document_id: str) -> dict[str, Any] | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DocumentRow.data).where(
                        DocumentRow.collection == collection,
                        DocumentRow.doc_id == document_id,
                    )
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"get {collection}/{document_id} failed: {e}", collection=collection
            ) from e

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        any_of: Sequence[FieldFilter] = (),
    ) -> list[dict[str, Any]]:
        filters = _encode_filters(filters)
        any_of = _encode_filters(any_of)

        stmt = select(DocumentRow.data).where(DocumentRow.collection == collection)
        for f in filters:
            clause = _pushdown(f)
            if clause is not None:
                stmt = stmt.where(clause)
        or_clauses = [_pushdown(f) for f in any_of]
        if or_clauses and all(c is not None for c in or_clauses):
            stmt = stmt.where(or_(*or_clauses))
        stmt = stmt.order_by(DocumentRow.seq)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = list(result.scalars())
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"query {collection} failed: {e}", collection=collection
            ) from e

        # Pushdown only narrows; exact semantics are decided here
        return [row for row in rows if matches(row, filters, any_of)]

    async def create(
        self,
        collection: str,
        record: Mapping[str, Any],
        document_id: str | None = None,
    ) -> str:
        now = self._clock()
        document_id = document_id or str(uuid4())
        payload = to_json(resolve_sentinels(dict(record), now))
        payload["id"] = document_id
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    DocumentRow(
                        collection=collection,
                        doc_id=document_id,
                        data=payload,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError as e:
            raise DocumentExists(collection, document_id) from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"create in {collection} failed: {e}", collection=collection
            ) from e
        return document_id

    async def update(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        now = self._clock()
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    select(DocumentRow.seq, DocumentRow.data)
                    .where(
                        DocumentRow.collection == collection,
                        DocumentRow.doc_id == document_id,
                    )
                    .with_for_update()
                )
                row = result.first()
                if row is None:
                    raise DocumentNotFound(collection, document_id)
                check_expected(
                    collection, document_id, row.data, to_json(dict(expected or {}))
                )
                updated = to_json(apply_update(row.data, fields, now))
                updated["id"] = document_id
                await session.execute(
                    sa_update(DocumentRow)
                    .where(DocumentRow.seq == row.seq)
                    .values(data=updated, updated_at=now)
                )
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"update {collection}/{document_id} failed: {e}", collection=collection
            ) from e

        logger.debug(f"Updated {collection}/{document_id}: {sorted(fields)}")
        return updated

    async def delete(self, collection: str, document_id: str) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(DocumentRow).where(
                        DocumentRow.collection == collection,
                        DocumentRow.doc_id == document_id,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"delete {collection}/{document_id} failed: {e}", collection=collection
            ) from e
