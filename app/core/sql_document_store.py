"""Document store backed by a single SQL table."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, String, delete, insert, select, text, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, TimestampMixin, utc_now
from app.core.document_store import (
    DocumentSnapshot,
    DocumentStore,
    Filters,
    Transaction,
    TransactionCallback,
    T,
    WriteConflict,
    collection_id_of,
    matches_filters,
    sort_snapshots,
    split_path,
)
from app.shared.exceptions import StoreUnavailableException

logger = logging.getLogger(__name__)


class DocumentRecord(TimestampMixin, Base):
    """One stored document."""

    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String(512), primary_key=True)
    collection: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    collection_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )
    version: Mapped[str] = mapped_column(String(32), nullable=False)


def _new_version() -> str:
    return uuid4().hex


def _to_snapshot(record: DocumentRecord) -> DocumentSnapshot:
    return DocumentSnapshot(path=record.path, data=dict(record.data), version=record.version)


class SqlTransaction(Transaction):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self.session = session

    async def _read(self, path: str) -> DocumentSnapshot:
        record = await self.session.scalar(select(DocumentRecord).where(DocumentRecord.path == path))
        if record is None:
            return DocumentSnapshot(path=path, data=None, version=None)
        return _to_snapshot(record)

    async def commit(self) -> None:
        for path, read_version in self.reads.items():
            if path in self.writes:
                continue
            current = await self._current_version(path, lock=True)
            if current != read_version:
                raise WriteConflict(path)

        for path, data in self.writes.items():
            if data is None:
                await self._apply_delete(path)
            else:
                await self._apply_put(path, data)

        await self.session.commit()

    async def _current_version(self, path: str, *, lock: bool = False) -> str | None:
        stmt = select(DocumentRecord.version).where(DocumentRecord.path == path)
        if lock:
            # Held until commit. Absent rows cannot be locked, only re-checked.
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def _apply_delete(self, path: str) -> None:
        stmt = delete(DocumentRecord).where(DocumentRecord.path == path)
        if path not in self.reads:
            await self.session.execute(stmt)
            return

        read_version = self.reads[path]
        if read_version is None:
            if await self._current_version(path) is not None:
                raise WriteConflict(path)
            return
        result = await self.session.execute(stmt.where(DocumentRecord.version == read_version))
        if result.rowcount != 1:
            raise WriteConflict(path)

    async def _apply_put(self, path: str, data: dict[str, Any]) -> None:
        collection, _ = split_path(path)
        now = utc_now()
        values = {"data": data, "version": _new_version(), "updated_at": now}

        if path in self.reads and self.reads[path] is not None:
            result = await self.session.execute(
                update(DocumentRecord)
                .where(DocumentRecord.path == path, DocumentRecord.version == self.reads[path])
                .values(**values),
            )
            if result.rowcount != 1:
                raise WriteConflict(path)
            return

        if path not in self.reads and await self._current_version(path) is not None:
            await self.session.execute(
                update(DocumentRecord).where(DocumentRecord.path == path).values(**values),
            )
            return

        try:
            await self.session.execute(
                insert(DocumentRecord).values(
                    path=path,
                    collection=collection,
                    collection_id=collection_id_of(collection),
                    created_at=now,
                    **values,
                ),
            )
        except IntegrityError as exc:
            raise WriteConflict(path) from exc


class SqlDocumentStore(DocumentStore):
    """Store documents as JSON rows with version tokens for optimistic concurrency."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_attempts: int = 5,
    ) -> None:
        super().__init__(max_attempts=max_attempts)
        self.session_factory = session_factory

    async def get(self, path: str) -> DocumentSnapshot:
        split_path(path)
        try:
            async with self.session_factory() as session:
                return await SqlTransaction(session)._read(path)
        except (OperationalError, InterfaceError, OSError) as exc:
            raise StoreUnavailableException("Document store is unavailable") from exc

    async def list_collection(
        self,
        collection_path: str,
        filters: Filters | None = None,
        order_by: Sequence[str] = (),
    ) -> list[DocumentSnapshot]:
        stmt = select(DocumentRecord).where(DocumentRecord.collection == collection_path.strip("/"))
        return await self._query(stmt, filters, order_by)

    async def collection_group(
        self,
        collection_id: str,
        filters: Filters | None = None,
        order_by: Sequence[str] = (),
    ) -> list[DocumentSnapshot]:
        stmt = select(DocumentRecord).where(DocumentRecord.collection_id == collection_id)
        return await self._query(stmt, filters, order_by)

    async def ping(self) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (DBAPIError, OSError) as exc:
            logger.exception("Document store ping failed")
            raise StoreUnavailableException("Document store is unavailable") from exc

    async def _query(self, stmt, filters: Filters | None, order_by: Sequence[str]) -> list[DocumentSnapshot]:
        try:
            async with self.session_factory() as session:
                records = (await session.scalars(stmt)).all()
        except (OperationalError, InterfaceError, OSError) as exc:
            raise StoreUnavailableException("Document store is unavailable") from exc
        snapshots = [_to_snapshot(record) for record in records]
        return sort_snapshots(
            [item for item in snapshots if matches_filters(item.data or {}, filters)],
            order_by,
        )

    async def _run_attempt(self, callback: TransactionCallback[T]) -> T:
        try:
            async with self.session_factory() as session:
                txn = SqlTransaction(session)
                try:
                    result = await callback(txn)
                    await txn.commit()
                except BaseException:
                    await session.rollback()
                    raise
                return result
        except IntegrityError as exc:
            raise WriteConflict("unknown") from exc
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.warning("Document store transaction failed: %s", exc)
            raise StoreUnavailableException("Document store is unavailable") from exc
