"""Transactional document store abstraction.

Documents are addressed by slash separated paths with an even number of
segments (``tutors/{tutor_id}/bookings/{booking_id}``). Every store offers plain
get/set/update/delete, collection and collection-group queries, and
``run_transaction`` with optimistic concurrency: a transaction remembers the
version of every document it read and its writes are applied only when none
of those documents changed in the meantime. On conflict the callback is run
again against fresh data, up to ``max_attempts`` times.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import uuid4

from app.core.metrics import STORE_TRANSACTION_CONFLICTS_TOTAL
from app.shared.exceptions import (
    InvalidDocumentPathException,
    NotFoundException,
    TransactionConflictException,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Filters = Mapping[str, Any]


class WriteConflict(Exception):
    """Raised by a backend when a document changed after it was read."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document changed concurrently: {path}")


@dataclass(slots=True)
class DocumentSnapshot:
    """Point-in-time view of one document."""

    path: str
    data: dict[str, Any] | None
    version: str | None

    @property
    def exists(self) -> bool:
        return self.data is not None

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]


def split_path(path: str) -> tuple[str, str]:
    """Split document path into parent collection path and document id."""
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) < 2 or len(segments) % 2 != 0:
        raise InvalidDocumentPathException(f"Invalid document path: {path!r}")
    return "/".join(segments[:-1]), segments[-1]


def document_id(value: str) -> str:
    """Validate one path segment taken from outside input."""
    if not value or "/" in value:
        raise InvalidDocumentPathException(f"Invalid document id: {value!r}")
    return value


def collection_id_of(collection_path: str) -> str:
    return collection_path.rsplit("/", 1)[-1]


def new_document_id() -> str:
    """Generate id for a new document."""
    return uuid4().hex


def matches_filters(data: Mapping[str, Any], filters: Filters | None) -> bool:
    """Equality filter over top-level fields."""
    if not filters:
        return True
    return all(data.get(field) == value for field, value in filters.items())


def sort_snapshots(
    snapshots: list[DocumentSnapshot],
    order_by: Sequence[str],
) -> list[DocumentSnapshot]:
    """Order snapshots by the given fields, then by path for stability."""

    def _key(snapshot: DocumentSnapshot) -> tuple:
        data = snapshot.data or {}
        return tuple((data.get(field) is None, data.get(field)) for field in order_by) + (snapshot.path,)

    return sorted(snapshots, key=_key)


class Transaction(ABC):
    """Read-then-write unit; reads must precede writes."""

    def __init__(self) -> None:
        self.reads: dict[str, str | None] = {}
        self.writes: dict[str, dict[str, Any] | None] = {}
        self._snapshots: dict[str, DocumentSnapshot] = {}

    @abstractmethod
    async def _read(self, path: str) -> DocumentSnapshot:
        """Fetch current committed snapshot from the backend."""

    async def get(self, path: str) -> DocumentSnapshot:
        if self.writes:
            raise RuntimeError("Transaction reads must happen before writes")
        split_path(path)
        if path in self._snapshots:
            return self._snapshots[path]
        snapshot = await self._read(path)
        self.reads[path] = snapshot.version
        self._snapshots[path] = snapshot
        return snapshot

    def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        split_path(path)
        if merge:
            base = self._current_data(path) or {}
            self.writes[path] = {**base, **copy.deepcopy(dict(data))}
        else:
            self.writes[path] = copy.deepcopy(dict(data))

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        if path not in self._snapshots and path not in self.writes:
            raise RuntimeError(f"Document {path} must be read in this transaction before update")
        base = self._current_data(path)
        if base is None:
            raise NotFoundException(f"Document {path} not found")
        self.writes[path] = {**base, **copy.deepcopy(dict(fields))}

    def delete(self, path: str) -> None:
        split_path(path)
        self.writes[path] = None

    def _current_data(self, path: str) -> dict[str, Any] | None:
        if path in self.writes:
            return copy.deepcopy(self.writes[path])
        snapshot = self._snapshots.get(path)
        if snapshot is None:
            return None
        return copy.deepcopy(snapshot.data)


TransactionCallback = Callable[[Transaction], Awaitable[T]]


class DocumentStore(ABC):
    """Abstract transactional document database."""

    def __init__(self, *, max_attempts: int = 5) -> None:
        self.max_attempts = max_attempts

    @abstractmethod
    async def get(self, path: str) -> DocumentSnapshot:
        """Read one document."""

    @abstractmethod
    async def list_collection(
        self,
        collection_path: str,
        filters: Filters | None = None,
        order_by: Sequence[str] = (),
    ) -> list[DocumentSnapshot]:
        """List documents directly under a collection path."""

    @abstractmethod
    async def collection_group(
        self,
        collection_id: str,
        filters: Filters | None = None,
        order_by: Sequence[str] = (),
    ) -> list[DocumentSnapshot]:
        """List documents of every collection with the given id."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreUnavailableException when the backend is unreachable."""

    @abstractmethod
    async def _run_attempt(self, callback: TransactionCallback[T]) -> T:
        """Run callback in a fresh transaction and commit, or raise WriteConflict."""

    async def run_transaction(
        self,
        callback: TransactionCallback[T],
        *,
        max_attempts: int | None = None,
    ) -> T:
        """Run callback atomically, re-running it on write conflicts."""
        attempts = max_attempts or self.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self._run_attempt(callback)
            except WriteConflict as exc:
                STORE_TRANSACTION_CONFLICTS_TOTAL.inc()
                logger.info(
                    "Transaction conflict on %s (attempt %s/%s)",
                    exc.path,
                    attempt,
                    attempts,
                )
        raise TransactionConflictException("Data changed concurrently, please retry")

    async def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        async def _write(txn: Transaction) -> None:
            if merge:
                await txn.get(path)
            txn.set(path, data, merge=merge)

        await self.run_transaction(_write)

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        async def _write(txn: Transaction) -> None:
            snapshot = await txn.get(path)
            if not snapshot.exists:
                raise NotFoundException(f"Document {path} not found")
            txn.update(path, fields)

        await self.run_transaction(_write)

    async def delete(self, path: str) -> None:
        async def _write(txn: Transaction) -> None:
            txn.delete(path)

        await self.run_transaction(_write)


class InMemoryTransaction(Transaction):
    def __init__(self, store: InMemoryDocumentStore) -> None:
        super().__init__()
        self.store = store

    async def _read(self, path: str) -> DocumentSnapshot:
        return await self.store.get(path)


class InMemoryDocumentStore(DocumentStore):
    """Process-local store used for development and tests.

    Every call yields to the event loop so concurrent callers interleave the
    way they would against a remote database.
    """

    def __init__(self, *, max_attempts: int = 5) -> None:
        super().__init__(max_attempts=max_attempts)
        self._documents: dict[str, tuple[str, dict[str, Any]]] = {}
        self._clock = 0
        self._commit_lock = asyncio.Lock()

    async def get(self, path: str) -> DocumentSnapshot:
        split_path(path)
        await asyncio.sleep(0)
        return self._snapshot(path)

    async def list_collection(
        self,
        collection_path: str,
        filters: Filters | None = None,
        order_by: Sequence[str] = (),
    ) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        collection_path = collection_path.strip("/")
        snapshots = [
            self._snapshot(path)
            for path in list(self._documents)
            if split_path(path)[0] == collection_path
        ]
        return sort_snapshots(
            [item for item in snapshots if matches_filters(item.data or {}, filters)],
            order_by,
        )

    async def collection_group(
        self,
        collection_id: str,
        filters: Filters | None = None,
        order_by: Sequence[str] = (),
    ) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        snapshots = [
            self._snapshot(path)
            for path in list(self._documents)
            if collection_id_of(split_path(path)[0]) == collection_id
        ]
        return sort_snapshots(
            [item for item in snapshots if matches_filters(item.data or {}, filters)],
            order_by,
        )

    async def ping(self) -> None:
        return None

    async def _run_attempt(self, callback: TransactionCallback[T]) -> T:
        txn = InMemoryTransaction(self)
        result = await callback(txn)
        await asyncio.sleep(0)
        async with self._commit_lock:
            for path, read_version in txn.reads.items():
                if self._version_of(path) != read_version:
                    raise WriteConflict(path)
            for path, data in txn.writes.items():
                if data is None:
                    self._documents.pop(path, None)
                else:
                    self._clock += 1
                    self._documents[path] = (str(self._clock), copy.deepcopy(data))
        return result

    def _version_of(self, path: str) -> str | None:
        entry = self._documents.get(path)
        return entry[0] if entry is not None else None

    def _snapshot(self, path: str) -> DocumentSnapshot:
        entry = self._documents.get(path)
        if entry is None:
            return DocumentSnapshot(path=path, data=None, version=None)
        version, data = entry
        return DocumentSnapshot(path=path, data=copy.deepcopy(data), version=version)
