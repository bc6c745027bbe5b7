"""Booking ledger on top of the document store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from app.core.document_store import DocumentSnapshot, DocumentStore, Transaction
from app.core.enums import BookingStatusEnum
from app.modules.booking.models import Booking, booking_path, bookings_collection
from app.shared.exceptions import AppException, NotFoundException
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

_ORDER = ("date", "startSlot")


class BookingRepository:
    """Document operations for bookings.

    Writes are only available inside a transaction; status changes must go
    through the booking service so they stay consistent with availability.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get(self, tutor_id: str, booking_id: str) -> Booking:
        snapshot = await self.store.get(booking_path(tutor_id, booking_id))
        if not snapshot.exists:
            raise NotFoundException("Booking not found")
        return Booking.from_snapshot(snapshot)

    async def list_by_tutor(
        self,
        tutor_id: str,
        date: str | None = None,
        statuses: Iterable[BookingStatusEnum] | None = None,
    ) -> list[Booking]:
        filters = {"date": date} if date is not None else None
        snapshots = await self.store.list_collection(bookings_collection(tutor_id), filters, order_by=_ORDER)
        bookings = self._to_bookings(snapshots)
        if statuses is not None:
            wanted = set(statuses)
            bookings = [booking for booking in bookings if booking.status in wanted]
        return bookings

    async def list_by_student(self, student_id: str) -> list[Booking]:
        snapshots = await self.store.collection_group("bookings", {"studentID": student_id}, order_by=_ORDER)
        return self._to_bookings(snapshots)

    async def read(self, txn: Transaction, tutor_id: str, booking_id: str) -> Booking:
        snapshot = await txn.get(booking_path(tutor_id, booking_id))
        if not snapshot.exists:
            raise NotFoundException("Booking not found")
        return Booking.from_snapshot(snapshot)

    def create(self, txn: Transaction, tutor_id: str, booking: Booking) -> str:
        txn.set(booking_path(tutor_id, booking.id), booking.to_document())
        return booking.id

    def set_status(
        self,
        txn: Transaction,
        tutor_id: str,
        booking_id: str,
        status: BookingStatusEnum,
    ) -> str:
        updated_at = utc_now().isoformat()
        txn.update(booking_path(tutor_id, booking_id), {"status": str(status), "updatedAt": updated_at})
        return updated_at

    @staticmethod
    def _to_bookings(snapshots: list[DocumentSnapshot]) -> list[Booking]:
        bookings: list[Booking] = []
        for snapshot in snapshots:
            try:
                bookings.append(Booking.from_snapshot(snapshot))
            except (AppException, ValidationError) as exc:
                logger.warning("Skipping unreadable booking %s: %s", snapshot.path, exc)
        return bookings
