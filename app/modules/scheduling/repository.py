"""Availability store on top of the document store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from app.core.document_store import DocumentStore, Transaction
from app.modules.scheduling.models import (
    AvailabilityDay,
    availability_collection,
    availability_path,
)

logger = logging.getLogger(__name__)


class AvailabilityRepository:
    """Per tutor, per date open cells.

    Tutor edits run as store transactions so they serialize with reservations
    touching the same day.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_day(self, tutor_id: str, date: str) -> AvailabilityDay:
        snapshot = await self.store.get(availability_path(tutor_id, date))
        return AvailabilityDay.from_snapshot(tutor_id, date, snapshot)

    async def get_open_slots(self, tutor_id: str, date: str) -> set[int]:
        day = await self.get_day(tutor_id, date)
        return set(day.open_slots)

    async def list_dates(self, tutor_id: str) -> list[str]:
        snapshots = await self.store.list_collection(availability_collection(tutor_id))
        return sorted(snapshot.id for snapshot in snapshots if (snapshot.data or {}).get("timeSlots"))

    async def add_slots(self, tutor_id: str, date: str, slots: Iterable[int]) -> set[int]:
        slots = set(slots)

        async def _add(txn: Transaction) -> set[int]:
            day = await self.read_day(txn, tutor_id, date)
            skipped = day.open(slots)
            if skipped:
                logger.info(
                    "Skipped reserved cells %s for tutor %s on %s",
                    sorted(skipped),
                    tutor_id,
                    date,
                )
            self.write_day(txn, day)
            return set(day.open_slots)

        return await self.store.run_transaction(_add)

    async def remove_slots(self, tutor_id: str, date: str, slots: Iterable[int]) -> set[int]:
        slots = set(slots)

        async def _remove(txn: Transaction) -> set[int]:
            day = await self.read_day(txn, tutor_id, date)
            if not day.exists or not slots & day.open_slots:
                return set(day.open_slots)
            day.close(slots)
            self.write_day(txn, day)
            return set(day.open_slots)

        return await self.store.run_transaction(_remove)

    async def clear_date(self, tutor_id: str, date: str) -> None:
        async def _clear(txn: Transaction) -> None:
            day = await self.read_day(txn, tutor_id, date)
            if not day.exists:
                return
            if day.reserved:
                day.close(day.open_slots)
                self.write_day(txn, day)
                return
            txn.delete(day.path)

        await self.store.run_transaction(_clear)

    async def read_day(self, txn: Transaction, tutor_id: str, date: str) -> AvailabilityDay:
        snapshot = await txn.get(availability_path(tutor_id, date))
        return AvailabilityDay.from_snapshot(tutor_id, date, snapshot)

    def write_day(self, txn: Transaction, day: AvailabilityDay) -> None:
        txn.set(day.path, day.to_document())
        day.exists = True
