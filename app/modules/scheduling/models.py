"""Availability document model."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from app.core.document_store import DocumentSnapshot, document_id
from app.shared.exceptions import SlotUnavailableException
from app.shared.utils import utc_now


def availability_collection(tutor_id: str) -> str:
    return f"tutors/{document_id(tutor_id)}/availability"


def availability_path(tutor_id: str, date: str) -> str:
    return f"{availability_collection(tutor_id)}/{document_id(date)}"


@dataclass(slots=True)
class AvailabilityDay:
    """Open and reserved cells of one tutor day.

    ``reserved`` maps a cell to the booking holding it; a cell is never both
    open and reserved.
    """

    tutor_id: str
    date: str
    open_slots: set[int] = field(default_factory=set)
    reserved: dict[int, str] = field(default_factory=dict)
    exists: bool = False

    @classmethod
    def from_snapshot(cls, tutor_id: str, date: str, snapshot: DocumentSnapshot) -> AvailabilityDay:
        if not snapshot.exists:
            return cls(tutor_id=tutor_id, date=date)
        data = snapshot.data or {}
        return cls(
            tutor_id=tutor_id,
            date=date,
            open_slots={int(slot) for slot in data.get("timeSlots", [])},
            reserved={int(slot): str(booking_id) for slot, booking_id in (data.get("reserved") or {}).items()},
            exists=True,
        )

    @property
    def path(self) -> str:
        return availability_path(self.tutor_id, self.date)

    @property
    def is_empty(self) -> bool:
        return not self.open_slots and not self.reserved

    def to_document(self) -> dict[str, Any]:
        return {
            "timeSlots": sorted(self.open_slots),
            "reserved": {str(slot): booking_id for slot, booking_id in sorted(self.reserved.items())},
            "updatedAt": utc_now().isoformat(),
        }

    def open(self, slots: Iterable[int]) -> set[int]:
        """Open cells that are not held by a booking; return skipped cells."""
        slots = set(slots)
        skipped = slots & self.reserved.keys()
        self.open_slots |= slots - skipped
        return skipped

    def close(self, slots: Iterable[int]) -> None:
        self.open_slots -= set(slots)

    def reserve(self, slots: Iterable[int], booking_id: str) -> None:
        slots = set(slots)
        if not slots <= self.open_slots:
            raise SlotUnavailableException("This time is no longer available, pick another")
        self.open_slots -= slots
        for slot in slots:
            self.reserved[slot] = booking_id

    def release(self, slots: Iterable[int], booking_id: str) -> set[int]:
        """Reopen cells held by booking_id; return reopened cells."""
        restored = set()
        for slot in slots:
            holder = self.reserved.get(slot)
            if holder is None or holder == booking_id:
                self.reserved.pop(slot, None)
                restored.add(slot)
        self.open_slots |= restored
        return restored
