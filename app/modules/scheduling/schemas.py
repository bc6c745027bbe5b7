"""Scheduling schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.modules.scheduling.slots import time_label


class SlotsRequest(BaseModel):
    """Cells to open or close, as grid indices or labels like "2:00 PM"."""

    slots: list[int | str] = Field(min_length=1, max_length=48)


class SlotRead(BaseModel):
    index: int
    label: str

    @classmethod
    def from_index(cls, index: int) -> SlotRead:
        return cls(index=index, label=time_label(index))


class DayRead(BaseModel):
    """Open or bookable cells for a tutor day."""

    tutor_id: str
    date: str
    session_length: int | None = None
    slots: list[SlotRead]


class DayOverviewRead(BaseModel):
    """Tutor availability editor view."""

    tutor_id: str
    date: str
    open_slots: list[SlotRead]
    pending_slots: list[SlotRead]
    confirmed_slots: list[SlotRead]


class DatesRead(BaseModel):
    tutor_id: str
    dates: list[str]
