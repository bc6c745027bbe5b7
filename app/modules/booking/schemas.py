"""Booking schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.enums import BookingStatusEnum
from app.modules.scheduling.slots import grid_index


class BookingReserveRequest(BaseModel):
    """Reserve lesson request; start is a grid index or a label like "2:00 PM"."""

    tutor_id: str = Field(min_length=1, max_length=128, pattern=r"^[^/]+$")
    student_id: str = Field(min_length=1, max_length=128, pattern=r"^[^/]+$")
    student_name: str | None = Field(default=None, max_length=128)
    date: str
    start_slot: int | None = None
    start_time: str | None = None
    session_length: Literal[30, 60] = 30

    @model_validator(mode="after")
    def require_single_start(self) -> BookingReserveRequest:
        if (self.start_slot is None) == (self.start_time is None):
            raise ValueError("Provide exactly one of start_slot or start_time")
        return self

    def start_index(self) -> int:
        if self.start_slot is not None:
            return self.start_slot
        return grid_index(self.start_time)


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tutor_id: str
    tutor_name: str
    student_id: str
    student_name: str
    date: str
    start_slot: int
    session_length: int
    time_slot: str
    end_time: str
    status: BookingStatusEnum
    created_at: str | None
    updated_at: str | None


class StudentLessonsRead(BaseModel):
    upcoming: list[BookingRead]
    canceled: list[BookingRead]


class TutorLessonsRead(BaseModel):
    scheduled: list[BookingRead]
    completed: list[BookingRead]


class TutorRequestsRead(BaseModel):
    pending: list[BookingRead]
    confirmed: list[BookingRead]
