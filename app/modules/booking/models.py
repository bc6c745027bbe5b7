"""Booking document model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.document_store import DocumentSnapshot, document_id
from app.core.enums import BookingStatusEnum, SessionLengthEnum
from app.modules.scheduling.slots import end_time_label, grid_index, occupied_slots, time_label


def bookings_collection(tutor_id: str) -> str:
    return f"tutors/{document_id(tutor_id)}/bookings"


def booking_path(tutor_id: str, booking_id: str) -> str:
    return f"{bookings_collection(tutor_id)}/{document_id(booking_id)}"


def _pick(data: dict[str, Any], alias: str, name: str) -> Any:
    if alias in data:
        return data[alias]
    return data.get(name)


class Booking(BaseModel):
    """Reservation of a run of grid cells under ``tutors/{tutor_id}/bookings``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    student_id: str = Field(alias="studentID")
    student_name: str = Field(default="Unknown", alias="studentName")
    tutor_id: str = Field(alias="tutorID")
    tutor_name: str = Field(default="Unknown", alias="tutorName")
    date: str
    start_slot: int = Field(alias="startSlot", ge=0, le=47)
    session_length: SessionLengthEnum = Field(default=SessionLengthEnum.HALF_HOUR, alias="sessionLength")
    time_slot: str = Field(alias="timeSlot")
    end_time: str = Field(alias="endTime")
    status: BookingStatusEnum = BookingStatusEnum.PENDING
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    @model_validator(mode="before")
    @classmethod
    def fill_derived_fields(cls, data: Any) -> Any:
        """Derive grid fields; older documents only carry a ``timeSlot`` label."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        start_slot = _pick(data, "startSlot", "start_slot")
        label = _pick(data, "timeSlot", "time_slot")
        if start_slot is None and label:
            start_slot = grid_index(label)
            data["startSlot"] = start_slot

        session_length = _pick(data, "sessionLength", "session_length")
        if session_length is None:
            session_length = SessionLengthEnum.HALF_HOUR
            data["sessionLength"] = session_length

        if start_slot is not None:
            if not label:
                data["timeSlot"] = time_label(int(start_slot))
            if not _pick(data, "endTime", "end_time"):
                data["endTime"] = end_time_label(int(start_slot), int(session_length))
        return data

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Booking:
        data = dict(snapshot.data or {})
        if "tutorID" not in data:
            data["tutorID"] = snapshot.path.split("/")[1]
        data["id"] = snapshot.id
        return cls.model_validate(data)

    @property
    def occupied_slots(self) -> set[int]:
        return occupied_slots(self.start_slot, self.session_length)

    @property
    def path(self) -> str:
        return booking_path(self.tutor_id, self.id)

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(by_alias=True, exclude={"id"}, mode="json")
        return {key: value for key, value in document.items() if value is not None}
