"""Booking API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.modules.booking.models import Booking
from app.modules.booking.schemas import (
    BookingRead,
    BookingReserveRequest,
    StudentLessonsRead,
    TutorLessonsRead,
    TutorRequestsRead,
)
from app.modules.booking.service import BookingService, get_booking_service

router = APIRouter(prefix="/booking", tags=["booking"])


def _read_all(bookings: list[Booking]) -> list[BookingRead]:
    return [BookingRead.model_validate(booking) for booking in bookings]


@router.post("/reserve", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def reserve_booking(
    payload: BookingReserveRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Reserve cells and create booking in PENDING state."""
    booking = await service.reserve(
        tutor_id=payload.tutor_id,
        student_id=payload.student_id,
        student_name=payload.student_name,
        date=payload.date,
        start_index=payload.start_index(),
        session_length=payload.session_length,
    )
    return BookingRead.model_validate(booking)


@router.get("/tutors/{tutor_id}/bookings/{booking_id}", response_model=BookingRead)
async def get_booking(
    tutor_id: str,
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Return one booking."""
    booking = await service.get_booking(tutor_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/tutors/{tutor_id}/bookings/{booking_id}/confirm", response_model=BookingRead)
async def confirm_booking(
    tutor_id: str,
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Confirm booking from PENDING to CONFIRMED."""
    booking = await service.confirm(tutor_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/tutors/{tutor_id}/bookings/{booking_id}/reject", response_model=BookingRead)
async def reject_booking(
    tutor_id: str,
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Reject pending booking and reopen its cells."""
    booking = await service.reject(tutor_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/tutors/{tutor_id}/bookings/{booking_id}/complete", response_model=BookingRead)
async def complete_booking(
    tutor_id: str,
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Mark confirmed lesson as completed."""
    booking = await service.complete(tutor_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/tutors/{tutor_id}/bookings/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    tutor_id: str,
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Cancel confirmed lesson and reopen its cells."""
    booking = await service.cancel(tutor_id, booking_id)
    return BookingRead.model_validate(booking)


@router.get("/students/{student_id}/lessons", response_model=StudentLessonsRead)
async def list_student_lessons(
    student_id: str,
    service: BookingService = Depends(get_booking_service),
) -> StudentLessonsRead:
    """Student lessons split into upcoming and canceled."""
    upcoming, canceled = await service.list_student_lessons(student_id)
    return StudentLessonsRead(upcoming=_read_all(upcoming), canceled=_read_all(canceled))


@router.get("/tutors/{tutor_id}/lessons", response_model=TutorLessonsRead)
async def list_tutor_lessons(
    tutor_id: str,
    service: BookingService = Depends(get_booking_service),
) -> TutorLessonsRead:
    """Tutor lessons split into scheduled and completed."""
    scheduled, completed = await service.list_tutor_lessons(tutor_id)
    return TutorLessonsRead(scheduled=_read_all(scheduled), completed=_read_all(completed))


@router.get("/tutors/{tutor_id}/requests", response_model=TutorRequestsRead)
async def list_tutor_requests(
    tutor_id: str,
    service: BookingService = Depends(get_booking_service),
) -> TutorRequestsRead:
    """Tutor bookings awaiting decision and already confirmed."""
    pending, confirmed = await service.list_tutor_requests(tutor_id)
    return TutorRequestsRead(pending=_read_all(pending), confirmed=_read_all(confirmed))
