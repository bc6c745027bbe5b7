"""Booking business logic layer."""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends

from app.core.document_store import DocumentStore, Transaction, new_document_id
from app.core.enums import BookingStatusEnum
from app.core.metrics import BOOKING_RESERVATIONS_TOTAL, BOOKING_STATUS_TRANSITIONS_TOTAL
from app.core.stores import get_document_store
from app.modules.booking.models import Booking
from app.modules.booking.repository import BookingRepository
from app.modules.notifications.dispatcher import NotificationDispatcher, get_notification_dispatcher
from app.modules.profiles.service import ProfilesService, build_profiles_service
from app.modules.scheduling.repository import AvailabilityRepository
from app.modules.scheduling.slots import (
    filter_by_allowed_lengths,
    occupied_slots,
    parse_date_key,
    time_label,
)
from app.shared.exceptions import (
    AppException,
    BusinessRuleException,
    InvalidTransitionException,
)
from app.shared.utils import today_key, utc_now

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatusEnum, frozenset[BookingStatusEnum]] = {
    BookingStatusEnum.PENDING: frozenset({BookingStatusEnum.CONFIRMED, BookingStatusEnum.REJECTED}),
    BookingStatusEnum.CONFIRMED: frozenset({BookingStatusEnum.COMPLETED, BookingStatusEnum.CANCELED}),
}

# Transitions that hand the booking's cells back to the tutor's day.
SLOT_RELEASING_TRANSITIONS = frozenset(
    {
        (BookingStatusEnum.PENDING, BookingStatusEnum.REJECTED),
        (BookingStatusEnum.CONFIRMED, BookingStatusEnum.CANCELED),
    },
)


def _lesson_order(booking: Booking) -> tuple[str, int]:
    return booking.date, booking.start_slot


class BookingService:
    """Booking domain service: reserve and status transitions as single transactions."""

    def __init__(
        self,
        store: DocumentStore,
        availability_repository: AvailabilityRepository,
        booking_repository: BookingRepository,
        profiles_service: ProfilesService,
        notifier: NotificationDispatcher,
        *,
        today_provider: Callable[[], str] = today_key,
    ) -> None:
        self.store = store
        self.availability_repository = availability_repository
        self.booking_repository = booking_repository
        self.profiles_service = profiles_service
        self.notifier = notifier
        self.today_provider = today_provider

    async def reserve(
        self,
        tutor_id: str,
        student_id: str,
        student_name: str | None,
        date: str,
        start_index: int,
        session_length: int,
    ) -> Booking:
        """Take the session's cells out of availability and create a pending booking."""
        date = parse_date_key(date)
        occupied = occupied_slots(start_index, session_length)

        if tutor_id == student_id:
            raise BusinessRuleException("You cannot book a lesson with yourself")

        tutor = await self.profiles_service.get_tutor(tutor_id)
        allowed_lengths = self.profiles_service.allowed_session_lengths(tutor)
        if session_length not in allowed_lengths:
            raise BusinessRuleException(f"Tutor does not offer {session_length}-minute lessons")
        if not filter_by_allowed_lengths({start_index}, allowed_lengths):
            raise BusinessRuleException("Hour-long lessons with this tutor start on the hour")
        if not student_name:
            student_name = await self.profiles_service.get_display_name(student_id)

        now = utc_now().isoformat()
        booking = Booking(
            id=new_document_id(),
            student_id=student_id,
            student_name=student_name,
            tutor_id=tutor_id,
            tutor_name=tutor.name,
            date=date,
            start_slot=start_index,
            session_length=session_length,
            status=BookingStatusEnum.PENDING,
            created_at=now,
            updated_at=now,
        )

        async def _reserve(txn: Transaction) -> Booking:
            day = await self.availability_repository.read_day(txn, tutor_id, date)
            day.reserve(occupied, booking.id)
            self.availability_repository.write_day(txn, day)
            self.booking_repository.create(txn, tutor_id, booking)
            return booking

        try:
            booking = await self.store.run_transaction(_reserve)
        except AppException as exc:
            BOOKING_RESERVATIONS_TOTAL.labels(outcome=exc.code).inc()
            logger.info(
                "Reservation rejected for tutor %s on %s at %s: %s",
                tutor_id,
                date,
                time_label(start_index),
                exc.code,
            )
            raise

        BOOKING_RESERVATIONS_TOTAL.labels(outcome="reserved").inc()
        logger.info(
            "Booking %s reserved cells %s for tutor %s on %s",
            booking.id,
            sorted(occupied),
            tutor_id,
            date,
        )
        await self._notify(
            tutor_id,
            "New Booking Request",
            f"{student_name} has requested a lesson on {date} at {booking.time_slot}.",
        )
        return booking

    async def update_status(
        self,
        tutor_id: str,
        booking_id: str,
        new_status: BookingStatusEnum,
    ) -> Booking:
        """Apply a status transition; repeating the current status is a no-op."""
        new_status = BookingStatusEnum(new_status)

        async def _update(txn: Transaction) -> tuple[Booking, BookingStatusEnum | None]:
            booking = await self.booking_repository.read(txn, tutor_id, booking_id)
            current = booking.status
            if current == new_status:
                return booking, None
            if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
                raise InvalidTransitionException(
                    f"Booking cannot move from {current} to {new_status}",
                )

            if (current, new_status) in SLOT_RELEASING_TRANSITIONS:
                day = await self.availability_repository.read_day(txn, tutor_id, booking.date)
                day.release(booking.occupied_slots, booking.id)
                self.availability_repository.write_day(txn, day)

            updated_at = self.booking_repository.set_status(txn, tutor_id, booking_id, new_status)
            return booking.model_copy(update={"status": new_status, "updated_at": updated_at}), current

        booking, previous = await self.store.run_transaction(_update)
        if previous is None:
            logger.info("Booking %s already %s, nothing to update", booking_id, new_status)
            return booking

        BOOKING_STATUS_TRANSITIONS_TOTAL.labels(from_status=previous, to_status=new_status).inc()
        logger.info("Booking %s moved from %s to %s", booking_id, previous, new_status)
        await self._notify_status_change(booking)
        return booking

    async def confirm(self, tutor_id: str, booking_id: str) -> Booking:
        return await self.update_status(tutor_id, booking_id, BookingStatusEnum.CONFIRMED)

    async def reject(self, tutor_id: str, booking_id: str) -> Booking:
        return await self.update_status(tutor_id, booking_id, BookingStatusEnum.REJECTED)

    async def complete(self, tutor_id: str, booking_id: str) -> Booking:
        return await self.update_status(tutor_id, booking_id, BookingStatusEnum.COMPLETED)

    async def cancel(self, tutor_id: str, booking_id: str) -> Booking:
        return await self.update_status(tutor_id, booking_id, BookingStatusEnum.CANCELED)

    async def get_booking(self, tutor_id: str, booking_id: str) -> Booking:
        return await self.booking_repository.get(tutor_id, booking_id)

    async def list_student_lessons(self, student_id: str) -> tuple[list[Booking], list[Booking]]:
        """Split student's bookings into (upcoming, canceled)."""
        bookings = sorted(await self.booking_repository.list_by_student(student_id), key=_lesson_order)
        upcoming = [booking for booking in bookings if booking.status != BookingStatusEnum.CANCELED]
        canceled = [booking for booking in bookings if booking.status == BookingStatusEnum.CANCELED]
        return upcoming, canceled

    async def list_tutor_lessons(self, tutor_id: str) -> tuple[list[Booking], list[Booking]]:
        """Split tutor's bookings into (scheduled, completed)."""
        today = self.today_provider()
        bookings = sorted(await self.booking_repository.list_by_tutor(tutor_id), key=_lesson_order)
        scheduled = [
            booking
            for booking in bookings
            if booking.status == BookingStatusEnum.CONFIRMED and booking.date >= today
        ]
        completed = [booking for booking in bookings if booking.status == BookingStatusEnum.COMPLETED]
        return scheduled, completed

    async def list_tutor_requests(self, tutor_id: str) -> tuple[list[Booking], list[Booking]]:
        """Split tutor's open bookings into (pending, confirmed)."""
        bookings = sorted(
            await self.booking_repository.list_by_tutor(
                tutor_id,
                statuses=(BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED),
            ),
            key=_lesson_order,
        )
        pending = [booking for booking in bookings if booking.status == BookingStatusEnum.PENDING]
        confirmed = [booking for booking in bookings if booking.status == BookingStatusEnum.CONFIRMED]
        return pending, confirmed

    async def _notify_status_change(self, booking: Booking) -> None:
        when = f"{booking.date} at {booking.time_slot}"
        if booking.status == BookingStatusEnum.CONFIRMED:
            await self._notify(
                booking.student_id,
                "Lesson Confirmed",
                f"{booking.tutor_name} confirmed your lesson on {when}.",
            )
        elif booking.status == BookingStatusEnum.REJECTED:
            await self._notify(
                booking.student_id,
                "Booking Declined",
                f"{booking.tutor_name} cannot take your lesson on {when}.",
            )
        elif booking.status == BookingStatusEnum.CANCELED:
            for user_id in (booking.student_id, booking.tutor_id):
                await self._notify(user_id, "Lesson Canceled", f"The lesson on {when} was canceled.")

    async def _notify(self, user_id: str, title: str, body: str) -> None:
        try:
            await self.notifier.notify(user_id, title, body)
        except Exception:
            logger.exception("Notification to %s failed", user_id)


async def get_booking_service(
    store: DocumentStore = Depends(get_document_store),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> BookingService:
    """Dependency provider for booking service."""
    return BookingService(
        store=store,
        availability_repository=AvailabilityRepository(store),
        booking_repository=BookingRepository(store),
        profiles_service=build_profiles_service(store),
        notifier=notifier,
    )
