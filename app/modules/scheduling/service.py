"""Scheduling business logic layer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from fastapi import Depends

from app.core.document_store import DocumentStore
from app.core.enums import BookingStatusEnum, LIVE_BOOKING_STATUSES
from app.core.stores import get_document_store
from app.modules.booking.repository import BookingRepository
from app.modules.profiles.service import ProfilesService, build_profiles_service
from app.modules.scheduling.repository import AvailabilityRepository
from app.modules.scheduling.slots import bookable_start_slots, normalize_slots, parse_date_key


@dataclass(slots=True)
class DayOverview:
    """Tutor's view of one day."""

    date: str
    open_slots: list[int] = field(default_factory=list)
    pending_slots: list[int] = field(default_factory=list)
    confirmed_slots: list[int] = field(default_factory=list)


class SchedulingService:
    """Scheduling domain service."""

    def __init__(
        self,
        repository: AvailabilityRepository,
        booking_repository: BookingRepository,
        profiles_service: ProfilesService,
    ) -> None:
        self.repository = repository
        self.booking_repository = booking_repository
        self.profiles_service = profiles_service

    async def add_slots(self, tutor_id: str, date: str, slots: Iterable[int | str]) -> list[int]:
        """Open cells on a date; cells held by a booking stay closed."""
        await self.profiles_service.get_tutor(tutor_id)
        opened = await self.repository.add_slots(tutor_id, parse_date_key(date), normalize_slots(slots))
        return sorted(opened)

    async def remove_slots(self, tutor_id: str, date: str, slots: Iterable[int | str]) -> list[int]:
        await self.profiles_service.get_tutor(tutor_id)
        remaining = await self.repository.remove_slots(tutor_id, parse_date_key(date), normalize_slots(slots))
        return sorted(remaining)

    async def clear_date(self, tutor_id: str, date: str) -> None:
        await self.profiles_service.get_tutor(tutor_id)
        await self.repository.clear_date(tutor_id, parse_date_key(date))

    async def list_dates(self, tutor_id: str) -> list[str]:
        return await self.repository.list_dates(tutor_id)

    async def get_day(self, tutor_id: str, date: str, session_length: int | None = None) -> list[int]:
        """Open cells, or bookable start cells when a session length is given."""
        open_slots = await self.repository.get_open_slots(tutor_id, parse_date_key(date))
        if session_length is None:
            return sorted(open_slots)
        tutor = await self.profiles_service.get_tutor(tutor_id)
        allowed_lengths = self.profiles_service.allowed_session_lengths(tutor)
        if session_length not in allowed_lengths:
            return []
        return bookable_start_slots(open_slots, session_length, allowed_lengths)

    async def get_day_overview(self, tutor_id: str, date: str) -> DayOverview:
        date = parse_date_key(date)
        open_slots = await self.repository.get_open_slots(tutor_id, date)
        bookings = await self.booking_repository.list_by_tutor(
            tutor_id,
            date=date,
            statuses=LIVE_BOOKING_STATUSES,
        )
        pending: set[int] = set()
        confirmed: set[int] = set()
        for booking in bookings:
            target = pending if booking.status == BookingStatusEnum.PENDING else confirmed
            target |= booking.occupied_slots
        return DayOverview(
            date=date,
            open_slots=sorted(open_slots),
            pending_slots=sorted(pending),
            confirmed_slots=sorted(confirmed),
        )


async def get_scheduling_service(store: DocumentStore = Depends(get_document_store)) -> SchedulingService:
    """Dependency provider for scheduling service."""
    return SchedulingService(
        AvailabilityRepository(store),
        BookingRepository(store),
        build_profiles_service(store),
    )
