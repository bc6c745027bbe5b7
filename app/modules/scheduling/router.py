"""Scheduling API router."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from app.modules.scheduling.schemas import DatesRead, DayOverviewRead, DayRead, SlotRead, SlotsRequest
from app.modules.scheduling.service import SchedulingService, get_scheduling_service

router = APIRouter(prefix="/scheduling", tags=["scheduling"])


def _slots(indices: list[int]) -> list[SlotRead]:
    return [SlotRead.from_index(index) for index in indices]


@router.get("/tutors/{tutor_id}/dates", response_model=DatesRead)
async def list_dates(
    tutor_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
) -> DatesRead:
    """List dates with open cells."""
    return DatesRead(tutor_id=tutor_id, dates=await service.list_dates(tutor_id))


@router.get("/tutors/{tutor_id}/days/{date}", response_model=DayRead)
async def get_day(
    tutor_id: str,
    date: str,
    session_length: Literal[30, 60] | None = Query(default=None),
    service: SchedulingService = Depends(get_scheduling_service),
) -> DayRead:
    """Open cells, or bookable start cells for a session length."""
    indices = await service.get_day(tutor_id, date, session_length)
    return DayRead(tutor_id=tutor_id, date=date, session_length=session_length, slots=_slots(indices))


@router.get("/tutors/{tutor_id}/days/{date}/overview", response_model=DayOverviewRead)
async def get_day_overview(
    tutor_id: str,
    date: str,
    service: SchedulingService = Depends(get_scheduling_service),
) -> DayOverviewRead:
    """Open, pending and confirmed cells of a day."""
    overview = await service.get_day_overview(tutor_id, date)
    return DayOverviewRead(
        tutor_id=tutor_id,
        date=overview.date,
        open_slots=_slots(overview.open_slots),
        pending_slots=_slots(overview.pending_slots),
        confirmed_slots=_slots(overview.confirmed_slots),
    )


@router.post("/tutors/{tutor_id}/days/{date}/slots", response_model=DayRead)
async def add_slots(
    tutor_id: str,
    date: str,
    payload: SlotsRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> DayRead:
    """Open cells on a day."""
    indices = await service.add_slots(tutor_id, date, payload.slots)
    return DayRead(tutor_id=tutor_id, date=date, slots=_slots(indices))


@router.post("/tutors/{tutor_id}/days/{date}/slots/remove", response_model=DayRead)
async def remove_slots(
    tutor_id: str,
    date: str,
    payload: SlotsRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> DayRead:
    """Close cells on a day."""
    indices = await service.remove_slots(tutor_id, date, payload.slots)
    return DayRead(tutor_id=tutor_id, date=date, slots=_slots(indices))


@router.delete("/tutors/{tutor_id}/days/{date}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_date(
    tutor_id: str,
    date: str,
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    """Clear all open cells on a day."""
    await service.clear_date(tutor_id, date)
