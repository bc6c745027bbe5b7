"""Half-hour grid arithmetic for tutor days.

A day is 48 cells; index 0 is 00:00 and index 47 is 23:30. Labels are only
used at the edges, everything else compares integer indices.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime

from app.core.enums import SessionLengthEnum
from app.shared.exceptions import (
    BusinessRuleException,
    InvalidTimeFormatException,
    OutOfRangeException,
)
from app.shared.utils import DATE_KEY_FORMAT

SLOTS_PER_DAY = 48
SLOT_MINUTES = 30
LAST_SLOT_INDEX = SLOTS_PER_DAY - 1

_LABEL_RE = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<meridiem>[ap]\.?m\.?)?$", re.IGNORECASE)
_DATE_KEY_RE = re.compile(r"^\d{8}$")


def grid_index(label: str) -> int:
    """Map '2:00 PM' or '14:00' style label to grid index."""
    match = _LABEL_RE.match(label.strip()) if isinstance(label, str) else None
    if match is None:
        raise InvalidTimeFormatException(f"Unrecognized time label: {label!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")

    if meridiem is not None:
        if not 1 <= hour <= 12:
            raise InvalidTimeFormatException(f"Hour out of range in {label!r}")
        is_pm = meridiem.lower().startswith("p")
        hour = hour % 12 + (12 if is_pm else 0)
    elif not 0 <= hour <= 23:
        raise InvalidTimeFormatException(f"Hour out of range in {label!r}")

    if minute not in (0, SLOT_MINUTES):
        raise InvalidTimeFormatException(f"{label!r} is not on the half-hour grid")
    return hour * 2 + minute // SLOT_MINUTES


def time_label(index: int) -> str:
    """Render grid index as 12-hour label; index 48 is the following midnight."""
    if not 0 <= index <= SLOTS_PER_DAY:
        raise OutOfRangeException(f"Grid index {index} is outside the day")
    hour, half = divmod(index % SLOTS_PER_DAY, 2)
    meridiem = "AM" if hour < 12 else "PM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{half * SLOT_MINUTES:02d} {meridiem}"


def cells_for_length(session_length: int) -> int:
    try:
        return SessionLengthEnum(session_length) // SLOT_MINUTES
    except ValueError:
        raise BusinessRuleException(f"Unsupported session length: {session_length}") from None


def occupied_slots(start_index: int, session_length: int) -> set[int]:
    """Return the contiguous run of cells a session starting at start_index covers."""
    cells = cells_for_length(session_length)
    if not 0 <= start_index <= LAST_SLOT_INDEX:
        raise OutOfRangeException(f"Start index {start_index} is outside the day")
    if start_index + cells - 1 > LAST_SLOT_INDEX:
        raise OutOfRangeException("Session would run past the end of the day")
    return set(range(start_index, start_index + cells))


def end_time_label(start_index: int, session_length: int) -> str:
    occupied = occupied_slots(start_index, session_length)
    return time_label(max(occupied) + 1)


def filter_by_allowed_lengths(slots: Iterable[int], allowed_lengths: Iterable[int]) -> set[int]:
    """Drop half-past starts when the tutor only offers hour-long sessions."""
    slots = set(slots)
    if set(allowed_lengths) == {SessionLengthEnum.HOUR}:
        return {slot for slot in slots if slot % 2 == 0}
    return slots


def bookable_start_slots(
    open_slots: Iterable[int],
    session_length: int,
    allowed_lengths: Iterable[int],
) -> list[int]:
    """Start cells whose whole session fits in the open cells."""
    open_slots = set(open_slots)
    cells = cells_for_length(session_length)
    candidates = filter_by_allowed_lengths(open_slots, allowed_lengths)
    return sorted(
        start
        for start in candidates
        if start + cells - 1 <= LAST_SLOT_INDEX
        and all(start + offset in open_slots for offset in range(cells))
    )


def normalize_slots(values: Iterable[int | str]) -> set[int]:
    """Accept grid indices or labels and return indices."""
    result: set[int] = set()
    for value in values:
        if isinstance(value, bool):
            raise InvalidTimeFormatException(f"Invalid slot value: {value!r}")
        if isinstance(value, int):
            if not 0 <= value <= LAST_SLOT_INDEX:
                raise OutOfRangeException(f"Grid index {value} is outside the day")
            result.add(value)
        else:
            result.add(grid_index(value))
    return result


def parse_date_key(value: str) -> str:
    """Validate 8-digit YYYYMMDD calendar date."""
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        raise InvalidTimeFormatException(f"Date must be YYYYMMDD, got {value!r}")
    try:
        datetime.strptime(value, DATE_KEY_FORMAT)
    except ValueError:
        raise InvalidTimeFormatException(f"{value!r} is not a calendar date") from None
    return value
