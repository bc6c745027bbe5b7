"""Core enums used across modules."""

from enum import IntEnum, StrEnum


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELED = "canceled"


class SessionLengthEnum(IntEnum):
    """Supported lesson lengths in minutes."""

    HALF_HOUR = 30
    HOUR = 60


class NotificationStatusEnum(StrEnum):
    """Notification delivery outcome."""

    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


LIVE_BOOKING_STATUSES = frozenset({BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED})
