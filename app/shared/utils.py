"""Shared utility functions."""

from __future__ import annotations

from datetime import datetime, timezone

DATE_KEY_FORMAT = "%Y%m%d"


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_date_key(dt: datetime) -> str:
    """Render datetime as 8-digit YYYYMMDD key."""
    return dt.strftime(DATE_KEY_FORMAT)


def today_key() -> str:
    """Return today's UTC date key."""
    return to_date_key(utc_now())
