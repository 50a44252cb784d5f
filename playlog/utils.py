"""Utility functions for the application."""

import math
from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC datetime.

    Naive datetimes are assumed to already be UTC; SQLite hands stored values
    back without tzinfo, so this is applied before any arithmetic or storage.
    Returns None if input is None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def day_end(d: date) -> datetime:
    return datetime.combine(d, time.max, tzinfo=timezone.utc)


def derive_duration_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Whole minutes between two instants, rounding halves up.

    Negative spans are returned as-is.
    """
    seconds = (ensure_utc(ended_at) - ensure_utc(started_at)).total_seconds()
    return math.floor(seconds / 60 + 0.5)
