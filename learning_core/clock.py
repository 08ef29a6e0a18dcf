"""
Clock helpers.

Every component takes a `clock` callable so tests can pin "now" and
exercise day-boundary logic.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    """Truncate a timestamp to midnight of the same day (tz preserved)."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def day_window(moment: datetime) -> tuple[datetime, datetime]:
    """Return the half-open [today 00:00, tomorrow 00:00) window for a moment."""
    today = start_of_day(moment)
    return today, today + timedelta(days=1)
