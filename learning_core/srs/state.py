"""
SRS State - per (user, item) spaced-repetition state

Defines the memory state carried between reviews and the day-granular
helpers built on top of it.

Key concepts:
- Interval: whole days until the next review (>= 1)
- Ease factor: growth multiplier for intervals, stored x1000 (>= 1300)
- Repetitions: consecutive successful reviews, reset to 0 on failure
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from learning_core.clock import start_of_day
from learning_core.srs.constants import (
    DEFAULT_EASE_FACTOR,
    FIRST_INTERVAL,
    WordStatus,
)


@dataclass
class SRSState:
    """
    Spaced-repetition state for a single (user, item) pair.

    Created lazily on first review; only ever replaced by the output of the
    scheduling function (plus the counter bumps of task completion).
    """
    interval: int
    ease_factor: int
    repetitions: int
    next_review_at: datetime

    # Performance tracking (monotonically increasing)
    correct_count: int = 0
    incorrect_count: int = 0

    status: WordStatus = WordStatus.NEW
    last_reviewed_at: Optional[datetime] = None


def initialize_state(now: datetime) -> SRSState:
    """
    Initialize state for an item the user has never reviewed.

    Args:
        now: Current timestamp

    Returns:
        New SRSState with the first review scheduled one day out
    """
    return SRSState(
        interval=FIRST_INTERVAL,
        ease_factor=DEFAULT_EASE_FACTOR,
        repetitions=0,
        next_review_at=now + timedelta(days=FIRST_INTERVAL),
        status=WordStatus.NEW,
    )


def is_due_today(next_review_at: datetime, now: datetime) -> bool:
    """
    Determine if an item should be reviewed today.

    Compares calendar days, so anything scheduled for later today counts.
    """
    return start_of_day(next_review_at) <= start_of_day(now)


def days_until_review(next_review_at: datetime, now: datetime) -> int:
    """
    Number of calendar days until the next review (negative if overdue).
    """
    delta = start_of_day(next_review_at) - start_of_day(now)
    return math.ceil(delta.total_seconds() / 86400.0)
