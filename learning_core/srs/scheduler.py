"""
Scheduler - SM-2 Algorithm Logic

Pure scheduling and state updates (no database calls).

Main workflow:
1. Load state (caller's responsibility)
2. Validate quality
3. Update ease factor, repetitions and interval
4. Return the new state; the caller persists it

All arithmetic is integer fixed-point (ease x1000) so that a state read
back from the store is identical to the one computed here.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import Iterable, Optional

from learning_core.clock import utc_now
from learning_core.errors import InvalidInput
from learning_core.srs.constants import (
    EASE_SCALE,
    FAILURE_INTERVAL,
    FIRST_INTERVAL,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)
from learning_core.srs.state import SRSState


def validate_quality(quality: int) -> int:
    """
    Reject anything that is not an integer in [0, 5].

    Raises:
        InvalidInput: if quality is out of range or not an integer
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidInput(f"Quality must be an integer, got {quality!r}")
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidInput(f"Quality must be between {int(MIN_QUALITY)} and {int(MAX_QUALITY)}, got {quality}")
    return int(quality)


def ease_delta(quality: int) -> int:
    """
    SM-2 ease adjustment, already scaled x1000.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), computed exactly
    as 100 - d * (80 + 20 * d) with d = 5 - q.
    """
    d = MAX_QUALITY - quality
    return 100 - d * (80 + 20 * d)


def _scaled_round(interval: int, ease_factor: int) -> int:
    """round(interval * ease / 1000) with halves rounded up."""
    return (interval * ease_factor + EASE_SCALE // 2) // EASE_SCALE


def next_state(
    state: SRSState,
    quality: int,
    now: Optional[datetime] = None
) -> SRSState:
    """
    Compute the state after one scored review.

    Args:
        state: Current state (not modified)
        quality: Recall quality 0-5 (< 3 is a failure)
        now: Review timestamp (defaults to now)

    Returns:
        New SRSState; only interval, ease_factor, repetitions and
        next_review_at differ from the input

    Raises:
        InvalidInput: if quality is outside [0, 5]
    """
    quality = validate_quality(quality)
    if now is None:
        now = utc_now()

    ease_factor = max(state.ease_factor + ease_delta(quality), MIN_EASE_FACTOR)

    if quality < PASSING_QUALITY:
        repetitions = 0
        interval = FAILURE_INTERVAL
    else:
        repetitions = state.repetitions + 1
        if repetitions == 1:
            interval = FIRST_INTERVAL
        elif repetitions == 2:
            interval = SECOND_INTERVAL
        else:
            interval = _scaled_round(state.interval, ease_factor)

    return dataclasses.replace(
        state,
        interval=interval,
        ease_factor=ease_factor,
        repetitions=repetitions,
        next_review_at=now + timedelta(days=interval),
    )


def batch_next_states(
    reviews: Iterable[tuple[SRSState, int]],
    now: Optional[datetime] = None
) -> list[SRSState]:
    """
    Apply next_state to many (state, quality) pairs, e.g. after a session.

    All qualities are validated before any state is computed.
    """
    reviews = list(reviews)
    for _, quality in reviews:
        validate_quality(quality)
    if now is None:
        now = utc_now()
    return [next_state(state, quality, now) for state, quality in reviews]
