"""
SRS - SM-2 spaced repetition scheduling

Pure algorithm layer: no database or network access.

Quick start:
    from learning_core import srs

    state = srs.initialize_state(now)
    state = srs.next_state(state, quality=4, now=now)
    srs.classify(state), srs.mastery_percent(state)
"""

from learning_core.srs.constants import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    DueOrder,
    Quality,
    WordStatus,
)
from learning_core.srs.mastery import classify, mastery_percent
from learning_core.srs.scheduler import (
    batch_next_states,
    ease_delta,
    next_state,
    validate_quality,
)
from learning_core.srs.state import (
    SRSState,
    days_until_review,
    initialize_state,
    is_due_today,
)


__all__ = [
    # Core algorithm
    "next_state",
    "batch_next_states",
    "ease_delta",
    "validate_quality",

    # State
    "SRSState",
    "initialize_state",
    "is_due_today",
    "days_until_review",

    # Classification
    "classify",
    "mastery_percent",

    # Enums / parameters
    "Quality",
    "WordStatus",
    "DueOrder",
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
]
