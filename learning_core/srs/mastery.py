"""
Mastery classification derived from SRS state.

Both functions are pure. Negative repetitions or an ease factor below the
floor are programmer errors and are not checked here.
"""

from __future__ import annotations

from learning_core.srs.constants import (
    MASTERED_MIN_EASE_FACTOR,
    MASTERED_MIN_REPETITIONS,
    MASTERY_EASE_RANGE,
    MASTERY_REPETITION_CAP,
    MIN_EASE_FACTOR,
    WordStatus,
)
from learning_core.srs.state import SRSState


def classify(state: SRSState) -> WordStatus:
    """
    Coarse status of an item.

    - new: no qualifying review yet (or just failed one)
    - mastered: at least 5 repetitions and ease >= 2.0
    - learning: everything else
    """
    if state.repetitions == 0:
        return WordStatus.NEW
    if state.repetitions >= MASTERED_MIN_REPETITIONS and state.ease_factor >= MASTERED_MIN_EASE_FACTOR:
        return WordStatus.MASTERED
    return WordStatus.LEARNING


def mastery_percent(state: SRSState) -> int:
    """
    Display score 0-100: half from repetitions (capped at 10), half from
    ease above the floor (capped at 3.0).
    """
    repetition_score = min(state.repetitions / MASTERY_REPETITION_CAP, 1.0) * 50
    ease_score = min(max(state.ease_factor - MIN_EASE_FACTOR, 0) / MASTERY_EASE_RANGE, 1.0) * 50
    # halves round up
    return int(repetition_score + ease_score + 0.5)
