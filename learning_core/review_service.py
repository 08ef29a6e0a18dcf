"""
Review service - continuous SM-2 scheduling

Main workflow:
1. Validate the review outcome (nothing is written on bad input)
2. Load the state inside an atomic read-modify-write (or start a new one)
3. Apply the scheduling function and update counters / status
4. Persist and return the new state with its mastery percentage
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from learning_core.clock import Clock, utc_now
from learning_core.errors import InvalidInput, StoreUnavailable, require_id
from learning_core.ports import PhraseCatalog
from learning_core.schemas import DueItem, ReviewOutcome, ReviewResult
from learning_core.srs.constants import (
    CORRECT_ANSWER_QUALITY,
    INCORRECT_ANSWER_QUALITY,
    PASSING_QUALITY,
    DueOrder,
)
from learning_core.srs.mastery import classify, mastery_percent
from learning_core.srs.scheduler import next_state, validate_quality
from learning_core.srs.state import SRSState, initialize_state
from learning_core.store.progress import ProgressStore


def apply_review(state: Optional[SRSState], quality: int, now: datetime) -> SRSState:
    """
    Full effect of one scored review on a (possibly absent) state.

    Runs the scheduling function, then bumps the correct/incorrect counter,
    derives the status and stamps the review time.
    """
    current = state if state is not None else initialize_state(now)
    scheduled = next_state(current, quality, now)
    passed = quality >= PASSING_QUALITY
    scheduled = dataclasses.replace(
        scheduled,
        correct_count=current.correct_count + (1 if passed else 0),
        incorrect_count=current.incorrect_count + (0 if passed else 1),
        last_reviewed_at=now,
    )
    return dataclasses.replace(scheduled, status=classify(scheduled))


class ReviewService:
    """Submits reviews against the continuous schedule and lists due items."""

    def __init__(
        self,
        progress: ProgressStore,
        catalog: PhraseCatalog,
        clock: Clock = utc_now
    ):
        self.progress = progress
        self.catalog = catalog
        self.clock = clock

    def submit_review(
        self,
        user_id: str,
        phrase_id: str,
        quality: int,
        time_spent_seconds: Optional[int] = None
    ) -> ReviewResult:
        """
        Record a scored review and reschedule the phrase.

        Args:
            user_id: Authenticated user id
            phrase_id: Reviewed phrase
            quality: Recall quality 0-5
            time_spent_seconds: Optional time on task

        Returns:
            ReviewResult with the new state, mastery percent and status

        Raises:
            InvalidInput: bad ids or quality (nothing written)
            StoreUnavailable / ConcurrentUpdateConflict: from the store
        """
        require_id(user_id, "user_id")
        require_id(phrase_id, "phrase_id")
        validate_quality(quality)
        try:
            ReviewOutcome(quality=quality, time_spent_seconds=time_spent_seconds)
        except ValidationError as exc:
            raise InvalidInput(str(exc)) from exc

        now = self.clock()
        new_state = self.progress.apply(
            user_id, phrase_id, lambda state: apply_review(state, quality, now)
        )
        percent = mastery_percent(new_state)
        logger.info(
            "Review {}/{} q={}: interval={}d reps={} status={}",
            user_id, phrase_id, quality, new_state.interval, new_state.repetitions, new_state.status.value,
        )
        return ReviewResult(new_state=new_state, mastery_percent=percent, status=new_state.status)

    def record_answer(self, user_id: str, phrase_id: str, is_correct: bool) -> ReviewResult:
        """Simplified correct/incorrect path, mapped onto quality 5 / 2."""
        quality = CORRECT_ANSWER_QUALITY if is_correct else INCORRECT_ANSWER_QUALITY
        return self.submit_review(user_id, phrase_id, int(quality))

    def record_outcome(
        self,
        user_id: str,
        phrase_id: str,
        quality: int,
        time_spent_seconds: Optional[int] = None
    ) -> None:
        self.submit_review(user_id, phrase_id, quality, time_spent_seconds)

    def get_due_items(
        self,
        user_id: str,
        limit: int = 20,
        order: Optional[DueOrder] = None
    ) -> list[DueItem]:
        """
        Items due now, joined with their catalog content.

        Store or catalog outages degrade to an empty list / missing content.
        """
        entries = self.progress.list_due(user_id, self.clock(), limit, order)
        if not entries:
            return []

        try:
            phrases = self.catalog.get_phrases(e.phrase_id for e in entries)
        except StoreUnavailable as exc:
            logger.warning("Catalog unavailable while listing due items for {}: {}", user_id, exc)
            phrases = {}

        return [
            DueItem(phrase_id=e.phrase_id, phrase=phrases.get(e.phrase_id), state=e.state)
            for e in entries
        ]
