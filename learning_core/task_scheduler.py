"""
Task scheduler - fixed-checkpoint daily tasks

Runs alongside the continuous SM-2 schedule. Each phrase walks a fixed
ladder of checkpoint tasks:

    new (day 0) -> review_1 -> review_3 -> review_10 -> review_21 -> review_50

A correct answer on any checkpoint makes sure all five review checkpoints
exist for that phrase. Completing a task bumps the phrase's progress
counters but does NOT recompute its SM-2 interval, ease or next review
time; the two schedules stay independent.
"""

from __future__ import annotations

import dataclasses
from datetime import timedelta
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from learning_core.clock import Clock, day_window, start_of_day, utc_now
from learning_core.config import DEFAULT_DAILY_LOAD
from learning_core.errors import (
    ConcurrentUpdateConflict,
    InvalidInput,
    LearningCoreError,
    NotFound,
    StoreUnavailable,
    require_id,
)
from learning_core.ports import PhraseCatalog
from learning_core.schemas import DailyTaskRecord, TaskCompletion, TaskStatus, TaskType, TodaysTask
from learning_core.srs.constants import PASSING_QUALITY
from learning_core.srs.mastery import classify
from learning_core.srs.state import SRSState, initialize_state
from learning_core.store.analytics import AnalyticsStore
from learning_core.store.progress import ProgressStore
from learning_core.store.tasks import TaskStore

# Checkpoint offsets in days from first learning
SPACED_REPETITION_INTERVALS: dict[TaskType, int] = {
    TaskType.NEW: 0,
    TaskType.REVIEW_1: 1,
    TaskType.REVIEW_3: 3,
    TaskType.REVIEW_10: 10,
    TaskType.REVIEW_21: 21,
    TaskType.REVIEW_50: 50,
}

REVIEW_CHECKPOINTS: list[TaskType] = [
    TaskType.REVIEW_1,
    TaskType.REVIEW_3,
    TaskType.REVIEW_10,
    TaskType.REVIEW_21,
    TaskType.REVIEW_50,
]


def bump_counters(state: Optional[SRSState], is_correct: bool, now) -> SRSState:
    """
    Counter-only progress update used by task completion.

    interval, ease_factor and next_review_at are left untouched.
    """
    current = state if state is not None else initialize_state(now)
    bumped = dataclasses.replace(
        current,
        correct_count=current.correct_count + (1 if is_correct else 0),
        incorrect_count=current.incorrect_count + (0 if is_correct else 1),
        repetitions=current.repetitions + 1,
        last_reviewed_at=now,
    )
    return dataclasses.replace(bumped, status=classify(bumped))


class TaskScheduler:
    """Generates, lists and advances fixed-checkpoint tasks."""

    def __init__(
        self,
        tasks: TaskStore,
        progress: ProgressStore,
        analytics: AnalyticsStore,
        catalog: PhraseCatalog,
        clock: Clock = utc_now,
        default_daily_load: int = DEFAULT_DAILY_LOAD
    ):
        self.tasks = tasks
        self.progress = progress
        self.analytics = analytics
        self.catalog = catalog
        self.clock = clock
        self.default_daily_load = default_daily_load

    def resolve_daily_load(self, user_id: str) -> int:
        """
        Daily batch size from the user's analytics, else the default.

        A stored load of 0 (a light month of sessions) counts as unset.
        """
        record = self.analytics.get(user_id)
        if record is None or record.optimal_daily_load <= 0:
            return self.default_daily_load
        return record.optimal_daily_load

    def initialize_daily_batch(self, user_id: str, daily_load: Optional[int] = None) -> int:
        """
        Create today's `new` tasks for phrases the user has never seen.

        Phrases with a progress record or any existing task for this user are
        excluded, and new tasks already created today count towards the load,
        so calling this twice in one day tops up instead of duplicating.

        Args:
            user_id: User identifier
            daily_load: Number of new phrases for today (defaults to the
                user's optimal daily load)

        Returns:
            Number of tasks created (0 when nothing is available)
        """
        require_id(user_id, "user_id")
        if daily_load is None:
            daily_load = self.resolve_daily_load(user_id)
        if isinstance(daily_load, bool) or not isinstance(daily_load, int) or daily_load < 0:
            raise InvalidInput(f"daily_load must be a non-negative integer, got {daily_load!r}")

        today, tomorrow = day_window(self.clock())
        already_assigned = self.tasks.count_between(user_id, today, tomorrow, task_type=TaskType.NEW)
        remaining = daily_load - already_assigned
        if remaining <= 0:
            logger.debug("Daily batch for {} already full ({} new tasks)", user_id, already_assigned)
            return 0

        exclude = self.progress.reviewed_phrase_ids(user_id) | self.tasks.assigned_phrase_ids(user_id)
        candidates = self.catalog.sample_phrases(remaining, exclude_ids=exclude)
        if not candidates:
            logger.info("No unseen phrases left for {}", user_id)
            return 0

        created = 0
        for phrase in candidates:
            if self.tasks.create_if_absent(
                user_id,
                phrase.phrase_id,
                TaskType.NEW,
                scheduled_date=today,
                days_from_learning=SPACED_REPETITION_INTERVALS[TaskType.NEW],
            ):
                created += 1

        logger.info("Initialized {} new tasks for {}", created, user_id)
        return created

    def get_todays_tasks(self, user_id: str) -> list[TodaysTask]:
        """
        Tasks scheduled for today joined with their phrase, ordered by task type.

        Tasks whose phrase is missing from the catalog are left out.
        """
        today, tomorrow = day_window(self.clock())
        records = self.tasks.list_between(user_id, today, tomorrow)
        if not records:
            return []

        try:
            phrases = self.catalog.get_phrases(r.phrase_id for r in records)
        except StoreUnavailable as exc:
            logger.warning("Catalog unavailable while listing tasks for {}: {}", user_id, exc)
            return []

        result = []
        for record in records:
            phrase = phrases.get(record.phrase_id)
            if phrase is None:
                logger.warning("Task {} references unknown phrase {}", record.id, record.phrase_id)
                continue
            result.append(TodaysTask(task=record, phrase=phrase))
        return result

    def complete_task(
        self,
        user_id: str,
        task_id: str,
        phrase_id: str,
        is_correct: bool,
        time_spent_seconds: int = 0
    ) -> DailyTaskRecord:
        """
        Complete a task, bump the phrase's counters and, on a correct answer,
        make sure the review checkpoints exist.

        The status change and the counter bump commit together, so a failed
        progress write leaves the task pending and the call can be retried.
        Replaying an already recorded outcome returns the stored task and
        does not bump counters a second time.

        Raises:
            InvalidInput: malformed input, or the task belongs to another phrase
            NotFound: the task does not exist for this user
            StoreUnavailable / ConcurrentUpdateConflict: from the store
        """
        require_id(user_id, "user_id")
        try:
            TaskCompletion(
                task_id=task_id,
                phrase_id=phrase_id,
                is_correct=is_correct,
                time_spent_seconds=time_spent_seconds,
            )
        except ValidationError as exc:
            raise InvalidInput(str(exc)) from exc

        task = self.tasks.get(user_id, task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found for user {user_id}")
        if task.phrase_id != phrase_id:
            raise InvalidInput(f"Task {task_id} is for phrase {task.phrase_id}, not {phrase_id}")

        now = self.clock()

        def bump(session):
            self.progress.apply_in_session(
                session, user_id, phrase_id, lambda state: bump_counters(state, is_correct, now)
            )

        try:
            record, newly_completed = self.tasks.mark_completed(
                user_id, task_id, is_correct, time_spent_seconds, on_completed=bump
            )
        except ConcurrentUpdateConflict:
            logger.warning("Concurrent progress update while completing {}, retrying once", task_id)
            record, newly_completed = self.tasks.mark_completed(
                user_id, task_id, is_correct, time_spent_seconds, on_completed=bump
            )

        if not newly_completed:
            logger.info("Task {} already completed, outcome replayed", task_id)

        if is_correct:
            try:
                self.schedule_next_reviews(user_id, phrase_id)
            except LearningCoreError as exc:
                # The completion stays committed; checkpoints are filled in on the next correct answer
                logger.error("Scheduling checkpoints for {}/{} failed: {}", user_id, phrase_id, exc)

        return record

    def schedule_next_reviews(self, user_id: str, phrase_id: str) -> int:
        """
        Create the five review checkpoints for a phrase if they don't exist yet.

        Returns:
            Number of checkpoint tasks created
        """
        now = self.clock()
        created = 0
        for task_type in REVIEW_CHECKPOINTS:
            days = SPACED_REPETITION_INTERVALS[task_type]
            if self.tasks.create_if_absent(
                user_id,
                phrase_id,
                task_type,
                scheduled_date=start_of_day(now + timedelta(days=days)),
                days_from_learning=days,
            ):
                created += 1
        if created:
            logger.debug("Scheduled {} checkpoints for {}/{}", created, user_id, phrase_id)
        return created

    def skip_task(self, user_id: str, task_id: str) -> DailyTaskRecord:
        require_id(user_id, "user_id")
        require_id(task_id, "task_id")
        return self.tasks.mark_skipped(user_id, task_id)

    def get_task_count(self, user_id: str) -> int:
        """Number of pending tasks scheduled for today."""
        today, tomorrow = day_window(self.clock())
        return self.tasks.count_between(user_id, today, tomorrow, status=TaskStatus.PENDING)

    def record_outcome(
        self,
        user_id: str,
        phrase_id: str,
        quality: int,
        time_spent_seconds: Optional[int] = None
    ) -> None:
        """
        Complete today's pending task for a phrase from a scored review.

        Raises:
            NotFound: if there is no pending task for the phrase today
        """
        today, tomorrow = day_window(self.clock())
        pending = [
            t for t in self.tasks.list_between(user_id, today, tomorrow)
            if t.phrase_id == phrase_id and t.status == TaskStatus.PENDING
        ]
        if not pending:
            raise NotFound(f"No pending task today for {user_id}/{phrase_id}")
        self.complete_task(
            user_id,
            pending[0].id,
            phrase_id,
            is_correct=quality >= PASSING_QUALITY,
            time_spent_seconds=time_spent_seconds or 0,
        )
