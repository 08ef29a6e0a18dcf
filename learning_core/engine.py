"""
Learning engine - the operations exposed to the API layer

Wires the stores, the phrase catalog and the clock into the review service,
the task scheduler and the adaptive load controller. Build one engine at
process start and share it:

    settings = load_settings()
    engine = LearningEngine.from_settings(settings)
    engine.submit_review(user_id, phrase_id, quality=4)
"""

from __future__ import annotations

from typing import Optional

from learning_core.adaptive import AdaptiveLoadController
from learning_core.catalog_repo import MongoPhraseCatalog
from learning_core.clock import Clock, utc_now
from learning_core.config import DEFAULT_DAILY_LOAD, Settings
from learning_core.ports import PhraseCatalog
from learning_core.review_service import ReviewService
from learning_core.schemas import (
    AdaptiveRecommendation,
    DailyTaskRecord,
    DueItem,
    LearningAnalyticsRecord,
    LearningProfile,
    Mission,
    ReviewResult,
    StudySessionRecord,
    TodaysTask,
)
from learning_core.srs.constants import DueOrder
from learning_core.store import AnalyticsStore, Database, ProgressStore, TaskStore
from learning_core.task_scheduler import TaskScheduler


class LearningEngine:
    """Facade over the scheduling core."""

    def __init__(
        self,
        db: Database,
        catalog: PhraseCatalog,
        clock: Clock = utc_now,
        due_order: DueOrder = DueOrder.ASCENDING,
        default_daily_load: int = DEFAULT_DAILY_LOAD
    ):
        self.db = db
        self.catalog = catalog
        self.clock = clock

        self.progress = ProgressStore(db, clock=clock, due_order=due_order)
        self.tasks = TaskStore(db, clock=clock)
        self.analytics = AnalyticsStore(db, clock=clock)

        self.reviews = ReviewService(self.progress, catalog, clock=clock)
        self.scheduler = TaskScheduler(
            self.tasks, self.progress, self.analytics, catalog,
            clock=clock, default_daily_load=default_daily_load,
        )
        self.controller = AdaptiveLoadController(
            self.progress, self.analytics, catalog,
            clock=clock, default_daily_load=default_daily_load,
        )

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> "LearningEngine":
        """Connect to the configured SQL store and MongoDB catalog."""
        return cls(
            Database.from_settings(settings),
            MongoPhraseCatalog.connect(settings),
            clock=clock,
            due_order=settings.due_order,
            default_daily_load=settings.default_daily_load,
        )

    def close(self) -> None:
        self.db.dispose()

    # ---- Continuous review ----

    def submit_review(
        self,
        user_id: str,
        phrase_id: str,
        quality: int,
        time_spent_seconds: Optional[int] = None
    ) -> ReviewResult:
        return self.reviews.submit_review(user_id, phrase_id, quality, time_spent_seconds)

    def record_answer(self, user_id: str, phrase_id: str, is_correct: bool) -> ReviewResult:
        return self.reviews.record_answer(user_id, phrase_id, is_correct)

    def get_due_items(
        self,
        user_id: str,
        limit: int = 20,
        order: Optional[DueOrder] = None
    ) -> list[DueItem]:
        return self.reviews.get_due_items(user_id, limit, order)

    # ---- Daily tasks ----

    def get_todays_tasks(self, user_id: str) -> list[TodaysTask]:
        return self.scheduler.get_todays_tasks(user_id)

    def complete_task(
        self,
        user_id: str,
        task_id: str,
        phrase_id: str,
        is_correct: bool,
        time_spent_seconds: int = 0
    ) -> DailyTaskRecord:
        return self.scheduler.complete_task(user_id, task_id, phrase_id, is_correct, time_spent_seconds)

    def skip_task(self, user_id: str, task_id: str) -> DailyTaskRecord:
        return self.scheduler.skip_task(user_id, task_id)

    def initialize_daily_batch(self, user_id: str, daily_load: Optional[int] = None) -> int:
        """Create today's new-phrase tasks; the load defaults to the user's optimal daily load."""
        return self.scheduler.initialize_daily_batch(user_id, daily_load)

    def get_task_count(self, user_id: str) -> int:
        return self.scheduler.get_task_count(user_id)

    # ---- Analytics and missions ----

    def get_analytics(self, user_id: str) -> LearningAnalyticsRecord:
        return self.controller.get_analytics(user_id)

    def get_daily_missions(self, user_id: str) -> list[Mission]:
        return self.controller.generate_daily_missions(user_id)

    def get_learning_profile(self, user_id: str) -> LearningProfile:
        return self.controller.get_learning_profile(user_id)

    def get_adaptive_recommendations(self, user_id: str) -> AdaptiveRecommendation:
        return self.controller.get_adaptive_recommendations(user_id)

    def record_study_session(
        self,
        user_id: str,
        phrases_studied: int,
        correct_answers: int,
        incorrect_answers: int
    ) -> StudySessionRecord:
        return self.controller.record_study_session(
            user_id, phrases_studied, correct_answers, incorrect_answers
        )

    def recompute_analytics(self, user_id: str) -> Optional[LearningAnalyticsRecord]:
        return self.controller.recompute_analytics(user_id)

    def adjust_learning_parameters(self, user_id: str) -> LearningAnalyticsRecord:
        return self.controller.adjust_learning_parameters(user_id)
