"""
Adaptive load controller - pace, daily load and missions

Two independent recomputations feed the per-user analytics record:
- recompute_analytics: 30-day study-session volume -> pace, avg load, retention
- adjust_learning_parameters: 7-day review accuracy -> pace and daily load

The stored record sizes the daily task batch and drives mission generation.
Nothing here runs in the background; callers trigger every recomputation.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from loguru import logger

from learning_core.adaptive import constants as C
from learning_core.adaptive.metrics import (
    compute_average_accuracy,
    compute_category_accuracy,
    compute_recent_accuracy,
    count_by_status,
    progress_frame,
    round_half_up,
    sessions_frame,
    split_categories,
    summarize_sessions,
)
from learning_core.clock import Clock, utc_now
from learning_core.config import DEFAULT_DAILY_LOAD
from learning_core.errors import InvalidInput, LearningCoreError, StoreUnavailable, require_id
from learning_core.ports import PhraseCatalog
from learning_core.schemas import (
    AdaptiveRecommendation,
    Difficulty,
    LearningAnalyticsRecord,
    LearningPace,
    LearningProfile,
    Mission,
    MissionType,
    StudySessionRecord,
)
from learning_core.srs.constants import WordStatus
from learning_core.store.analytics import AnalyticsStore
from learning_core.store.progress import ProgressStore


def optimal_daily_load_for_pace(pace: LearningPace) -> int:
    """Phrases per day for a pace (slow 10, normal 20, fast 30)."""
    return C.PACE_DAILY_LOAD.get(LearningPace(pace), C.PACE_DAILY_LOAD[LearningPace.NORMAL])


def classify_volume_pace(avg_phrases_per_day: int) -> LearningPace:
    if avg_phrases_per_day < C.SLOW_PACE_BELOW:
        return LearningPace.SLOW
    if avg_phrases_per_day > C.FAST_PACE_ABOVE:
        return LearningPace.FAST
    return LearningPace.NORMAL


def classify_accuracy_pace(accuracy: float) -> LearningPace:
    if accuracy > C.FAST_ACCURACY_ABOVE:
        return LearningPace.FAST
    if accuracy < C.SLOW_ACCURACY_BELOW:
        return LearningPace.SLOW
    return LearningPace.NORMAL


def motivational_message(mastered: int) -> str:
    for threshold, template in C.MASTERED_MESSAGE_TIERS:
        if mastered > threshold:
            return template.format(count=mastered)
    return C.WELCOME_MESSAGE


def build_missions(
    due_count: int,
    optimal_daily_load: int,
    learning_pace: LearningPace,
    average_accuracy: float,
    weak_categories: list[str]
) -> list[Mission]:
    """
    Prioritized daily missions from current analytics and due count.

    Deterministic: the same inputs always give the same list. Review and
    new-words targets are at least 1, so a listed mission never asks for
    zero phrases.
    """
    missions = []

    if due_count > 0:
        review_target = max(1, min(due_count, optimal_daily_load * C.REVIEW_PERCENT_OF_LOAD // 100))
        missions.append(Mission(
            type=MissionType.REVIEW_WORDS,
            target_count=review_target,
            difficulty=Difficulty.INTERMEDIATE,
            description=f"Review {review_target} phrases scheduled for today",
            estimated_minutes=review_target * C.MINUTES_PER_ITEM[MissionType.REVIEW_WORDS],
        ))

    new_target = max(1, optimal_daily_load * C.NEW_PERCENT_OF_LOAD // 100)
    missions.append(Mission(
        type=MissionType.NEW_WORDS,
        target_count=new_target,
        difficulty=Difficulty.HARD if learning_pace == LearningPace.FAST else Difficulty.INTERMEDIATE,
        description=f"Learn {new_target} new German phrases",
        estimated_minutes=new_target * C.MINUTES_PER_ITEM[MissionType.NEW_WORDS],
    ))

    if average_accuracy > C.CONVERSATION_ACCURACY_ABOVE:
        missions.append(Mission(
            type=MissionType.PRACTICE_CONVERSATION,
            target_count=1,
            difficulty=Difficulty.INTERMEDIATE,
            description="Practice conversational German with the chatbot",
            estimated_minutes=C.FLAT_MINUTES[MissionType.PRACTICE_CONVERSATION],
        ))

    if weak_categories:
        missions.append(Mission(
            type=MissionType.GRAMMAR_FOCUS,
            target_count=C.GRAMMAR_FOCUS_TARGET,
            difficulty=Difficulty.HARD,
            description=f"Focus on {weak_categories[0]} - your weakest area",
            estimated_minutes=C.FLAT_MINUTES[MissionType.GRAMMAR_FOCUS],
        ))

    return missions


class AdaptiveLoadController:
    """Maintains per-user learning analytics and turns them into missions."""

    def __init__(
        self,
        progress: ProgressStore,
        analytics: AnalyticsStore,
        catalog: PhraseCatalog,
        clock: Clock = utc_now,
        default_daily_load: int = DEFAULT_DAILY_LOAD
    ):
        self.progress = progress
        self.analytics = analytics
        self.catalog = catalog
        self.clock = clock
        self.default_daily_load = default_daily_load

    def _default_record(self, user_id: str) -> LearningAnalyticsRecord:
        return LearningAnalyticsRecord(user_id=user_id, optimal_daily_load=self.default_daily_load)

    def _effective_load(self, record: LearningAnalyticsRecord) -> int:
        # 0 comes from a light 30-day window and means "not enough data"
        if record.optimal_daily_load <= 0:
            return self.default_daily_load
        return record.optimal_daily_load

    # ---- Analytics record ----

    def get_analytics(self, user_id: str) -> LearningAnalyticsRecord:
        """
        Stored analytics for a user; a default record is created on first use.

        If the store is down the default is returned without being saved.
        """
        require_id(user_id, "user_id")
        record = self.analytics.get(user_id)
        if record is not None:
            return record

        record = self._default_record(user_id)
        try:
            self.analytics.save(record)
        except StoreUnavailable as exc:
            logger.warning("Could not persist default analytics for {}: {}", user_id, exc)
        return record

    def identify_categories(self, user_id: str) -> tuple[list[str], list[str]]:
        """
        Weak (< 60%) and strong (> 80%) categories by mean item accuracy.

        Returns:
            (weak, strong), at most three each; weakest / strongest first
        """
        entries = self.progress.list_for_user(user_id)
        if not entries:
            return [], []
        phrases = self.catalog.get_phrases(e.phrase_id for e in entries)
        category_accuracy = compute_category_accuracy(progress_frame(entries), phrases)
        return split_categories(
            category_accuracy,
            C.WEAK_CATEGORY_BELOW,
            C.STRONG_CATEGORY_ABOVE,
            C.MAX_LISTED_CATEGORIES,
        )

    def recompute_analytics(self, user_id: str) -> Optional[LearningAnalyticsRecord]:
        """
        Refresh pace, average load and retention from the last 30 days of sessions.

        Does nothing (and keeps the existing record) when there were no
        sessions in the window.

        Returns:
            The saved record, or None when nothing was recomputed
        """
        require_id(user_id, "user_id")
        now = self.clock()
        sessions = self.analytics.sessions_since(user_id, now - timedelta(days=C.ANALYTICS_WINDOW_DAYS))
        if not sessions:
            logger.debug("No sessions in the last {} days for {}; analytics kept", C.ANALYTICS_WINDOW_DAYS, user_id)
            return None

        avg_per_day, retention = summarize_sessions(sessions_frame(sessions), C.ANALYTICS_WINDOW_DAYS)
        pace = classify_volume_pace(avg_per_day)

        current = self.analytics.get(user_id) or self._default_record(user_id)
        try:
            weak, strong = self.identify_categories(user_id)
        except StoreUnavailable as exc:
            logger.warning("Catalog unavailable, keeping categories for {}: {}", user_id, exc)
            weak, strong = current.weak_categories, current.strong_categories

        record = current.model_copy(update={
            "avg_phrases_per_day": avg_per_day,
            "optimal_daily_load": avg_per_day,
            "learning_pace": pace,
            "avg_retention": retention,
            "weak_categories": weak,
            "strong_categories": strong,
            "last_analyzed_at": now,
        })
        self.analytics.save(record)
        logger.info(
            "Analytics for {}: {} phrases/day, pace={}, retention={}%",
            user_id, avg_per_day, pace.value, retention,
        )
        return record

    def adjust_learning_parameters(self, user_id: str) -> LearningAnalyticsRecord:
        """
        Re-tune pace and daily load from the last 7 days of review accuracy.

        Accuracy is the share of recently reviewed items with at least one
        correct answer: > 85% -> fast/30, < 60% -> slow/10, otherwise
        normal/20. No recent reviews counts as 0% accuracy.
        """
        require_id(user_id, "user_id")
        now = self.clock()
        recent = self.progress.list_for_user(
            user_id, reviewed_since=now - timedelta(days=C.ADJUSTMENT_WINDOW_DAYS)
        )
        accuracy = compute_recent_accuracy(progress_frame(recent))
        pace = classify_accuracy_pace(accuracy)

        current = self.analytics.get(user_id) or self._default_record(user_id)
        record = current.model_copy(update={
            "learning_pace": pace,
            "optimal_daily_load": optimal_daily_load_for_pace(pace),
            "avg_retention": round_half_up(accuracy),
            "last_analyzed_at": now,
        })
        self.analytics.save(record)
        logger.info("Adjusted {}: accuracy={:.1f}% -> pace={}", user_id, accuracy, pace.value)
        return record

    # ---- Sessions ----

    def record_study_session(
        self,
        user_id: str,
        phrases_studied: int,
        correct_answers: int,
        incorrect_answers: int
    ) -> StudySessionRecord:
        """
        Append a study session and refresh analytics.

        A failed analytics refresh is logged; the session stays recorded.
        """
        require_id(user_id, "user_id")
        for name, value in (
            ("phrases_studied", phrases_studied),
            ("correct_answers", correct_answers),
            ("incorrect_answers", incorrect_answers),
        ):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidInput(f"{name} must be a non-negative integer, got {value!r}")
        if correct_answers > phrases_studied:
            raise InvalidInput("correct_answers cannot exceed phrases_studied")

        accuracy = round_half_up(correct_answers / phrases_studied * 100) if phrases_studied > 0 else 0
        session = self.analytics.add_session(
            user_id, phrases_studied, correct_answers, incorrect_answers, accuracy
        )

        try:
            self.recompute_analytics(user_id)
        except LearningCoreError as exc:
            logger.error("Analytics refresh after session failed for {}: {}", user_id, exc)
        return session

    # ---- Profile and missions ----

    def get_learning_profile(self, user_id: str) -> LearningProfile:
        require_id(user_id, "user_id")
        analytics = self.get_analytics(user_id)
        progress_df = progress_frame(self.progress.list_for_user(user_id))
        return LearningProfile(
            user_id=user_id,
            total_mastered=count_by_status(progress_df, WordStatus.MASTERED.value),
            total_learning=count_by_status(progress_df, WordStatus.LEARNING.value),
            average_accuracy=compute_average_accuracy(progress_df),
            optimal_daily_load=self._effective_load(analytics),
            learning_pace=analytics.learning_pace,
            weak_categories=analytics.weak_categories,
            strong_categories=analytics.strong_categories,
        )

    def generate_daily_missions(self, user_id: str) -> list[Mission]:
        profile = self.get_learning_profile(user_id)
        due_count = self.progress.count_due(user_id, self.clock())
        return build_missions(
            due_count,
            profile.optimal_daily_load,
            profile.learning_pace,
            profile.average_accuracy,
            profile.weak_categories,
        )

    def get_adaptive_recommendations(self, user_id: str) -> AdaptiveRecommendation:
        profile = self.get_learning_profile(user_id)
        missions = build_missions(
            self.progress.count_due(user_id, self.clock()),
            profile.optimal_daily_load,
            profile.learning_pace,
            profile.average_accuracy,
            profile.weak_categories,
        )
        return AdaptiveRecommendation(
            missions=missions,
            estimated_total_minutes=sum(m.estimated_minutes for m in missions),
            motivational_message=motivational_message(profile.total_mastered),
            focus_areas=profile.weak_categories[:C.MAX_LISTED_CATEGORIES],
        )
