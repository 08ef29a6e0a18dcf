"""
Analytics store - study sessions and per-user learning analytics
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import select

from learning_core.clock import Clock, utc_now
from learning_core.errors import StoreUnavailable, require_id
from learning_core.schemas import LearningAnalyticsRecord, LearningPace, StudySessionRecord
from learning_core.store.database import Database
from learning_core.store.models import LearningAnalytics, StudySession
from learning_core.store.progress import as_utc


def _load_categories(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [str(c) for c in json.loads(raw)]


def _to_analytics(row: LearningAnalytics) -> LearningAnalyticsRecord:
    return LearningAnalyticsRecord(
        user_id=row.user_id,
        avg_phrases_per_day=row.avg_phrases_per_day,
        optimal_daily_load=row.optimal_daily_load,
        learning_pace=LearningPace(row.learning_pace),
        avg_retention=row.avg_retention,
        weak_categories=_load_categories(row.weak_categories),
        strong_categories=_load_categories(row.strong_categories),
        last_analyzed_at=as_utc(row.last_analyzed_at),
    )


def _to_session(row: StudySession) -> StudySessionRecord:
    return StudySessionRecord(
        id=row.id,
        user_id=row.user_id,
        session_date=as_utc(row.session_date),
        phrases_studied=row.phrases_studied,
        correct_answers=row.correct_answers,
        incorrect_answers=row.incorrect_answers,
        accuracy=row.accuracy,
    )


class AnalyticsStore:
    """Reads and writes learning_analytics and study_sessions rows."""

    def __init__(self, db: Database, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    # ---- Learning analytics ----

    def get(self, user_id: str) -> Optional[LearningAnalyticsRecord]:
        """Stored analytics for a user, or None (also when the store is down)."""
        require_id(user_id, "user_id")
        try:
            with self.db.session_scope() as session:
                row = session.execute(
                    select(LearningAnalytics).where(LearningAnalytics.user_id == user_id)
                ).scalar_one_or_none()
                return _to_analytics(row) if row is not None else None
        except StoreUnavailable as exc:
            logger.warning("Analytics lookup failed for {}: {}", user_id, exc)
            return None

    def save(self, record: LearningAnalyticsRecord) -> LearningAnalyticsRecord:
        """Insert or overwrite the analytics row for record.user_id."""
        require_id(record.user_id, "user_id")
        now = self.clock()
        with self.db.session_scope() as session:
            row = session.execute(
                select(LearningAnalytics)
                .where(LearningAnalytics.user_id == record.user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if row is None:
                row = LearningAnalytics(id=uuid.uuid4().hex, user_id=record.user_id, created_at=now)
                session.add(row)

            row.avg_phrases_per_day = record.avg_phrases_per_day
            row.optimal_daily_load = record.optimal_daily_load
            row.learning_pace = LearningPace(record.learning_pace).value
            row.avg_retention = record.avg_retention
            row.weak_categories = json.dumps(record.weak_categories)
            row.strong_categories = json.dumps(record.strong_categories)
            row.last_analyzed_at = record.last_analyzed_at
            row.updated_at = now
        return record

    # ---- Study sessions ----

    def add_session(
        self,
        user_id: str,
        phrases_studied: int,
        correct_answers: int,
        incorrect_answers: int,
        accuracy: int
    ) -> StudySessionRecord:
        """Append one study session record."""
        require_id(user_id, "user_id")
        record = StudySessionRecord(
            id=uuid.uuid4().hex,
            user_id=user_id,
            session_date=self.clock(),
            phrases_studied=phrases_studied,
            correct_answers=correct_answers,
            incorrect_answers=incorrect_answers,
            accuracy=accuracy,
        )
        with self.db.session_scope() as session:
            session.add(StudySession(**record.model_dump()))
        return record

    def sessions_since(self, user_id: str, since: datetime) -> list[StudySessionRecord]:
        """Study sessions with session_date >= since, oldest first (empty when the store is down)."""
        require_id(user_id, "user_id")
        try:
            with self.db.session_scope() as session:
                rows = session.execute(
                    select(StudySession)
                    .where(StudySession.user_id == user_id, StudySession.session_date >= since)
                    .order_by(StudySession.session_date)
                ).scalars().all()
                return [_to_session(row) for row in rows]
        except StoreUnavailable as exc:
            logger.warning("Session query failed for {}: {}", user_id, exc)
            return []
