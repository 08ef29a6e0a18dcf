"""
SQLAlchemy ORM Models for the learning store

Defines per-user progress, checkpoint tasks, study sessions and learning
analytics. Phrase content lives in the catalog, not here.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserProgress(Base):
    """
    Persistent SM-2 state for a single (user_id, phrase_id).

    `version` is the compare-and-swap counter: every UPDATE checks and bumps
    it, so two writers that read the same row cannot both commit.
    """
    __tablename__ = 'user_progress'
    __table_args__ = (
        UniqueConstraint('user_id', 'phrase_id', name='uq_user_progress_user_phrase'),
        Index('idx_user_progress_due', 'user_id', 'next_review_at'),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False)
    phrase_id = Column(String(64), nullable=False)

    # Spaced repetition fields
    interval = Column(Integer, nullable=False, default=1)  # Days until next review
    ease_factor = Column(Integer, nullable=False, default=2500)  # Ease x1000
    repetitions = Column(Integer, nullable=False, default=0)

    # Performance tracking
    correct_count = Column(Integer, nullable=False, default=0)
    incorrect_count = Column(Integer, nullable=False, default=0)
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    next_review_at = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(20), nullable=False, default='new')  # new / learning / mastered

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<UserProgress({self.user_id}, {self.phrase_id}, reps={self.repetitions})>"


class DailyTask(Base):
    """
    One fixed-checkpoint task. At most one row per (user, phrase, task_type).
    """
    __tablename__ = 'daily_tasks'
    __table_args__ = (
        UniqueConstraint('user_id', 'phrase_id', 'task_type', name='uq_daily_task_checkpoint'),
        Index('idx_daily_tasks_schedule', 'user_id', 'scheduled_date'),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False)
    phrase_id = Column(String(64), nullable=False)

    # Task scheduling
    scheduled_date = Column(DateTime(timezone=True), nullable=False)  # Midnight of the due day
    task_type = Column(String(20), nullable=False)
    days_from_learning = Column(Integer, nullable=False)

    # Task status
    status = Column(String(20), nullable=False, default='pending')
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Performance
    is_correct = Column(Boolean, nullable=True)  # None = not done
    time_spent_seconds = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<DailyTask({self.id}, {self.phrase_id}/{self.task_type}, {self.status})>"


class StudySession(Base):
    """
    Aggregate counts for one completed study session. Append-only.
    """
    __tablename__ = 'study_sessions'
    __table_args__ = (
        Index('idx_study_sessions_user_date', 'user_id', 'session_date'),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False)

    session_date = Column(DateTime(timezone=True), nullable=False)

    # Performance metrics
    phrases_studied = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    incorrect_answers = Column(Integer, nullable=False, default=0)
    accuracy = Column(Integer, nullable=False, default=0)  # percentage

    def __repr__(self):
        return f"<StudySession({self.id}, studied={self.phrases_studied})>"


class LearningAnalytics(Base):
    """
    Learning pace and load parameters, one row per user.
    """
    __tablename__ = 'learning_analytics'

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, unique=True)

    avg_phrases_per_day = Column(Integer, nullable=False, default=0)
    optimal_daily_load = Column(Integer, nullable=False, default=20)
    learning_pace = Column(String(10), nullable=False, default='normal')

    # Retention metrics
    avg_retention = Column(Integer, nullable=False, default=0)  # percentage
    weak_categories = Column(Text, nullable=True)  # JSON array
    strong_categories = Column(Text, nullable=True)  # JSON array

    last_analyzed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<LearningAnalytics({self.user_id}, pace={self.learning_pace})>"
