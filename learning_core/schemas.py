"""
Pydantic models for records crossing the store and API boundaries.

Everything the store hands back, and everything a caller hands in, is
validated into one of these shapes; no loose dicts travel between the
store and the schedulers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from learning_core.srs.constants import WordStatus
from learning_core.srs.state import SRSState


class Difficulty(str, Enum):
    """Difficulty of a phrase or a mission."""
    EASY = "easy"
    INTERMEDIATE = "intermediate"
    HARD = "hard"


class TaskType(str, Enum):
    """Fixed-checkpoint task types."""
    NEW = "new"
    REVIEW_1 = "review_1"
    REVIEW_3 = "review_3"
    REVIEW_10 = "review_10"
    REVIEW_21 = "review_21"
    REVIEW_50 = "review_50"
    EXAM = "exam"


class TaskStatus(str, Enum):
    """Task lifecycle: pending -> completed | skipped (both terminal)."""
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class LearningPace(str, Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"


class MissionType(str, Enum):
    REVIEW_WORDS = "review_words"
    NEW_WORDS = "new_words"
    PRACTICE_CONVERSATION = "practice_conversation"
    GRAMMAR_FOCUS = "grammar_focus"


# ---- Catalog ----

class Phrase(BaseModel):
    """A learning item from the content catalog."""
    phrase_id: str = Field(..., min_length=1)
    prompt: str = Field(..., description="Phrase in the target language")
    answer: str = Field(..., description="Translation shown as the answer")
    pronunciation: str = ""
    category: str = "general"
    difficulty: Difficulty = Difficulty.INTERMEDIATE


# ---- Inbound ----

class ReviewOutcome(BaseModel):
    """A single scored review submitted by a client."""
    quality: int = Field(..., ge=0, le=5)
    time_spent_seconds: Optional[int] = Field(default=None, ge=0)


class TaskCompletion(BaseModel):
    """Outcome of a fixed-checkpoint task."""
    task_id: str = Field(..., min_length=1)
    phrase_id: str = Field(..., min_length=1)
    is_correct: bool
    time_spent_seconds: int = Field(default=0, ge=0)


# ---- Stored records ----

class DailyTaskRecord(BaseModel):
    """One checkpoint task for a (user, phrase)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    phrase_id: str
    task_type: TaskType
    scheduled_date: datetime
    days_from_learning: int = Field(..., ge=0)
    status: TaskStatus = TaskStatus.PENDING
    is_correct: Optional[bool] = None
    completed_at: Optional[datetime] = None
    time_spent_seconds: Optional[int] = None


class StudySessionRecord(BaseModel):
    """Aggregate counts of one completed study session (append-only)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    session_date: datetime
    phrases_studied: int = Field(..., ge=0)
    correct_answers: int = Field(..., ge=0)
    incorrect_answers: int = Field(..., ge=0)
    accuracy: int = Field(..., ge=0, le=100)


class LearningAnalyticsRecord(BaseModel):
    """Per-user learning pace and load parameters."""
    user_id: str
    avg_phrases_per_day: int = 0
    optimal_daily_load: int = 20
    learning_pace: LearningPace = LearningPace.NORMAL
    avg_retention: int = 0
    weak_categories: list[str] = Field(default_factory=list)
    strong_categories: list[str] = Field(default_factory=list)
    last_analyzed_at: Optional[datetime] = None


# ---- Outbound ----

class ReviewResult(BaseModel):
    """Response to submitReview."""
    new_state: SRSState
    mastery_percent: int = Field(..., ge=0, le=100)
    status: WordStatus


class DueItem(BaseModel):
    """A due item joined with its content (content may be missing from the catalog)."""
    phrase_id: str
    phrase: Optional[Phrase]
    state: SRSState


class TodaysTask(BaseModel):
    task: DailyTaskRecord
    phrase: Phrase


class Mission(BaseModel):
    """A display-only daily goal."""
    type: MissionType
    target_count: int = Field(..., ge=0)
    difficulty: Difficulty
    description: str
    estimated_minutes: int = Field(..., ge=0)


class LearningProfile(BaseModel):
    user_id: str
    total_mastered: int
    total_learning: int
    average_accuracy: float
    optimal_daily_load: int
    learning_pace: LearningPace
    weak_categories: list[str]
    strong_categories: list[str]


class AdaptiveRecommendation(BaseModel):
    missions: list[Mission]
    estimated_total_minutes: int
    motivational_message: str
    focus_areas: list[str]
