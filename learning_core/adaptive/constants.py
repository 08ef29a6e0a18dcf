"""
Constants for pace classification, load adjustment and mission sizing.
"""

from __future__ import annotations

from typing import Final

from learning_core.schemas import LearningPace, MissionType

# ---- Rolling windows (days) ----
ANALYTICS_WINDOW_DAYS: Final[int] = 30
ADJUSTMENT_WINDOW_DAYS: Final[int] = 7

# ---- 30-day volume thresholds (phrases per day) ----
SLOW_PACE_BELOW: Final[int] = 15
FAST_PACE_ABOVE: Final[int] = 30

# ---- 7-day accuracy thresholds (percent) ----
FAST_ACCURACY_ABOVE: Final[int] = 85
SLOW_ACCURACY_BELOW: Final[int] = 60

PACE_DAILY_LOAD: Final[dict[LearningPace, int]] = {
    LearningPace.SLOW: 10,
    LearningPace.NORMAL: 20,
    LearningPace.FAST: 30,
}

# ---- Categories (percent, per-item mean accuracy) ----
WEAK_CATEGORY_BELOW: Final[int] = 60
STRONG_CATEGORY_ABOVE: Final[int] = 80
MAX_LISTED_CATEGORIES: Final[int] = 3

# ---- Missions ----
REVIEW_PERCENT_OF_LOAD: Final[int] = 60
NEW_PERCENT_OF_LOAD: Final[int] = 30
CONVERSATION_ACCURACY_ABOVE: Final[int] = 70
GRAMMAR_FOCUS_TARGET: Final[int] = 5

MINUTES_PER_ITEM: Final[dict[MissionType, int]] = {
    MissionType.REVIEW_WORDS: 2,
    MissionType.NEW_WORDS: 3,
}
FLAT_MINUTES: Final[dict[MissionType, int]] = {
    MissionType.PRACTICE_CONVERSATION: 10,
    MissionType.GRAMMAR_FOCUS: 8,
}

# ---- Motivational message tiers (mastered phrase count) ----
MASTERED_MESSAGE_TIERS: Final[list[tuple[int, str]]] = [
    (100, "Great progress! You've mastered {count} phrases. Keep it up!"),
    (50, "You're doing well! {count} phrases mastered. Let's reach 100!"),
    (10, "Good start! {count} phrases learned. Consistency is key!"),
]
WELCOME_MESSAGE: Final[str] = "Welcome to your German learning journey! Start with today's missions."
