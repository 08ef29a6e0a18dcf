"""
SM-2 Constants and Parameters

All configurable parameters for the scheduling algorithm in one place.
Ease factors are stored as integers multiplied by 1000 (2500 == 2.5).
"""

from enum import Enum, IntEnum


# ---- Review Quality ----

class Quality(IntEnum):
    """Self-reported recall quality for a single review."""
    BLACKOUT = 0     # Complete failure to recall
    WRONG = 1        # Wrong, but recognised the answer
    WRONG_EASY = 2   # Wrong, answer felt familiar
    HARD = 3         # Recalled with serious difficulty
    GOOD = 4         # Recalled after hesitation
    PERFECT = 5      # Recalled instantly


MIN_QUALITY = Quality.BLACKOUT
MAX_QUALITY = Quality.PERFECT
PASSING_QUALITY = Quality.HARD  # quality >= 3 is a successful recall

# Simplified "correct / incorrect" answers map onto the full scale
CORRECT_ANSWER_QUALITY = Quality.PERFECT
INCORRECT_ANSWER_QUALITY = Quality.WRONG_EASY


# ---- Ease Factor (fixed-point x1000) ----

EASE_SCALE = 1000
DEFAULT_EASE_FACTOR = 2500
MIN_EASE_FACTOR = 1300


# ---- Intervals (days) ----

FIRST_INTERVAL = 1
SECOND_INTERVAL = 3
FAILURE_INTERVAL = 1


# ---- Status / Mastery ----

class WordStatus(str, Enum):
    """Coarse learning status of an item."""
    NEW = "new"
    LEARNING = "learning"
    MASTERED = "mastered"


MASTERED_MIN_REPETITIONS = 5
MASTERED_MIN_EASE_FACTOR = 2000

MASTERY_REPETITION_CAP = 10          # repetitions for full repetition credit
MASTERY_EASE_RANGE = 1700            # 1300..3000 maps onto 0..full ease credit


# ---- Due Ordering ----

class DueOrder(str, Enum):
    """Ordering policy for due-item queries."""
    ASCENDING = "ascending"     # most overdue first
    DESCENDING = "descending"   # least overdue first (legacy behaviour)
