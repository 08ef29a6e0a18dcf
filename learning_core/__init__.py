"""
Learning core - spaced-repetition scheduling for the phrase trainer.

Quick start:
    from learning_core import LearningEngine, load_settings

    engine = LearningEngine.from_settings(load_settings())
    result = engine.submit_review(user_id, phrase_id, quality=4)
    missions = engine.get_daily_missions(user_id)
"""

from learning_core.config import Settings, load_settings
from learning_core.engine import LearningEngine
from learning_core.errors import (
    ConcurrentUpdateConflict,
    InvalidInput,
    LearningCoreError,
    NotFound,
    StoreUnavailable,
)
from learning_core.ports import PhraseCatalog, ReviewOutcomeSink

__all__ = [
    "LearningEngine",
    "Settings",
    "load_settings",
    "PhraseCatalog",
    "ReviewOutcomeSink",
    "LearningCoreError",
    "InvalidInput",
    "StoreUnavailable",
    "ConcurrentUpdateConflict",
    "NotFound",
]
