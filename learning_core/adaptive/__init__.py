"""
Adaptive load controller.
"""

from learning_core.adaptive.service import (
    AdaptiveLoadController,
    build_missions,
    classify_accuracy_pace,
    classify_volume_pace,
    optimal_daily_load_for_pace,
)

__all__ = [
    "AdaptiveLoadController",
    "build_missions",
    "classify_accuracy_pace",
    "classify_volume_pace",
    "optimal_daily_load_for_pace",
]
