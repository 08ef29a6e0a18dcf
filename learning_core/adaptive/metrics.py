"""
Metric computations for the adaptive load controller.

Progress entries and study sessions are turned into small DataFrames and
aggregated here; the controller only deals with the resulting numbers.
"""

from __future__ import annotations

import math
from typing import Iterable

import pandas as pd

from learning_core.schemas import Phrase, StudySessionRecord
from learning_core.store.progress import ProgressEntry

PROGRESS_COLUMNS = ["phrase_id", "status", "correct", "incorrect"]
SESSION_COLUMNS = ["phrases_studied", "correct_answers", "incorrect_answers"]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative input."""
    return int(math.floor(value + 0.5))


def progress_frame(entries: Iterable[ProgressEntry]) -> pd.DataFrame:
    """
    One row per progress entry with the counters needed for accuracy metrics.
    """
    rows = [
        {
            "phrase_id": e.phrase_id,
            "status": e.state.status.value,
            "correct": e.state.correct_count,
            "incorrect": e.state.incorrect_count,
        }
        for e in entries
    ]
    return pd.DataFrame(rows, columns=PROGRESS_COLUMNS)


def sessions_frame(sessions: Iterable[StudySessionRecord]) -> pd.DataFrame:
    rows = [s.model_dump(include=set(SESSION_COLUMNS)) for s in sessions]
    return pd.DataFrame(rows, columns=SESSION_COLUMNS)


def compute_item_accuracy(progress_df: pd.DataFrame) -> pd.Series:
    """
    Per-item accuracy in whole percent; items with no attempts score 0.
    """
    if progress_df.empty:
        return pd.Series(dtype="int64")
    attempts = progress_df["correct"] + progress_df["incorrect"]
    accuracy = (progress_df["correct"] * 100).floordiv(attempts.where(attempts > 0, 1))
    return accuracy.where(attempts > 0, 0).astype("int64")


def compute_average_accuracy(progress_df: pd.DataFrame) -> float:
    """Mean per-item accuracy across all of a user's items."""
    if progress_df.empty:
        return 0.0
    return float(compute_item_accuracy(progress_df).mean())


def count_by_status(progress_df: pd.DataFrame, status: str) -> int:
    if progress_df.empty:
        return 0
    return int((progress_df["status"] == status).sum())


def compute_category_accuracy(progress_df: pd.DataFrame, phrases: dict[str, Phrase]) -> pd.Series:
    """
    Mean per-item accuracy per catalog category.

    Items whose phrase is not in the catalog are ignored.
    """
    if progress_df.empty:
        return pd.Series(dtype="float64")
    scoped = progress_df.assign(
        category=progress_df["phrase_id"].map(lambda pid: phrases[pid].category if pid in phrases else None),
        accuracy=compute_item_accuracy(progress_df),
    ).dropna(subset=["category"])
    if scoped.empty:
        return pd.Series(dtype="float64")
    return scoped.groupby("category")["accuracy"].mean()


def split_categories(
    category_accuracy: pd.Series,
    weak_below: float,
    strong_above: float,
    limit: int
) -> tuple[list[str], list[str]]:
    """
    Weak categories weakest first, strong categories strongest first.

    Ties are broken by category name so the result is stable.
    """
    if category_accuracy.empty:
        return [], []
    frame = category_accuracy.rename("accuracy").rename_axis("category").reset_index()
    weak = frame[frame["accuracy"] < weak_below].sort_values(["accuracy", "category"])
    strong = frame[frame["accuracy"] > strong_above].sort_values(
        ["accuracy", "category"], ascending=[False, True]
    )
    return weak["category"].head(limit).tolist(), strong["category"].head(limit).tolist()


def summarize_sessions(sessions_df: pd.DataFrame, window_days: int) -> tuple[int, int]:
    """
    Average phrases per day over the window and overall accuracy percent.

    Returns:
        (avg_phrases_per_day, retention_percent); retention is 0 when no
        phrases were studied
    """
    if sessions_df.empty:
        return 0, 0
    total_phrases = int(sessions_df["phrases_studied"].sum())
    total_correct = int(sessions_df["correct_answers"].sum())
    retention = round_half_up(total_correct / total_phrases * 100) if total_phrases > 0 else 0
    return round_half_up(total_phrases / window_days), retention


def compute_recent_accuracy(progress_df: pd.DataFrame) -> float:
    """
    Share of recently reviewed items with at least one correct answer, in percent.
    """
    if progress_df.empty:
        return 0.0
    return float((progress_df["correct"] > 0).sum() / len(progress_df) * 100)
