"""
Interfaces shared between the schedulers and their collaborators.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from learning_core.schemas import Phrase


class PhraseCatalog(Protocol):
    """Read-only access to phrase content."""

    def get_phrase(self, phrase_id: str) -> Optional[Phrase]:
        ...

    def get_phrases(self, phrase_ids: Iterable[str]) -> dict[str, Phrase]:
        ...

    def sample_phrases(self, size: int, exclude_ids: Iterable[str] = ()) -> list[Phrase]:
        """Uniformly random phrases whose id is not in exclude_ids."""
        ...


class ReviewOutcomeSink(Protocol):
    """
    Anything that turns a scored review of a phrase into scheduling state.

    Implemented by the continuous SM-2 review service and by the
    fixed-checkpoint task scheduler; the two keep separate schedules.
    """

    def record_outcome(
        self,
        user_id: str,
        phrase_id: str,
        quality: int,
        time_spent_seconds: Optional[int] = None
    ) -> None:
        ...
