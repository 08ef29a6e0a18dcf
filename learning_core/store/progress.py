"""
Progress store - per (user, phrase) SRS state

Point lookups, due-before range queries and an atomic read-modify-write.
Rows are keyed by (user_id, phrase_id); writes to different keys never
coordinate with each other.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from learning_core.clock import Clock, utc_now
from learning_core.errors import (
    ConcurrentUpdateConflict,
    InvalidInput,
    StoreUnavailable,
    require_id,
)
from learning_core.srs.constants import MIN_EASE_FACTOR, DueOrder, WordStatus
from learning_core.srs.state import SRSState
from learning_core.store.database import Database
from learning_core.store.models import UserProgress

Mutator = Callable[[Optional[SRSState]], SRSState]


@dataclass(frozen=True)
class ProgressEntry:
    """A phrase id together with the user's state for it."""
    phrase_id: str
    state: SRSState


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise timestamps read from the store (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_state(row: UserProgress) -> SRSState:
    return SRSState(
        interval=row.interval,
        ease_factor=row.ease_factor,
        repetitions=row.repetitions,
        next_review_at=as_utc(row.next_review_at),
        correct_count=row.correct_count,
        incorrect_count=row.incorrect_count,
        status=WordStatus(row.status),
        last_reviewed_at=as_utc(row.last_reviewed_at),
    )


def validate_state(state: SRSState) -> None:
    """Reject states that break the stored invariants before writing them."""
    if state.interval < 1:
        raise InvalidInput(f"interval must be >= 1, got {state.interval}")
    if state.ease_factor < MIN_EASE_FACTOR:
        raise InvalidInput(f"ease_factor must be >= {MIN_EASE_FACTOR}, got {state.ease_factor}")
    if state.repetitions < 0 or state.correct_count < 0 or state.incorrect_count < 0:
        raise InvalidInput("repetitions and counters must be non-negative")
    if state.next_review_at is None:
        raise InvalidInput("next_review_at is required")


class ProgressStore:
    """CRUD over user_progress rows."""

    def __init__(
        self,
        db: Database,
        clock: Clock = utc_now,
        due_order: DueOrder = DueOrder.ASCENDING
    ):
        self.db = db
        self.clock = clock
        self.due_order = due_order

    # ---- Reads (soft-fail: absent / empty when the store is down) ----

    def get(self, user_id: str, phrase_id: str) -> Optional[SRSState]:
        """
        Load state for one (user, phrase).

        Returns:
            SRSState if the user has reviewed the phrase, None otherwise
            (or when the store is unavailable)
        """
        require_id(user_id, "user_id")
        require_id(phrase_id, "phrase_id")
        try:
            with self.db.session_scope() as session:
                row = session.execute(
                    select(UserProgress).where(
                        UserProgress.user_id == user_id,
                        UserProgress.phrase_id == phrase_id,
                    )
                ).scalar_one_or_none()
                return _to_state(row) if row is not None else None
        except StoreUnavailable as exc:
            logger.warning("Progress lookup failed for {}/{}: {}", user_id, phrase_id, exc)
            return None

    def list_due(
        self,
        user_id: str,
        before: datetime,
        limit: int = 20,
        order: Optional[DueOrder] = None
    ) -> list[ProgressEntry]:
        """
        Items whose next_review_at <= before.

        Args:
            user_id: User identifier
            before: Cut-off timestamp (usually now)
            limit: Maximum number of entries
            order: ASCENDING = most overdue first (default policy),
                DESCENDING = least overdue first

        Returns:
            Ordered list of ProgressEntry
        """
        require_id(user_id, "user_id")
        if limit <= 0:
            return []
        order = order or self.due_order
        sort_key = (
            UserProgress.next_review_at.asc()
            if order == DueOrder.ASCENDING
            else UserProgress.next_review_at.desc()
        )
        try:
            with self.db.session_scope() as session:
                rows = session.execute(
                    select(UserProgress)
                    .where(
                        UserProgress.user_id == user_id,
                        UserProgress.next_review_at <= before,
                    )
                    .order_by(sort_key, UserProgress.phrase_id)
                    .limit(limit)
                ).scalars().all()
                return [ProgressEntry(row.phrase_id, _to_state(row)) for row in rows]
        except StoreUnavailable as exc:
            logger.warning("Due-items query failed for {}: {}", user_id, exc)
            return []

    def count_due(self, user_id: str, before: datetime) -> int:
        require_id(user_id, "user_id")
        try:
            with self.db.session_scope() as session:
                return session.execute(
                    select(func.count())
                    .select_from(UserProgress)
                    .where(
                        UserProgress.user_id == user_id,
                        UserProgress.next_review_at <= before,
                    )
                ).scalar_one()
        except StoreUnavailable as exc:
            logger.warning("Due-count query failed for {}: {}", user_id, exc)
            return 0

    def list_for_user(
        self,
        user_id: str,
        reviewed_since: Optional[datetime] = None
    ) -> list[ProgressEntry]:
        """All progress entries for a user, optionally only those reviewed since a timestamp."""
        require_id(user_id, "user_id")
        query = select(UserProgress).where(UserProgress.user_id == user_id)
        if reviewed_since is not None:
            query = query.where(UserProgress.last_reviewed_at >= reviewed_since)
        try:
            with self.db.session_scope() as session:
                rows = session.execute(query.order_by(UserProgress.phrase_id)).scalars().all()
                return [ProgressEntry(row.phrase_id, _to_state(row)) for row in rows]
        except StoreUnavailable as exc:
            logger.warning("Progress listing failed for {}: {}", user_id, exc)
            return []

    def reviewed_phrase_ids(self, user_id: str) -> set[str]:
        """Ids of every phrase this user has a progress record for."""
        require_id(user_id, "user_id")
        try:
            with self.db.session_scope() as session:
                return set(
                    session.execute(
                        select(UserProgress.phrase_id).where(UserProgress.user_id == user_id)
                    ).scalars()
                )
        except StoreUnavailable as exc:
            logger.warning("Reviewed-ids query failed for {}: {}", user_id, exc)
            return set()

    # ---- Writes (fail loudly) ----

    def upsert(self, user_id: str, phrase_id: str, state: SRSState) -> SRSState:
        """Insert or overwrite the state for (user, phrase) atomically."""
        return self.apply(user_id, phrase_id, lambda _current: state)

    def apply(self, user_id: str, phrase_id: str, mutate: Mutator) -> SRSState:
        """
        Atomic read-modify-write of one (user, phrase) state.

        `mutate` receives the current state (None if absent) and returns the
        new one. The row is locked for the transaction and the version
        column rejects a concurrent writer; a conflict is retried once with
        a fresh read, then surfaced.

        Raises:
            InvalidInput: if ids or the mutated state are invalid (nothing written)
            StoreUnavailable: if the store cannot be reached
            ConcurrentUpdateConflict: if the retry also conflicts
        """
        require_id(user_id, "user_id")
        require_id(phrase_id, "phrase_id")
        try:
            return self._apply_once(user_id, phrase_id, mutate)
        except ConcurrentUpdateConflict:
            logger.warning("Concurrent update on {}/{}, retrying once", user_id, phrase_id)
        return self._apply_once(user_id, phrase_id, mutate)

    def _apply_once(self, user_id: str, phrase_id: str, mutate: Mutator) -> SRSState:
        with self.db.session_scope() as session:
            new_state = self.apply_in_session(session, user_id, phrase_id, mutate)
        logger.debug(
            "Saved progress {}/{}: interval={} ease={} reps={}",
            user_id, phrase_id, new_state.interval, new_state.ease_factor, new_state.repetitions,
        )
        return new_state

    def apply_in_session(
        self,
        session: Session,
        user_id: str,
        phrase_id: str,
        mutate: Mutator
    ) -> SRSState:
        """
        Read-modify-write inside a transaction owned by the caller.

        The update commits or rolls back together with whatever else the
        caller writes in `session`. No retry happens here.
        """
        now = self.clock()
        row = session.execute(
            select(UserProgress)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.phrase_id == phrase_id,
            )
            .with_for_update()
        ).scalar_one_or_none()

        new_state = mutate(_to_state(row) if row is not None else None)
        validate_state(new_state)

        if row is None:
            row = UserProgress(
                id=uuid.uuid4().hex,
                user_id=user_id,
                phrase_id=phrase_id,
                created_at=now,
            )
            session.add(row)

        row.interval = new_state.interval
        row.ease_factor = new_state.ease_factor
        row.repetitions = new_state.repetitions
        row.correct_count = new_state.correct_count
        row.incorrect_count = new_state.incorrect_count
        row.status = WordStatus(new_state.status).value
        row.next_review_at = new_state.next_review_at
        row.last_reviewed_at = new_state.last_reviewed_at
        row.updated_at = now

        try:
            session.flush()
        except IntegrityError as exc:
            # Another writer inserted the same (user, phrase) first
            raise ConcurrentUpdateConflict(
                f"Progress row for {user_id}/{phrase_id} was created concurrently"
            ) from exc

        return new_state
