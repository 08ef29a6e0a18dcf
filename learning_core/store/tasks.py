"""
Task store - fixed-checkpoint daily tasks

At most one task per (user, phrase, task_type): inserts check first and the
unique constraint catches anything that slips past the check.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from learning_core.clock import Clock, utc_now
from learning_core.errors import InvalidInput, NotFound, StoreUnavailable, require_id
from learning_core.schemas import DailyTaskRecord, TaskStatus, TaskType
from learning_core.store.database import Database
from learning_core.store.models import DailyTask
from learning_core.store.progress import as_utc


def _to_record(row: DailyTask) -> DailyTaskRecord:
    return DailyTaskRecord(
        id=row.id,
        user_id=row.user_id,
        phrase_id=row.phrase_id,
        task_type=TaskType(row.task_type),
        scheduled_date=as_utc(row.scheduled_date),
        days_from_learning=row.days_from_learning,
        status=TaskStatus(row.status),
        is_correct=row.is_correct,
        completed_at=as_utc(row.completed_at),
        time_spent_seconds=row.time_spent_seconds,
    )


class TaskStore:
    """CRUD over daily_tasks rows."""

    def __init__(self, db: Database, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    def get(self, user_id: str, task_id: str) -> Optional[DailyTaskRecord]:
        require_id(user_id, "user_id")
        require_id(task_id, "task_id")
        with self.db.session_scope() as session:
            row = session.execute(
                select(DailyTask).where(DailyTask.id == task_id, DailyTask.user_id == user_id)
            ).scalar_one_or_none()
            return _to_record(row) if row is not None else None

    def exists(self, user_id: str, phrase_id: str, task_type: TaskType) -> bool:
        with self.db.session_scope() as session:
            found = session.execute(
                select(DailyTask.id).where(
                    DailyTask.user_id == user_id,
                    DailyTask.phrase_id == phrase_id,
                    DailyTask.task_type == TaskType(task_type).value,
                ).limit(1)
            ).first()
            return found is not None

    def create_if_absent(
        self,
        user_id: str,
        phrase_id: str,
        task_type: TaskType,
        scheduled_date: datetime,
        days_from_learning: int
    ) -> bool:
        """
        Create a pending task unless one already exists for (user, phrase, type).

        Returns:
            True if a task was created, False if it already existed
        """
        require_id(user_id, "user_id")
        require_id(phrase_id, "phrase_id")
        if self.exists(user_id, phrase_id, task_type):
            return False

        now = self.clock()
        try:
            with self.db.session_scope() as session:
                session.add(DailyTask(
                    id=uuid.uuid4().hex,
                    user_id=user_id,
                    phrase_id=phrase_id,
                    scheduled_date=scheduled_date,
                    task_type=TaskType(task_type).value,
                    days_from_learning=days_from_learning,
                    status=TaskStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                ))
        except IntegrityError:
            # Lost a race with an identical insert; the checkpoint exists
            logger.debug("Task {}/{}/{} already created concurrently", user_id, phrase_id, task_type)
            return False
        return True

    def list_between(self, user_id: str, start: datetime, end: datetime) -> list[DailyTaskRecord]:
        """Tasks with scheduled_date in [start, end), ordered by task type."""
        require_id(user_id, "user_id")
        try:
            with self.db.session_scope() as session:
                rows = session.execute(
                    select(DailyTask)
                    .where(
                        DailyTask.user_id == user_id,
                        DailyTask.scheduled_date >= start,
                        DailyTask.scheduled_date < end,
                    )
                    .order_by(DailyTask.task_type, DailyTask.created_at, DailyTask.id)
                ).scalars().all()
                return [_to_record(row) for row in rows]
        except StoreUnavailable as exc:
            logger.warning("Task listing failed for {}: {}", user_id, exc)
            return []

    def count_between(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        status: Optional[TaskStatus] = None,
        task_type: Optional[TaskType] = None
    ) -> int:
        require_id(user_id, "user_id")
        query = (
            select(func.count())
            .select_from(DailyTask)
            .where(
                DailyTask.user_id == user_id,
                DailyTask.scheduled_date >= start,
                DailyTask.scheduled_date < end,
            )
        )
        if status is not None:
            query = query.where(DailyTask.status == TaskStatus(status).value)
        if task_type is not None:
            query = query.where(DailyTask.task_type == TaskType(task_type).value)
        try:
            with self.db.session_scope() as session:
                return session.execute(query).scalar_one()
        except StoreUnavailable as exc:
            logger.warning("Task count failed for {}: {}", user_id, exc)
            return 0

    def assigned_phrase_ids(self, user_id: str) -> set[str]:
        """Ids of phrases that already have any task for this user."""
        require_id(user_id, "user_id")
        with self.db.session_scope() as session:
            return set(
                session.execute(
                    select(DailyTask.phrase_id).where(DailyTask.user_id == user_id).distinct()
                ).scalars()
            )

    def mark_completed(
        self,
        user_id: str,
        task_id: str,
        is_correct: bool,
        time_spent_seconds: int,
        on_completed: Optional[Callable[[Session], None]] = None
    ) -> tuple[DailyTaskRecord, bool]:
        """
        Move a pending task to completed with its outcome.

        Replaying the same outcome on an already completed task is a no-op.
        `on_completed` runs in the same transaction, only when the task
        actually changes state; if it raises, the task stays pending.

        Returns:
            (record, newly_completed)

        Raises:
            NotFound: if the task does not exist for this user
            InvalidInput: if the task is skipped, or completed with a different outcome
        """
        now = self.clock()
        with self.db.session_scope() as session:
            row = session.execute(
                select(DailyTask)
                .where(DailyTask.id == task_id, DailyTask.user_id == user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if row is None:
                raise NotFound(f"Task {task_id} not found for user {user_id}")

            if row.status == TaskStatus.COMPLETED.value:
                if row.is_correct != is_correct:
                    raise InvalidInput(f"Task {task_id} was already completed with a different outcome")
                return _to_record(row), False
            if row.status == TaskStatus.SKIPPED.value:
                raise InvalidInput(f"Task {task_id} was skipped and cannot be completed")

            row.status = TaskStatus.COMPLETED.value
            row.completed_at = now
            row.is_correct = is_correct
            row.time_spent_seconds = time_spent_seconds
            row.updated_at = now
            session.flush()
            if on_completed is not None:
                on_completed(session)
            return _to_record(row), True

    def mark_skipped(self, user_id: str, task_id: str) -> DailyTaskRecord:
        """
        Move a pending task to skipped.

        Raises:
            NotFound: if the task does not exist for this user
            InvalidInput: if the task was already completed
        """
        now = self.clock()
        with self.db.session_scope() as session:
            row = session.execute(
                select(DailyTask)
                .where(DailyTask.id == task_id, DailyTask.user_id == user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if row is None:
                raise NotFound(f"Task {task_id} not found for user {user_id}")
            if row.status == TaskStatus.COMPLETED.value:
                raise InvalidInput(f"Task {task_id} is already completed")

            row.status = TaskStatus.SKIPPED.value
            row.updated_at = now
            session.flush()
            return _to_record(row)
