"""
Tests for the fixed-checkpoint task scheduler.

Tests:
- Daily batch sizing, top-up and no duplicates
- Today's task window and catalog join
- Task completion: counters, checkpoints, idempotence, errors
"""

from datetime import timedelta

import pytest

from learning_core.clock import day_window, start_of_day
from learning_core.errors import ConcurrentUpdateConflict, InvalidInput, NotFound, StoreUnavailable
from learning_core.schemas import LearningAnalyticsRecord, TaskStatus, TaskType
from learning_core.srs import WordStatus, initialize_state
from learning_core.task_scheduler import REVIEW_CHECKPOINTS, TaskScheduler
from tests.conftest import OTHER_USER, START, USER


def all_tasks(tasks, user_id=USER):
    """Every task for a user over a wide window."""
    return tasks.list_between(user_id, START - timedelta(days=365), START + timedelta(days=365))


def first_new_task(task_scheduler):
    return task_scheduler.get_todays_tasks(USER)[0].task


class TestInitializeDailyBatch:

    def test_creates_requested_number_of_new_tasks(self, task_scheduler, tasks):
        assert task_scheduler.initialize_daily_batch(USER, 5) == 5

        created = all_tasks(tasks)
        assert len(created) == 5
        assert all(t.task_type == TaskType.NEW for t in created)
        assert all(t.scheduled_date == start_of_day(START) for t in created)
        assert len({t.phrase_id for t in created}) == 5

    def test_second_call_same_day_is_noop(self, task_scheduler, tasks):
        task_scheduler.initialize_daily_batch(USER, 5)
        before = {t.id for t in all_tasks(tasks)}

        assert task_scheduler.initialize_daily_batch(USER, 5) == 0
        assert {t.id for t in all_tasks(tasks)} == before

    def test_tops_up_without_duplicates(self, task_scheduler, tasks):
        task_scheduler.initialize_daily_batch(USER, 3)
        assert task_scheduler.initialize_daily_batch(USER, 8) == 5

        phrase_ids = [t.phrase_id for t in all_tasks(tasks)]
        assert len(phrase_ids) == 8
        assert len(set(phrase_ids)) == 8

    def test_excludes_phrases_already_seen(self, task_scheduler, progress, tasks, catalog):
        seen = sorted(catalog.phrases)[:28]
        for phrase_id in seen:
            progress.upsert(USER, phrase_id, initialize_state(START))

        assert task_scheduler.initialize_daily_batch(USER, 10) == 2
        assert {t.phrase_id for t in all_tasks(tasks)}.isdisjoint(seen)

    def test_next_day_excludes_previously_assigned(self, task_scheduler, tasks, clock):
        task_scheduler.initialize_daily_batch(USER, 10)
        clock.advance(days=1)
        task_scheduler.initialize_daily_batch(USER, 10)

        phrase_ids = [t.phrase_id for t in all_tasks(tasks)]
        assert len(phrase_ids) == 20
        assert len(set(phrase_ids)) == 20

    def test_other_users_progress_does_not_exclude(self, task_scheduler, progress, catalog):
        for phrase_id in catalog.phrases:
            progress.upsert(OTHER_USER, phrase_id, initialize_state(START))
        assert task_scheduler.initialize_daily_batch(USER, 4) == 4

    def test_default_load_comes_from_analytics(self, task_scheduler, analytics):
        analytics.save(LearningAnalyticsRecord(user_id=USER, optimal_daily_load=7))
        assert task_scheduler.initialize_daily_batch(USER) == 7

    def test_default_load_without_analytics(self, task_scheduler):
        assert task_scheduler.initialize_daily_batch(USER) == 20

    def test_zero_stored_load_uses_default(self, task_scheduler, analytics):
        analytics.save(LearningAnalyticsRecord(user_id=USER, optimal_daily_load=0))
        assert task_scheduler.initialize_daily_batch(USER) == 20

    def test_configured_default_load(self, catalog, clock, tasks, progress, analytics):
        scheduler = TaskScheduler(tasks, progress, analytics, catalog, clock=clock, default_daily_load=2)
        assert scheduler.initialize_daily_batch(USER) == 2

    @pytest.mark.parametrize("load", [-1, 2.5, "5"])
    def test_rejects_bad_load(self, task_scheduler, load):
        with pytest.raises(InvalidInput):
            task_scheduler.initialize_daily_batch(USER, load)

    def test_catalog_outage_propagates(self, task_scheduler, catalog):
        catalog.available = False
        with pytest.raises(StoreUnavailable):
            task_scheduler.initialize_daily_batch(USER, 5)


class TestTodaysTasks:

    def test_joined_with_phrase(self, task_scheduler, catalog):
        task_scheduler.initialize_daily_batch(USER, 3)
        todays = task_scheduler.get_todays_tasks(USER)

        assert len(todays) == 3
        for item in todays:
            assert item.phrase == catalog.phrases[item.task.phrase_id]

    def test_tomorrows_tasks_not_included(self, task_scheduler, tasks, clock):
        today, tomorrow = day_window(clock())
        tasks.create_if_absent(USER, "p001", TaskType.REVIEW_1, tomorrow, 1)
        tasks.create_if_absent(USER, "p002", TaskType.REVIEW_1, today, 1)

        assert [t.task.phrase_id for t in task_scheduler.get_todays_tasks(USER)] == ["p002"]

    def test_tasks_for_unknown_phrases_dropped(self, task_scheduler, tasks, clock):
        today, _ = day_window(clock())
        tasks.create_if_absent(USER, "gone", TaskType.NEW, today, 0)
        assert task_scheduler.get_todays_tasks(USER) == []

    def test_catalog_outage_degrades_to_empty(self, task_scheduler, catalog):
        task_scheduler.initialize_daily_batch(USER, 3)
        catalog.available = False
        assert task_scheduler.get_todays_tasks(USER) == []

    def test_ordered_by_task_type(self, task_scheduler, tasks, clock):
        today, _ = day_window(clock())
        tasks.create_if_absent(USER, "p001", TaskType.REVIEW_3, today, 3)
        tasks.create_if_absent(USER, "p002", TaskType.NEW, today, 0)
        tasks.create_if_absent(USER, "p003", TaskType.REVIEW_1, today, 1)

        types = [t.task.task_type for t in task_scheduler.get_todays_tasks(USER)]
        assert types == [TaskType.NEW, TaskType.REVIEW_1, TaskType.REVIEW_3]


class TestCompleteTask:

    def test_correct_answer_schedules_five_checkpoints(self, task_scheduler, tasks):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)

        reviews = [t for t in all_tasks(tasks) if t.task_type != TaskType.NEW]
        assert sorted(t.days_from_learning for t in reviews) == [1, 3, 10, 21, 50]
        for t in reviews:
            assert t.scheduled_date == start_of_day(START + timedelta(days=t.days_from_learning))
            assert t.status == TaskStatus.PENDING

    def test_repeated_completion_keeps_exactly_five_checkpoints(self, task_scheduler, tasks, clock):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)
        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)

        # a later correct checkpoint must not add more either
        clock.advance(days=1)
        review_1 = next(t for t in all_tasks(tasks) if t.task_type == TaskType.REVIEW_1)
        task_scheduler.complete_task(USER, review_1.id, review_1.phrase_id, True, 5)

        reviews = [t for t in all_tasks(tasks) if t.task_type in REVIEW_CHECKPOINTS]
        assert len(reviews) == 5

    def test_replay_does_not_bump_counters_twice(self, task_scheduler, progress):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)
        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)

        state = progress.get(USER, task.phrase_id)
        assert state.correct_count == 1
        assert state.repetitions == 1

    def test_counters_bumped_schedule_untouched(self, task_scheduler, progress, tasks, clock):
        before = initialize_state(START - timedelta(days=3))
        progress.upsert(USER, "p001", before)
        tasks.create_if_absent(USER, "p001", TaskType.REVIEW_3, start_of_day(START), 3)
        task = first_new_task(task_scheduler)

        task_scheduler.complete_task(USER, task.id, "p001", False, 30)

        state = progress.get(USER, "p001")
        assert state.incorrect_count == 1
        assert state.correct_count == 0
        assert state.repetitions == 1
        assert state.last_reviewed_at == START
        assert state.interval == before.interval
        assert state.ease_factor == before.ease_factor
        assert state.next_review_at == before.next_review_at

    def test_first_completion_creates_progress(self, task_scheduler, progress):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)

        state = progress.get(USER, task.phrase_id)
        assert state.correct_count == 1
        assert state.status == WordStatus.LEARNING
        assert state.next_review_at == START + timedelta(days=1)

    def test_failed_progress_write_leaves_task_pending(self, task_scheduler, progress, tasks, monkeypatch):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)
        real_apply = progress.apply_in_session
        calls = []

        def flaky(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise StoreUnavailable("simulated")
            return real_apply(*args, **kwargs)

        monkeypatch.setattr(progress, "apply_in_session", flaky)
        with pytest.raises(StoreUnavailable):
            task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)

        assert tasks.get(USER, task.id).status == TaskStatus.PENDING
        assert progress.get(USER, task.phrase_id) is None

        record = task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 12)
        assert record.status == TaskStatus.COMPLETED
        state = progress.get(USER, task.phrase_id)
        assert state.correct_count == 1
        assert state.repetitions == 1

    def test_progress_conflict_is_retried_once(self, task_scheduler, progress, monkeypatch):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)
        real_apply = progress.apply_in_session
        calls = []

        def conflicting(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise ConcurrentUpdateConflict("simulated")
            return real_apply(*args, **kwargs)

        monkeypatch.setattr(progress, "apply_in_session", conflicting)
        record = task_scheduler.complete_task(USER, task.id, task.phrase_id, False, 12)

        assert record.status == TaskStatus.COMPLETED
        assert len(calls) == 2
        assert progress.get(USER, task.phrase_id).incorrect_count == 1

    def test_incorrect_answer_schedules_nothing(self, task_scheduler, tasks):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        record = task_scheduler.complete_task(USER, task.id, task.phrase_id, False, 12)

        assert record.status == TaskStatus.COMPLETED
        assert record.is_correct is False
        assert len(all_tasks(tasks)) == 1

    def test_unknown_task_raises_not_found(self, task_scheduler):
        with pytest.raises(NotFound):
            task_scheduler.complete_task(USER, "no-such-task", "p001", True, 5)

    def test_other_users_task_not_found(self, task_scheduler):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)
        with pytest.raises(NotFound):
            task_scheduler.complete_task(OTHER_USER, task.id, task.phrase_id, True, 5)

    def test_phrase_mismatch_rejected(self, task_scheduler):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)
        with pytest.raises(InvalidInput):
            task_scheduler.complete_task(USER, task.id, "other-phrase", True, 5)

    def test_conflicting_replay_rejected(self, task_scheduler):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)
        task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 5)
        with pytest.raises(InvalidInput):
            task_scheduler.complete_task(USER, task.id, task.phrase_id, False, 5)

    def test_negative_time_rejected(self, task_scheduler):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)
        with pytest.raises(InvalidInput):
            task_scheduler.complete_task(USER, task.id, task.phrase_id, True, -1)

    def test_checkpoint_failure_keeps_completion(self, task_scheduler, tasks, monkeypatch):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        def offline(*args, **kwargs):
            raise StoreUnavailable("simulated")

        monkeypatch.setattr(task_scheduler, "schedule_next_reviews", offline)
        record = task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 5)

        assert record.status == TaskStatus.COMPLETED
        assert tasks.get(USER, task.id).status == TaskStatus.COMPLETED


class TestSkipAndCount:

    def test_pending_count(self, task_scheduler):
        task_scheduler.initialize_daily_batch(USER, 4)
        task = first_new_task(task_scheduler)
        task_scheduler.complete_task(USER, task.id, task.phrase_id, False, 5)

        assert task_scheduler.get_task_count(USER) == 3

    def test_skip_then_complete_rejected(self, task_scheduler):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        assert task_scheduler.skip_task(USER, task.id).status == TaskStatus.SKIPPED
        with pytest.raises(InvalidInput):
            task_scheduler.complete_task(USER, task.id, task.phrase_id, True, 5)

    def test_skip_unknown_task(self, task_scheduler):
        with pytest.raises(NotFound):
            task_scheduler.skip_task(USER, "no-such-task")


class TestRecordOutcome:

    def test_completes_todays_pending_task(self, task_scheduler, tasks):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        task_scheduler.record_outcome(USER, task.phrase_id, quality=4)

        stored = tasks.get(USER, task.id)
        assert stored.status == TaskStatus.COMPLETED
        assert stored.is_correct is True

    def test_low_quality_is_incorrect(self, task_scheduler, tasks):
        task_scheduler.initialize_daily_batch(USER, 1)
        task = first_new_task(task_scheduler)

        task_scheduler.record_outcome(USER, task.phrase_id, quality=2)
        assert tasks.get(USER, task.id).is_correct is False

    def test_no_pending_task(self, task_scheduler):
        with pytest.raises(NotFound):
            task_scheduler.record_outcome(USER, "p001", quality=5)
