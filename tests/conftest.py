"""
Pytest configuration and shared fixtures.

Every test gets a fresh file-backed SQLite database, an in-memory phrase
catalog and a clock it can move forward.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from learning_core.adaptive import AdaptiveLoadController
from learning_core.engine import LearningEngine
from learning_core.errors import StoreUnavailable
from learning_core.review_service import ReviewService
from learning_core.schemas import Phrase
from learning_core.store import AnalyticsStore, Database, ProgressStore, TaskStore
from learning_core.task_scheduler import TaskScheduler

START = datetime(2026, 3, 10, 14, 30, tzinfo=timezone.utc)
USER = "user_1"
OTHER_USER = "user_2"
CATEGORIES = ["greetings", "food", "travel"]


class FrozenClock:
    """Callable clock pinned to a moment until advanced."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryPhraseCatalog:
    """Phrase catalog backed by a dict; can be switched off to simulate an outage."""

    def __init__(self, phrases, seed: int = 7):
        self.phrases = {p.phrase_id: p for p in phrases}
        self.available = True
        self._random = random.Random(seed)

    def _check(self):
        if not self.available:
            raise StoreUnavailable("catalog offline")

    def get_phrase(self, phrase_id):
        self._check()
        return self.phrases.get(phrase_id)

    def get_phrases(self, phrase_ids):
        self._check()
        return {pid: self.phrases[pid] for pid in phrase_ids if pid in self.phrases}

    def sample_phrases(self, size, exclude_ids=()):
        self._check()
        excluded = set(exclude_ids)
        candidates = sorted(pid for pid in self.phrases if pid not in excluded)
        picked = self._random.sample(candidates, min(size, len(candidates)))
        return [self.phrases[pid] for pid in picked]

    def upsert_phrase(self, phrase):
        self._check()
        self.phrases[phrase.phrase_id] = phrase


def make_phrases(count: int = 30):
    return [
        Phrase(
            phrase_id=f"p{i:03d}",
            prompt=f"Satz {i}",
            answer=f"Sentence {i}",
            category=CATEGORIES[i % len(CATEGORIES)],
        )
        for i in range(count)
    ]


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database with the learning schema."""
    database = Database(f"sqlite:///{tmp_path / 'learning.db'}")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def unreachable_db(tmp_path):
    """Database whose file lives in a directory that does not exist."""
    database = Database(f"sqlite:///{tmp_path / 'missing' / 'learning.db'}")
    yield database
    database.dispose()


@pytest.fixture
def catalog():
    return InMemoryPhraseCatalog(make_phrases())


@pytest.fixture
def progress(db, clock):
    return ProgressStore(db, clock=clock)


@pytest.fixture
def tasks(db, clock):
    return TaskStore(db, clock=clock)


@pytest.fixture
def analytics(db, clock):
    return AnalyticsStore(db, clock=clock)


@pytest.fixture
def review_service(progress, catalog, clock):
    return ReviewService(progress, catalog, clock=clock)


@pytest.fixture
def task_scheduler(tasks, progress, analytics, catalog, clock):
    return TaskScheduler(tasks, progress, analytics, catalog, clock=clock)


@pytest.fixture
def controller(progress, analytics, catalog, clock):
    return AdaptiveLoadController(progress, analytics, catalog, clock=clock)


@pytest.fixture
def engine(db, catalog, clock):
    return LearningEngine(db, catalog, clock=clock)
