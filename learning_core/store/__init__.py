"""
Persistent store for per-user learning records (SQLAlchemy).

    from learning_core.store import Database, ProgressStore

    db = Database(settings.database_url)
    db.init_db()
    progress = ProgressStore(db)
"""

from learning_core.store.analytics import AnalyticsStore
from learning_core.store.database import Database, translate_store_errors
from learning_core.store.progress import ProgressEntry, ProgressStore
from learning_core.store.tasks import TaskStore

__all__ = [
    "Database",
    "translate_store_errors",
    "ProgressStore",
    "ProgressEntry",
    "TaskStore",
    "AnalyticsStore",
]
