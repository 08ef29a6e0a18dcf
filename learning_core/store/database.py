"""
Database - engine, sessions and schema management

The Database object is built once at process start and passed to every
store. Driver-level failures are translated into the learning core's error
taxonomy here so callers never see SQLAlchemy exceptions.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from learning_core.config import Settings
from learning_core.errors import ConcurrentUpdateConflict, StoreUnavailable
from learning_core.store.models import Base

REQUIRED_TABLES = ("user_progress", "daily_tasks", "study_sessions", "learning_analytics")


class Database:
    """Owns the SQLAlchemy engine and hands out transactional sessions."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"pool_pre_ping": True, "echo": echo}
        if not url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=5,      # Keep 5 connections open
                max_overflow=10,  # Allow up to 10 extra connections
            )
        self.engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database_url)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits on success, rolls back on any error and re-raises it,
        translated into StoreUnavailable / ConcurrentUpdateConflict where it
        came from the driver.
        """
        with translate_store_errors():
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def init_db(self) -> None:
        """
        Initialize database schema if tables don't exist.

        Safe to call multiple times - only creates missing tables.
        """
        with translate_store_errors():
            existing_tables = set(inspect(self.engine).get_table_names())
            missing = [t for t in REQUIRED_TABLES if t not in existing_tables]
            if missing:
                Base.metadata.create_all(self.engine)
                logger.info("Created learning tables: {}", ", ".join(missing))

    def reset_db(self) -> None:
        """
        DANGEROUS: Delete all data and recreate tables.

        Only use this for testing or when you want to start fresh.
        All review history will be lost!
        """
        with translate_store_errors():
            Base.metadata.drop_all(self.engine)
        logger.warning("All learning tables dropped")
        self.init_db()

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()


@contextmanager
def translate_store_errors() -> Iterator[None]:
    """Map driver exceptions onto StoreUnavailable / ConcurrentUpdateConflict."""
    try:
        yield
    except (OperationalError, InterfaceError, DisconnectionError) as exc:
        raise StoreUnavailable(f"Learning store unavailable: {exc}") from exc
    except StaleDataError as exc:
        raise ConcurrentUpdateConflict(str(exc)) from exc
