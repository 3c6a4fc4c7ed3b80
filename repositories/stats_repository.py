"""
repositories/stats_repository.py

Responsibility: Provides low-level read/write access to the RecordStats table
in SQLite via SQLModel.
Does NOT: contain business logic or decide when a counter should move.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlmodel import Session, select

from db.models import RecordStats

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatsRepository:
    """
    Manages persistence of per-record reconcile statistics.

    One RecordStats row per record name. Rows are created on first access
    and updated by StatsService as reconcile passes run.

    Collaborators:
        - Session: SQLModel DB session injected at construction time
    """

    def __init__(self, session: Session) -> None:
        """
        Initialises the repository with an active DB session.

        Args:
            session: An open SQLModel Session.
        """
        self._session = session

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    def get_or_create(self, record_name: str) -> RecordStats:
        """
        Returns the RecordStats row for the given record, creating it if absent.

        Args:
            record_name: The DNS record name, e.g. "nodes".

        Returns:
            The RecordStats ORM instance for the given record name.
        """
        stats = self.get_by_name(record_name)

        if stats is None:
            logger.debug("Creating RecordStats row for %s.", record_name)
            stats = self.save(RecordStats(record_name=record_name))

        return stats

    def get_all(self) -> list[RecordStats]:
        """
        Returns all RecordStats rows ordered by record name.

        Returns:
            A list of RecordStats instances, possibly empty.
        """
        statement = select(RecordStats).order_by(RecordStats.record_name)
        return list(self._session.exec(statement).all())

    def get_by_name(self, record_name: str) -> RecordStats | None:
        statement = select(RecordStats).where(RecordStats.record_name == record_name)
        return self._session.exec(statement).first()

    def save(self, stats: RecordStats) -> RecordStats:
        """
        Persists a RecordStats instance to the database.

        Args:
            stats: The RecordStats instance to save.

        Returns:
            The refreshed RecordStats instance after commit.
        """
        self._session.add(stats)
        self._session.commit()
        self._session.refresh(stats)
        return stats

    def record_attempt(self, record_name: str) -> RecordStats:
        """Increments attempts and stamps last_checked."""
        stats = self.get_or_create(record_name)
        stats.attempts += 1
        stats.last_checked = _utcnow()
        return self.save(stats)

    def record_success(self, record_name: str) -> RecordStats:
        stats = self.get_or_create(record_name)
        stats.successes += 1
        return self.save(stats)

    def record_failure(self, record_name: str) -> RecordStats:
        stats = self.get_or_create(record_name)
        stats.failures += 1
        return self.save(stats)

    def record_created(self, record_name: str) -> RecordStats:
        """Increments the created counter and stamps last_changed."""
        stats = self.get_or_create(record_name)
        stats.created += 1
        stats.last_changed = _utcnow()
        return self.save(stats)

    def record_deleted(self, record_name: str) -> RecordStats:
        """Increments the deleted counter and stamps last_changed."""
        stats = self.get_or_create(record_name)
        stats.deleted += 1
        stats.last_changed = _utcnow()
        return self.save(stats)
