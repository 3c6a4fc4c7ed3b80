"""
services/stats_service.py

Responsibility: Persists per-record reconcile statistics by acting as a
MetricsSink for the reconciler. Delegates all persistence to StatsRepository.
Does NOT: make HTTP calls, track nodes, or serve the stats endpoint.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from repositories.stats_repository import StatsRepository
from services.metrics_service import MetricsSink

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class StatsService(MetricsSink):
    """
    Records reconcile attempts, outcomes and record changes per record name.

    Registry events are not persisted (they are inherited no-ops); only the
    reconciler's per-record events are. A short-lived session is opened per
    event because the sink lives as long as the process.

    The sink is synchronous: each event commits to SQLite on the calling
    thread, which is the event loop while a reconcile pass runs. One small
    commit per record change is cheap next to the provider round trip it
    follows, so no thread hand-off is done.

    Stats are best effort. A database error is logged and swallowed here so
    that a broken stats file can never abort or fail a reconcile pass.

    Collaborators:
        - StatsRepository: handles all database access for RecordStats rows
    """

    def __init__(self, engine: Engine) -> None:
        """
        Args:
            engine: The SQLAlchemy engine holding the RecordStats table.
        """
        self._engine = engine

    def reconcile_attempt(self, record: str) -> None:
        self._write(record, "attempt", StatsRepository.record_attempt)

    def reconcile_success(self, record: str) -> None:
        self._write(record, "success", StatsRepository.record_success)

    def reconcile_failure(self, record: str) -> None:
        logger.warning("Stats: failure recorded for %s.", record)
        self._write(record, "failure", StatsRepository.record_failure)

    def record_created(self, record: str) -> None:
        self._write(record, "created", StatsRepository.record_created)

    def record_deleted(self, record: str) -> None:
        self._write(record, "deleted", StatsRepository.record_deleted)

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    def _write(
        self,
        record: str,
        event: str,
        update: Callable[[StatsRepository, str], object],
    ) -> None:
        """
        Applies one counter update in its own session.

        Args:
            record: The DNS record name.
            event: Event name, for the error log.
            update: Unbound StatsRepository method to call with the record name.
        """
        try:
            with Session(self._engine) as session:
                update(StatsRepository(session), record)
        except SQLAlchemyError:
            logger.exception("Stats: could not store %s event for %s.", event, record)
