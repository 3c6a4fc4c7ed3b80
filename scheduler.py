"""
scheduler.py

Responsibility: Sets up the APScheduler AsyncIOScheduler and registers the
periodic resync job that republishes both projections.
Does NOT: contain DNS or membership logic — the job only calls
NodeRegistry.resync().
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from services.node_registry import NodeRegistry

logger = logging.getLogger(__name__)

# Job ID used to identify the resync job in APScheduler
_JOB_ID = "nodedns_resync"


async def _resync_job(registry: NodeRegistry) -> None:
    """
    APScheduler job: forces one resync of the registry.

    Re-asserts the desired DNS state even when an earlier change
    notification timed out or its reconcile failed.

    Args:
        registry: The application's NodeRegistry.
    """
    logger.debug("Resync job triggered.")
    await registry.resync()


def create_scheduler(registry: NodeRegistry, interval_seconds: float) -> AsyncIOScheduler:
    """
    Creates an AsyncIOScheduler with the resync job.

    The first run happens one full interval after start; the initial node
    list already publishes state on startup.

    Args:
        registry: The NodeRegistry to resync.
        interval_seconds: Seconds between resyncs; 0 registers no job.

    Returns:
        A configured but not yet started AsyncIOScheduler.
    """
    scheduler = AsyncIOScheduler()
    if interval_seconds <= 0:
        logger.info("Periodic resync disabled.")
        return scheduler

    scheduler.add_job(
        _resync_job,
        trigger="interval",
        seconds=interval_seconds,
        id=_JOB_ID,
        kwargs={"registry": registry},
        max_instances=1,  # Prevent overlapping runs if DNS is slow
        coalesce=True,
    )
    logger.info("Resync job scheduled — interval: %.0fs.", interval_seconds)
    return scheduler
