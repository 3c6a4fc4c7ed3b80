"""
services/change_notifier.py

Responsibility: Delivers changed projections to a single downstream consumer,
giving every delivery its own deadline.
Does NOT: decide what changed, retry failed deliveries, or talk to DNS itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from services.projections import Projection

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class ChangeNotice:
    """
    One unit of work handed to the consumer.

    Attributes:
        projection: The projection to publish.
        deadline: Event-loop time (loop.time()) after which the delivery is abandoned.
        op: The registry operation that produced the notice, for logging.
    """

    projection: Projection
    deadline: float
    op: str = ""


ChangeSink = Callable[[ChangeNotice], Awaitable[None]]


class ChangeNotifier:
    """
    Awaits the consumer for each notice, bounded by a fresh per-notice timeout.

    The caller (a registry operation) does not return until delivery finished
    or timed out, so a slow consumer throttles whoever drives the registry but
    never blocks the registry lock. A timed-out delivery cancels the consumer
    coroutine and is logged; it is not retried. Periodic resync republishes
    current state, which is how missed deliveries are recovered.

    Collaborators:
        - ChangeSink: the consumer coroutine, typically DnsReconciler.handle_change
    """

    def __init__(self, sink: ChangeSink, timeout: float = DEFAULT_TIMEOUT) -> None:
        """
        Args:
            sink: Coroutine function receiving each ChangeNotice.
            timeout: Seconds each delivery may take before it is abandoned.
        """
        self._sink = sink
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def notify(self, projection: Projection, op: str = "") -> bool:
        """
        Delivers one projection.

        Args:
            projection: The changed (or force-resynced) projection.
            op: Name of the registry operation, for logging.

        Returns:
            True if the consumer finished within the deadline, False otherwise.
        """
        loop = asyncio.get_running_loop()
        notice = ChangeNotice(projection=projection, deadline=loop.time() + self._timeout, op=op)
        try:
            await asyncio.wait_for(self._sink(notice), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Deadline of %.1fs expired delivering %s addresses (op=%s); change not applied.",
                self._timeout,
                projection.kind.value,
                op,
            )
            return False
        except Exception:
            # NOTE: Registry operations are infallible; a consumer bug must not
            # surface to whoever is feeding membership events.
            logger.exception(
                "Consumer failed handling %s addresses (op=%s).", projection.kind.value, op
            )
            return False
        return True

    async def notify_all(self, projections: list[Projection], op: str = "") -> None:
        """Delivers each projection in order, one at a time."""
        for projection in projections:
            await self.notify(projection, op=op)
