"""
services/node_registry.py

Responsibility: Owns the membership table of cluster nodes, applies
add/update/delete/replace/resync operations atomically, and notifies the
ChangeNotifier for every projection whose content changed.
Does NOT: watch Kubernetes, call DNS providers, or retry deliveries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from services.change_notifier import ChangeNotifier
from services.member_extractor import Member, extract_member, member_name
from services.metrics_service import MetricsSink
from services.projections import Projection, ProjectionKind, build_projection

logger = logging.getLogger(__name__)

# External is always published before Internal.
_PUBLISH_ORDER = (ProjectionKind.EXTERNAL, ProjectionKind.INTERNAL)


class NodeRegistry:
    """
    Concurrency-safe store of cluster members and the source of projections.

    Every operation takes the lock only for the synchronous
    snapshot-mutate-snapshot phase. Notifications are delivered after the
    lock is released, so a slow consumer delays the caller of that one
    operation but never other registry operations.

    Operations never raise: malformed nodes degrade to empty members and
    delivery problems are logged by the ChangeNotifier. The table mutation is
    committed whether or not its notifications succeed.

    Collaborators:
        - ChangeNotifier: receives changed projections
        - MetricsSink: receives per-operation events and member counts
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        name: str = "main",
        metrics: MetricsSink | None = None,
    ) -> None:
        """
        Args:
            notifier: Delivers changed projections downstream.
            name: Store name, used as a log prefix and metrics label.
            metrics: Optional metrics sink; defaults to a no-op sink.
        """
        self.name = name
        self._notifier = notifier
        self._metrics = metrics or MetricsSink()
        self._lock = asyncio.Lock()
        self._members: dict[str, Member] = {}

    # ---------------------------------------------------------------------------
    # Membership feed operations
    # ---------------------------------------------------------------------------

    async def add(self, node: Any) -> None:
        """Inserts (or overwrites) the member described by `node`."""
        await self._upsert("add", node)

    async def update(self, node: Any) -> None:
        """Overwrites the member described by `node`; identical to add."""
        await self._upsert("update", node)

    async def delete(self, node: Any) -> None:
        """Removes the member named by `node`; its addresses are ignored."""
        name = member_name(node)
        await self._apply("delete", lambda members: members.pop(name, None))

    async def replace(self, nodes: Iterable[Any]) -> None:
        """
        Swaps the whole table for one rebuilt from `nodes`.

        Used on (re)list so the table matches the cluster's ground truth.
        """
        rebuilt: dict[str, Member] = {}
        for node in nodes:
            member = self._extract(node)
            rebuilt[member.name] = member

        def _swap(members: dict[str, Member]) -> None:
            members.clear()
            members.update(rebuilt)

        await self._apply("replace", _swap)

    async def resync(self) -> None:
        """
        Publishes both projections whether or not they changed.

        Guards against lost notifications: a periodic resync re-asserts the
        desired DNS state even if an earlier delivery timed out.
        """
        self._metrics.registry_event(self.name, "resync")
        async with self._lock:
            current = self._snapshot()
        await self._notifier.notify_all(list(current), op="resync")

    # ---------------------------------------------------------------------------
    # Read accessors
    # ---------------------------------------------------------------------------

    async def projections(self) -> dict[ProjectionKind, Projection]:
        """Returns copies of both current projections, keyed by kind."""
        async with self._lock:
            return {p.kind: p for p in self._snapshot()}

    async def members(self) -> list[Member]:
        """Returns the current members ordered by name."""
        async with self._lock:
            return [self._members[name] for name in sorted(self._members)]

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _upsert(self, op: str, node: Any) -> None:
        member = self._extract(node)

        def _put(members: dict[str, Member]) -> None:
            members[member.name] = member

        await self._apply(op, _put)

    async def _apply(self, op: str, mutate: Callable[[dict[str, Member]], Any]) -> None:
        """
        Runs one mutation under the lock, then publishes what changed.

        Args:
            op: Operation name for metrics and logs.
            mutate: Synchronous function applied to the live table.
        """
        self._metrics.registry_event(self.name, op)
        async with self._lock:
            before = self._snapshot()
            mutate(self._members)
            after = self._snapshot()
            self._metrics.member_counts(
                self.name,
                tracked=len(self._members),
                exported=sum(1 for m in self._members.values() if m.is_exported),
            )

        changes = [new for old, new in zip(before, after) if old != new]
        if changes:
            logger.debug(
                "[%s] %s changed %s projection(s).",
                self.name,
                op,
                "/".join(p.kind.value for p in changes),
            )
        await self._notifier.notify_all(changes, op=op)

    def _snapshot(self) -> tuple[Projection, ...]:
        # Caller must hold the lock.
        return tuple(build_projection(self._members, kind) for kind in _PUBLISH_ORDER)

    def _extract(self, node: Any) -> Member:
        member = extract_member(node)
        if not member.name:
            logger.warning("[%s] Node without a name; storing it under the empty key.", self.name)
        for raw in member.skipped:
            logger.warning("[%s] Ignoring unparseable address %r on node %s.", self.name, raw, member.name)
        return member
