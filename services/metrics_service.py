"""
services/metrics_service.py

Responsibility: Defines the MetricsSink interface handed to the registry, the
reconciler and the provider clients, plus its Prometheus implementation and a
fan-out that forwards to several sinks.
Does NOT: serve the /metrics endpoint, persist stats, or decide when to count.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge


class MetricsSink:
    """
    Receives operational events from the engine. Every method is a no-op here;
    implementations override the events they care about, so a bare
    MetricsSink() is the null sink.
    """

    def registry_event(self, store: str, op: str) -> None:
        """Called once per registry operation (add, update, delete, replace, resync)."""

    def member_counts(self, store: str, tracked: int, exported: int) -> None:
        """Called after every registry mutation with the table size and eligible count."""

    def reconcile_attempt(self, record: str) -> None:
        """Called when a reconcile pass for a record name starts."""

    def reconcile_success(self, record: str) -> None:
        """Called when a reconcile pass converged the record."""

    def reconcile_failure(self, record: str) -> None:
        """Called when a reconcile pass raised."""

    def record_created(self, record: str) -> None:
        """Called once per A/AAAA record created."""

    def record_deleted(self, record: str) -> None:
        """Called once per record deleted."""

    def requests_remaining(self, provider: str, remaining: int) -> None:
        """Called with the provider's reported API rate-limit headroom."""


class PrometheusMetrics(MetricsSink):
    """
    MetricsSink backed by prometheus_client collectors.

    Each instance owns its CollectorRegistry so several apps (or tests) can
    coexist in one process. The /metrics route renders `self.registry`.
    """

    def __init__(
        self,
        provider: str = "",
        zone: str = "",
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.registry = registry or CollectorRegistry()
        self._provider = provider
        self._zone = zone

        self._node_change_events = Counter(
            "node_change_events",
            "A counter of node change events, by event type and the store they affected.",
            ["store", "event"],
            registry=self.registry,
        )
        self._node_count = Gauge(
            "node_count",
            "The number of nodes that we are currently tracking.",
            ["store"],
            registry=self.registry,
        )
        self._node_exported_count = Gauge(
            "node_exported_count",
            "The number of nodes that are currently being exported to DNS.",
            ["store"],
            registry=self.registry,
        )
        dns_labels = ["provider", "zone", "record"]
        self._update_attempts = Counter(
            "dns_update_attempts", "The number of attempts to update DNS.",
            dns_labels, registry=self.registry,
        )
        self._update_success = Counter(
            "dns_update_success", "The number of attempts to update DNS that ended in success.",
            dns_labels, registry=self.registry,
        )
        self._update_failures = Counter(
            "dns_update_failures", "The number of attempts to update DNS that ended in an error.",
            dns_labels, registry=self.registry,
        )
        self._records_created = Counter(
            "dns_records_created", "The number of A/AAAA records added to DNS.",
            dns_labels, registry=self.registry,
        )
        self._records_deleted = Counter(
            "dns_records_deleted", "The number of A/AAAA records removed from DNS.",
            dns_labels, registry=self.registry,
        )
        self._requests_remaining = Gauge(
            "dns_provider_requests_remaining",
            "The number of API requests remaining on the DNS provider client.",
            ["provider"],
            registry=self.registry,
        )

    def registry_event(self, store: str, op: str) -> None:
        self._node_change_events.labels(store=store, event=op).inc()

    def member_counts(self, store: str, tracked: int, exported: int) -> None:
        self._node_count.labels(store=store).set(tracked)
        self._node_exported_count.labels(store=store).set(exported)

    def reconcile_attempt(self, record: str) -> None:
        self._update_attempts.labels(*self._dns_labels(record)).inc()

    def reconcile_success(self, record: str) -> None:
        self._update_success.labels(*self._dns_labels(record)).inc()

    def reconcile_failure(self, record: str) -> None:
        self._update_failures.labels(*self._dns_labels(record)).inc()

    def record_created(self, record: str) -> None:
        self._records_created.labels(*self._dns_labels(record)).inc()

    def record_deleted(self, record: str) -> None:
        self._records_deleted.labels(*self._dns_labels(record)).inc()

    def requests_remaining(self, provider: str, remaining: int) -> None:
        self._requests_remaining.labels(provider=provider).set(remaining)

    def _dns_labels(self, record: str) -> tuple[str, str, str]:
        return self._provider, self._zone, record


class MetricsFanout(MetricsSink):
    """Forwards every event to each of the wrapped sinks, in order."""

    def __init__(self, *sinks: MetricsSink) -> None:
        self._sinks = sinks

    def registry_event(self, store: str, op: str) -> None:
        for sink in self._sinks:
            sink.registry_event(store, op)

    def member_counts(self, store: str, tracked: int, exported: int) -> None:
        for sink in self._sinks:
            sink.member_counts(store, tracked, exported)

    def reconcile_attempt(self, record: str) -> None:
        for sink in self._sinks:
            sink.reconcile_attempt(record)

    def reconcile_success(self, record: str) -> None:
        for sink in self._sinks:
            sink.reconcile_success(record)

    def reconcile_failure(self, record: str) -> None:
        for sink in self._sinks:
            sink.reconcile_failure(record)

    def record_created(self, record: str) -> None:
        for sink in self._sinks:
            sink.record_created(record)

    def record_deleted(self, record: str) -> None:
        for sink in self._sinks:
            sink.record_deleted(record)

    def requests_remaining(self, provider: str, remaining: int) -> None:
        for sink in self._sinks:
            sink.requests_remaining(provider, remaining)
