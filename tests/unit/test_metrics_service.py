"""
tests/unit/test_metrics_service.py

Unit tests for services/metrics_service.py.
Each test owns a PrometheusMetrics instance, and with it a private registry.
"""

from __future__ import annotations

from unittest.mock import MagicMock

from services.metrics_service import MetricsFanout, MetricsSink, PrometheusMetrics


def _value(metrics, name, **labels):
    return metrics.registry.get_sample_value(name, labels)


def test_registry_events_and_counts():
    metrics = PrometheusMetrics(provider="digitalocean", zone="example.com")

    metrics.registry_event("main", "add")
    metrics.registry_event("main", "add")
    metrics.registry_event("main", "resync")
    metrics.member_counts("main", tracked=3, exported=2)

    assert _value(metrics, "node_change_events_total", store="main", event="add") == 2
    assert _value(metrics, "node_change_events_total", store="main", event="resync") == 1
    assert _value(metrics, "node_count", store="main") == 3
    assert _value(metrics, "node_exported_count", store="main") == 2


def test_dns_counters_are_labelled_with_provider_zone_and_record():
    metrics = PrometheusMetrics(provider="digitalocean", zone="example.com")
    labels = {"provider": "digitalocean", "zone": "example.com", "record": "nodes"}

    metrics.reconcile_attempt("nodes")
    metrics.reconcile_success("nodes")
    metrics.reconcile_attempt("nodes")
    metrics.reconcile_failure("nodes")
    metrics.record_created("nodes")
    metrics.record_deleted("nodes")

    assert _value(metrics, "dns_update_attempts_total", **labels) == 2
    assert _value(metrics, "dns_update_success_total", **labels) == 1
    assert _value(metrics, "dns_update_failures_total", **labels) == 1
    assert _value(metrics, "dns_records_created_total", **labels) == 1
    assert _value(metrics, "dns_records_deleted_total", **labels) == 1


def test_requests_remaining_gauge():
    metrics = PrometheusMetrics()
    metrics.requests_remaining("digitalocean", 4999)

    assert _value(metrics, "dns_provider_requests_remaining", provider="digitalocean") == 4999


def test_instances_do_not_share_collectors():
    first = PrometheusMetrics()
    second = PrometheusMetrics()
    first.registry_event("main", "add")

    assert _value(second, "node_change_events_total", store="main", event="add") is None


def test_base_sink_is_a_no_op():
    sink = MetricsSink()
    sink.registry_event("main", "add")
    sink.reconcile_failure("nodes")
    sink.requests_remaining("cloudflare", 1)


def test_fanout_forwards_to_every_sink():
    a = MagicMock(spec=MetricsSink)
    b = MagicMock(spec=MetricsSink)
    fanout = MetricsFanout(a, b)

    fanout.registry_event("main", "delete")
    fanout.member_counts("main", 1, 0)
    fanout.reconcile_attempt("nodes")
    fanout.record_created("nodes")

    for sink in (a, b):
        sink.registry_event.assert_called_once_with("main", "delete")
        sink.member_counts.assert_called_once_with("main", 1, 0)
        sink.reconcile_attempt.assert_called_once_with("nodes")
        sink.record_created.assert_called_once_with("nodes")
