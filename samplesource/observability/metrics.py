"""Prometheus metrics for the SampleSource controller.

All collectors are registered on the default registry so ``/metrics``
exposes them without further wiring.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

reconcile_total = Counter(
    "samplesource_reconcile_total",
    "Reconcile invocations by outcome.",
    ["outcome"],
)

reconcile_duration_seconds = Histogram(
    "samplesource_reconcile_duration_seconds",
    "Wall-clock duration of a single reconcile invocation.",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

ready_latency_seconds = Histogram(
    "samplesource_ready_latency_seconds",
    "Time from resource creation until it first became ready.",
    ["kind"],
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0),
)

child_writes_total = Counter(
    "samplesource_child_writes_total",
    "Write operations issued against owned child resources.",
    ["kind", "operation"],
)

queue_depth = Gauge(
    "samplesource_queue_depth",
    "Keys waiting in the reconcile work queue.",
)


class PrometheusStatsReporter:
    """Reports time-to-ready into the ready latency histogram."""

    def report_ready(self, kind: str, namespace: str, name: str, duration_seconds: float) -> None:
        if duration_seconds < 0:
            raise ValueError(f"negative ready latency for {kind} {namespace}/{name}: {duration_seconds}")
        ready_latency_seconds.labels(kind=kind).observe(duration_seconds)
