"""Prometheus metrics endpoint.

Exposes engine throughput and failure metrics for monitoring.
"""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    start_http_server,
)

# ---------------------------------------------------------------------------
# System metrics
# ---------------------------------------------------------------------------

SYSTEM_INFO = Info("field_counters", "Field value counter engine information")

# ---------------------------------------------------------------------------
# Engine metrics
# ---------------------------------------------------------------------------

RECORDS_HANDLED_TOTAL = Counter(
    "field_counters_records_handled_total",
    "Records passed through the counting handler",
    ["outcome"],
)

LEAF_INCREMENTS_TOTAL = Counter(
    "field_counters_leaf_increments_total",
    "Counter increments issued",
    ["counter"],
)

MAPPING_FAILURES_TOTAL = Counter(
    "field_counters_mapping_failures_total",
    "Mappings that failed while handling a record",
    ["counter", "error"],
)

HANDLE_LATENCY = Histogram(
    "field_counters_handle_latency_seconds",
    "Time spent handling one record",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)


def start_metrics_server(port: int = 9090, mode: str = "unknown") -> None:
    """Start Prometheus metrics HTTP server in a background thread."""
    SYSTEM_INFO.info({
        "version": "0.1.0",
        "mode": mode,
    })
    start_http_server(port)


# ---------------------------------------------------------------------------
# Convenience helpers for emitting metrics from the handler
# ---------------------------------------------------------------------------


def record_handled(outcome: str) -> None:
    """Record one handled record (``ok``, ``partial`` or ``undecodable``)."""
    RECORDS_HANDLED_TOTAL.labels(outcome=outcome).inc()


def record_increments(counter: str, count: int) -> None:
    """Record increments issued for a counter."""
    if count:
        LEAF_INCREMENTS_TOTAL.labels(counter=counter).inc(count)


def record_mapping_failure(counter: str, error: str) -> None:
    """Record a failed mapping."""
    MAPPING_FAILURES_TOTAL.labels(counter=counter, error=error).inc()


def record_handle_latency(seconds: float) -> None:
    HANDLE_LATENCY.observe(seconds)
