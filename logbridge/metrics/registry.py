from __future__ import annotations

from prometheus_client import Counter, Histogram

LINES_TOTAL = Counter(
    "logbridge_lines_total",
    "Log lines processed by the converter",
    ["outcome"],
)

LINES_SKIPPED_TOTAL = Counter(
    "logbridge_lines_skipped_total",
    "Log lines that produced no operation",
    ["reason"],
)

OPERATIONS_PUBLISHED_TOTAL = Counter(
    "logbridge_operations_published_total",
    "Operations acknowledged by the broker",
    ["destination", "entity_type"],
)

PUBLISH_LATENCY_SECONDS = Histogram(
    "logbridge_publish_latency_seconds",
    "Time from send to delivery acknowledgment",
    ["destination"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

PUBLISH_FAILURES_TOTAL = Counter(
    "logbridge_publish_failures_total",
    "Publish attempts that failed or timed out",
    ["destination", "kind"],
)


def observe_line_converted() -> None:
    LINES_TOTAL.labels(outcome="converted").inc()


def observe_line_skipped(reason: str) -> None:
    LINES_TOTAL.labels(outcome="skipped").inc()
    LINES_SKIPPED_TOTAL.labels(reason=reason).inc()


def observe_publish(destination: str, entity_type: str, latency_s: float) -> None:
    OPERATIONS_PUBLISHED_TOTAL.labels(destination=destination, entity_type=entity_type).inc()
    PUBLISH_LATENCY_SECONDS.labels(destination=destination).observe(latency_s)


def observe_publish_failure(destination: str, kind: str) -> None:
    PUBLISH_FAILURES_TOTAL.labels(destination=destination, kind=kind).inc()
