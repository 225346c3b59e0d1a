"""Prometheus metrics definitions."""
from __future__ import annotations

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST


REQUEST_COUNT = Counter(
    "contentforge_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "contentforge_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
)

GENERATION_TOTAL = Counter(
    "contentforge_generation_total",
    "Total content generation calls",
    ["operation", "status"],
)

GENERATION_DURATION = Histogram(
    "contentforge_generation_duration_seconds",
    "Content generation duration",
    ["operation"],
    buckets=[1, 5, 10, 30, 60, 120, 300],
)

PERSISTENCE_OPERATIONS = Counter(
    "contentforge_persistence_operations_total",
    "Persistence operations by backend",
    ["backend", "operation", "status"],
)

CIRCUIT_BREAKER_STATE = Gauge(
    "contentforge_circuit_breaker_state",
    "Circuit breaker state (0 closed, 1 half-open, 2 open)",
    ["name"],
)


def render_metrics() -> bytes:
    return generate_latest()


METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST
