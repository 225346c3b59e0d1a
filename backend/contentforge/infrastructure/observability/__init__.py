"""Observability utilities (metrics, logging)."""

from .metrics import (
    REQUEST_COUNT,
    REQUEST_LATENCY,
    GENERATION_TOTAL,
    GENERATION_DURATION,
    PERSISTENCE_OPERATIONS,
    CIRCUIT_BREAKER_STATE,
    render_metrics,
    METRICS_CONTENT_TYPE,
)
from .structured_logging import configure_logging, configure_structlog
from .middleware import ObservabilityMiddleware

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "GENERATION_TOTAL",
    "GENERATION_DURATION",
    "PERSISTENCE_OPERATIONS",
    "CIRCUIT_BREAKER_STATE",
    "render_metrics",
    "METRICS_CONTENT_TYPE",
    "configure_logging",
    "configure_structlog",
    "ObservabilityMiddleware",
]
