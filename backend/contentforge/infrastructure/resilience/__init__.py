"""Resilience utilities (circuit breaker, retry, timeout)."""

from .circuit_breaker import CircuitBreaker, CircuitState
from .retry import async_retry
from .timeout import with_timeout

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "async_retry",
    "with_timeout",
]
