"""Circuit breaker implementation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, TypeVar, Any
import asyncio
import logging

from contentforge.infrastructure.observability.metrics import CIRCUIT_BREAKER_STATE
from contentforge.shared_kernel.exceptions import CircuitOpenError

T = TypeVar("T")

logger = logging.getLogger(__name__)

_STATE_GAUGE = {"closed": 0, "half_open": 1, "open": 2}


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    name: str
    failure_threshold: int = 5
    recovery_timeout: timedelta = timedelta(seconds=30)
    exclude: tuple = ()

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: Optional[datetime] = field(default=None, init=False)

    @property
    def state(self) -> CircuitState:
        return self._state

    async def execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        if self._state == CircuitState.OPEN:
            if self._should_attempt_reset():
                self._set_state(CircuitState.HALF_OPEN)
            else:
                raise CircuitOpenError(f"Circuit {self.name} is open", code="CIRCUIT_OPEN")

        try:
            if asyncio.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = await asyncio.to_thread(func, *args, **kwargs)
        except Exception as exc:
            if not isinstance(exc, self.exclude):
                self._on_failure()
            raise
        self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return False
        return datetime.now(timezone.utc) - self._last_failure_time >= self.recovery_timeout

    def _set_state(self, state: CircuitState) -> None:
        if state != self._state:
            logger.info("Circuit %s: %s -> %s", self.name, self._state.value, state.value)
        self._state = state
        CIRCUIT_BREAKER_STATE.labels(self.name).set(_STATE_GAUGE[state.value])

    def _on_success(self) -> None:
        self._failure_count = 0
        self._set_state(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = datetime.now(timezone.utc)
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._set_state(CircuitState.OPEN)
