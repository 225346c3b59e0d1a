"""Retry helper with exponential backoff."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


async def async_retry(
    func: Callable[..., Any],
    *args: Any,
    retries: int = 3,
    backoff: float = 0.5,
    jitter: float = 0.1,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    **kwargs: Any,
) -> Any:
    delay = backoff
    attempt = 0
    while True:
        try:
            if asyncio.iscoroutinefunction(func):
                return await func(*args, **kwargs)
            return await asyncio.to_thread(func, *args, **kwargs)
        except exceptions as exc:
            attempt += 1
            if attempt > retries:
                raise
            logger.warning(
                "%s failed (attempt %d/%d): %s",
                getattr(func, "__name__", "call"),
                attempt,
                retries + 1,
                exc,
            )
            await asyncio.sleep(delay + random.random() * jitter)
            delay *= 2
