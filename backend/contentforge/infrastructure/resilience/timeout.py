"""Timeout helper for async calls."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Any

logger = logging.getLogger(__name__)


async def with_timeout(coro: Awaitable[Any], timeout: float, name: str = "call") -> Any:
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs", name, timeout)
        raise
