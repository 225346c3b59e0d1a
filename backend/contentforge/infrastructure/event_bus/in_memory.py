"""In-memory event bus for in-process subscribers."""
from __future__ import annotations

import logging
from typing import Type

from contentforge.shared_kernel.domain_events import DomainEvent
from .interfaces import EventBus, EventHandler
from .handlers import EventHandlerRegistry, WILDCARD

logger = logging.getLogger(__name__)


class InMemoryEventBus(EventBus):
    def __init__(self) -> None:
        self._registry = EventHandlerRegistry()

    async def publish(self, event: DomainEvent) -> str:
        event_type = type(event).__name__
        for handler in self._registry.get_handlers(event_type):
            try:
                await handler(event)
            except Exception:
                # Subscriber failures never reach the publisher.
                logger.exception("Event handler failed for %s", event_type)
        return event_type

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        self._registry.register(event_type.__name__, handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self._registry.register(WILDCARD, handler)
