"""Registry for event handlers."""
from __future__ import annotations

import logging
from typing import Dict, List, Iterable

from contentforge.shared_kernel.domain_events import DomainEvent
from .interfaces import EventHandler

WILDCARD = "*"


class EventHandlerRegistry:
    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}

    def register(self, event_type_name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type_name, []).append(handler)

    def get_handlers(self, event_type_name: str) -> List[EventHandler]:
        """Handlers for one event type followed by wildcard subscribers."""
        return [
            *self._handlers.get(event_type_name, []),
            *self._handlers.get(WILDCARD, []),
        ]

    def event_types(self) -> Iterable[str]:
        return self._handlers.keys()


_event_logger = logging.getLogger("contentforge.events")


async def log_domain_event(event: DomainEvent) -> None:
    """Wildcard subscriber writing every published event to the event log."""
    _event_logger.info("%s %s", type(event).__name__, event.to_dict()["payload"])
