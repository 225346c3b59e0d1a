"""Event bus interfaces."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Type

from contentforge.shared_kernel.domain_events import DomainEvent

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus(ABC):
    """Publishes workspace and generation events to in-process subscribers.

    ``publish`` returns the event type name and never raises on behalf of
    a subscriber.
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> str:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe_all(self, handler: EventHandler) -> None:
        """Receive every published event regardless of type."""
        raise NotImplementedError
