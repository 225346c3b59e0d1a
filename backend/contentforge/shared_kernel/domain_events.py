"""Domain event primitives for the shared kernel."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from abc import ABC
from enum import Enum


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[UUID] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "event_type": self.__class__.__name__,
            "occurred_at": self.occurred_at.isoformat(),
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "payload": self._payload_dict(),
        }

    def _payload_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for item in fields(self):
            if item.name in {"event_id", "occurred_at", "correlation_id"}:
                continue
            value = getattr(self, item.name)
            payload[item.name] = self._serialize_value(value)
        return payload

    @staticmethod
    def _serialize_value(value: Any) -> Any:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        return value


# Project lifecycle events
@dataclass(frozen=True)
class ProjectCreatedEvent(DomainEvent):
    project_id: str = ""


@dataclass(frozen=True)
class ProjectStageChangedEvent(DomainEvent):
    project_id: str = ""
    from_stage: str = ""
    to_stage: str = ""


@dataclass(frozen=True)
class ProjectDeletedEvent(DomainEvent):
    project_id: str = ""


@dataclass(frozen=True)
class ProjectSyncStatusChangedEvent(DomainEvent):
    project_id: str = ""
    status: str = ""
    error: Optional[str] = None


# Generation events
@dataclass(frozen=True)
class ContentGeneratedEvent(DomainEvent):
    project_id: str = ""
    slot: str = ""
    characters: int = 0


@dataclass(frozen=True)
class GenerationDiscardedEvent(DomainEvent):
    project_id: str = ""
    slot: str = ""
    reason: str = ""
