"""Shared kernel primitives (events, errors, results)."""

from .domain_events import (
    DomainEvent,
    ProjectCreatedEvent,
    ProjectStageChangedEvent,
    ProjectDeletedEvent,
    ProjectSyncStatusChangedEvent,
    ContentGeneratedEvent,
    GenerationDiscardedEvent,
)
from .exceptions import (
    DomainException,
    ValidationError,
    InvalidTransitionError,
    EntityNotFoundError,
    ExternalServiceError,
    GenerationError,
    CircuitOpenError,
    PersistenceError,
    ConfigurationError,
)
from .result import Result

__all__ = [
    "DomainEvent",
    "ProjectCreatedEvent",
    "ProjectStageChangedEvent",
    "ProjectDeletedEvent",
    "ProjectSyncStatusChangedEvent",
    "ContentGeneratedEvent",
    "GenerationDiscardedEvent",
    "DomainException",
    "ValidationError",
    "InvalidTransitionError",
    "EntityNotFoundError",
    "ExternalServiceError",
    "GenerationError",
    "CircuitOpenError",
    "PersistenceError",
    "ConfigurationError",
    "Result",
]
