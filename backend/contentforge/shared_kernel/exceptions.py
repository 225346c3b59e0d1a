"""Shared kernel exception hierarchy."""
from typing import Optional, Dict, Any


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ValidationError(DomainException):
    """Raised when required fields are missing before a state change."""


class InvalidTransitionError(ValidationError):
    """Raised when a stage guard rejects a transition or edit."""


class EntityNotFoundError(DomainException):
    """Raised when a domain entity is not found."""


class ExternalServiceError(DomainException):
    """Raised when an external service fails."""


class GenerationError(ExternalServiceError):
    """Raised when the content generator fails or returns unusable output."""


class CircuitOpenError(ExternalServiceError):
    """Raised when a circuit breaker is open."""


class PersistenceError(DomainException):
    """Raised when a durable save or delete fails."""


class ConfigurationError(DomainException):
    """Raised when backend connection settings are malformed."""
