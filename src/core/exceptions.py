"""Custom exceptions for the InmoCapt application."""
from __future__ import annotations


class InmoCaptError(Exception):
    """Base exception for all application errors."""

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(InmoCaptError):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(InmoCaptError):
    """Raised when the database cannot be reached or its schema cannot be created."""

    pass


# =============================================================================
# Ingestion Errors
# =============================================================================


class IngestionError(InmoCaptError):
    """Base exception for ingestion-related errors."""

    pass


class ValidationError(IngestionError):
    """Raised when a payload or request value fails validation."""

    pass


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(InmoCaptError):
    """Raised when a requested entity does not exist."""

    entity = "Resource"

    def __init__(self, entity_id: object = None, message: str | None = None) -> None:
        self.entity_id = entity_id
        if message is None:
            message = f"{self.entity} not found" if entity_id is None else f"{self.entity} not found: {entity_id}"
        super().__init__(message)


class ListNotFoundError(NotFoundError):
    """Raised when a property list does not exist."""

    entity = "List"


class PropertyNotFoundError(NotFoundError):
    """Raised when a property does not exist in the given list."""

    entity = "Property"


class ListRequestNotFoundError(NotFoundError):
    """Raised when a list request does not exist."""

    entity = "List request"


# =============================================================================
# State Errors
# =============================================================================


class ConflictError(InmoCaptError):
    """Raised when an operation conflicts with the current state."""

    pass


class InvalidStateTransitionError(ConflictError):
    """Raised when a list request has already been processed."""

    pass


# =============================================================================
# External Service Errors
# =============================================================================


class ExternalServiceError(InmoCaptError):
    """Base exception for all external service errors."""

    pass


class EmailDeliveryError(ExternalServiceError):
    """Raised when the e-mail provider rejects or fails a send."""

    pass


class RateLimitError(ExternalServiceError):
    """Raised when an external API rate limit is hit."""

    pass


class ServiceUnavailableError(ExternalServiceError):
    """Raised when an external service is temporarily unavailable."""

    pass


__all__ = [
    # Base
    "InmoCaptError",
    # Configuration
    "ConfigurationError",
    # Database
    "DatabaseError",
    # Ingestion
    "IngestionError",
    "ValidationError",
    # Lookup
    "NotFoundError",
    "ListNotFoundError",
    "PropertyNotFoundError",
    "ListRequestNotFoundError",
    # State
    "ConflictError",
    "InvalidStateTransitionError",
    # External Services
    "ExternalServiceError",
    "EmailDeliveryError",
    "RateLimitError",
    "ServiceUnavailableError",
]
