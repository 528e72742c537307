"""Core module exports."""
from __future__ import annotations

from core.config import Settings, get_settings, reload_settings
from core.db import (
    Base,
    create_db_engine,
    create_session_factory,
    init_db,
    session_scope,
    validate_database,
)
from core.exceptions import (
    # Base
    InmoCaptError,
    # Configuration
    ConfigurationError,
    # Database
    DatabaseError,
    # Ingestion
    IngestionError,
    ValidationError,
    # Lookup
    NotFoundError,
    ListNotFoundError,
    PropertyNotFoundError,
    ListRequestNotFoundError,
    # State
    ConflictError,
    InvalidStateTransitionError,
    # External Services
    ExternalServiceError,
    EmailDeliveryError,
    RateLimitError,
    ServiceUnavailableError,
)
from core.logging_config import (
    setup_logging,
    get_logger,
    get_context_logger,
    log_external_call,
    JSONFormatter,
    TextFormatter,
    ContextLogger,
)
from core.models import (
    PayloadFormat,
    PropertyState,
    ListRequestStatus,
    SubscriptionStatus,
    PropertyList,
    Property,
    PropertyAgentState,
    ListUpdate,
    ListRequest,
    User,
    Subscription,
)
from core.types import UploadStats

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "reload_settings",
    # Database
    "Base",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    "validate_database",
    # Models
    "PayloadFormat",
    "PropertyState",
    "ListRequestStatus",
    "SubscriptionStatus",
    "PropertyList",
    "Property",
    "PropertyAgentState",
    "ListUpdate",
    "ListRequest",
    "User",
    "Subscription",
    "UploadStats",
    # Exceptions - Base
    "InmoCaptError",
    # Exceptions - Config
    "ConfigurationError",
    # Exceptions - Database
    "DatabaseError",
    # Exceptions - Ingestion
    "IngestionError",
    "ValidationError",
    # Exceptions - Lookup
    "NotFoundError",
    "ListNotFoundError",
    "PropertyNotFoundError",
    "ListRequestNotFoundError",
    # Exceptions - State
    "ConflictError",
    "InvalidStateTransitionError",
    # Exceptions - External Services
    "ExternalServiceError",
    "EmailDeliveryError",
    "RateLimitError",
    "ServiceUnavailableError",
    # Logging
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_external_call",
    "JSONFormatter",
    "TextFormatter",
    "ContextLogger",
]
