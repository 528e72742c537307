"""Domain layer for InmoCapt business logic.

This module provides a clean separation between business logic and
infrastructure (CLI, API, etc.). All core operations should go through
the domain services.
"""
from __future__ import annotations

from .agent_state import AgentStateService, AgentStateView, PaginatedProperties
from .ingestion import IngestionResult, IngestionService
from .list_requests import ListRequestService
from .lists import ListService, ListWithStats
from .properties import PropertyPage, PropertyService, UploadResult
from .subscriptions import Subscriber, SubscriptionService

__all__ = [
    # Lists
    "ListService",
    "ListWithStats",
    # Properties
    "PropertyService",
    "PropertyPage",
    "UploadResult",
    # Agent State
    "AgentStateService",
    "AgentStateView",
    "PaginatedProperties",
    # Ingestion
    "IngestionService",
    "IngestionResult",
    # List Requests
    "ListRequestService",
    # Subscriptions
    "SubscriptionService",
    "Subscriber",
]
