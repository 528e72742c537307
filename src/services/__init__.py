"""Outbound integrations for InmoCapt.

All services have:
- Dry-run support (DRY_RUN in .env)
- Graceful fallbacks (a missing API key skips the call)
- Retry logic (with exponential backoff)
- Structured logging
"""
from __future__ import annotations

from .notification import (
    EmailNotifier,
    NotificationResult,
    notify_after_ingestion,
    notify_list_request_outcome,
)
from .retry import TRANSIENT_ERRORS, transient_retrying

__all__ = [
    # Notification
    "EmailNotifier",
    "NotificationResult",
    "notify_after_ingestion",
    "notify_list_request_outcome",
    # Retry
    "TRANSIENT_ERRORS",
    "transient_retrying",
]
