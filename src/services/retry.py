"""Retry utilities using tenacity."""
from __future__ import annotations

from typing import Type

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.exceptions import RateLimitError, ServiceUnavailableError
from core.logging_config import get_logger

LOGGER = get_logger(__name__)

# Failures worth another attempt: network trouble, 429s and 5xx responses
TRANSIENT_ERRORS: tuple[Type[Exception], ...] = (
    httpx.TransportError,
    RateLimitError,
    ServiceUnavailableError,
)


def transient_retrying(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> Retrying:
    """
    Build a tenacity ``Retrying`` controller for transient HTTP failures.

    Example:
        for attempt in transient_retrying(max_attempts=3):
            with attempt:
                response = client.post(url, json=body)
    """
    return Retrying(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=before_sleep_log(LOGGER, log_level=20),  # INFO level
        reraise=True,
    )


__all__ = ["TRANSIENT_ERRORS", "transient_retrying"]
