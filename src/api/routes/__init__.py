"""API route modules."""
from __future__ import annotations

from . import admin, automation, health, list_requests, lists

__all__ = [
    "admin",
    "automation",
    "health",
    "list_requests",
    "lists",
]
