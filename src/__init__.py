"""Top-level package for the InmoCapt ingestion service."""
from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "api",
    "core",
    "domain",
    "ingestion",
    "services",
]
