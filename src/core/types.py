"""Shared dataclasses and type helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(slots=True)
class UploadStats:
    """Counters for one upload batch.

    ``total`` counts the raw items received, so
    ``new + updated + duplicates + errors == total`` always holds.
    """

    total: int = 0
    new: int = 0
    updated: int = 0
    duplicates: int = 0
    errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "new": self.new,
            "updated": self.updated,
            "duplicates": self.duplicates,
            "errors": self.errors,
        }

    @property
    def changed(self) -> int:
        return self.new + self.updated

    def summary(self) -> str:
        """Return a compact human-readable summary for logging/CLI output."""
        return ", ".join(f"{key}={value}" for key, value in self.as_dict().items())

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        return self.summary()


__all__ = ["UploadStats"]
