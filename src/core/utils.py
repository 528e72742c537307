"""Core utility functions."""
from __future__ import annotations

import base64
import binascii
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from core.exceptions import ValidationError


def utcnow() -> datetime:
    """Get current UTC datetime with timezone info. Always use this instead of datetime.now()."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware (UTC).

    SQLite stores datetimes without timezone info, so values read back
    must be made aware before comparing or serializing.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string for an optional datetime, always with a UTC offset."""
    aware = ensure_aware(dt)
    return aware.isoformat() if aware else None


def generate_id() -> str:
    """Generate a new opaque entity identifier."""
    return str(uuid.uuid4())


def encode_cursor(created_at: datetime, entity_id: str) -> str:
    """
    Encode a keyset pagination position as an opaque string.

    The cursor carries the (created_at, id) pair of the last row returned.
    """
    raw = f"{ensure_aware(created_at).isoformat()}|{entity_id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    """
    Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        ValidationError: If the cursor is malformed.
    """
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        timestamp, entity_id = raw.split("|", 1)
        created_at = datetime.fromisoformat(timestamp)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise ValidationError(f"Invalid cursor: {cursor}") from exc

    if not entity_id:
        raise ValidationError(f"Invalid cursor: {cursor}")

    return ensure_aware(created_at), entity_id


__all__ = [
    "utcnow",
    "ensure_aware",
    "isoformat",
    "generate_id",
    "encode_cursor",
    "decode_cursor",
]
