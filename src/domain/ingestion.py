"""Ingestion domain service - entry points that turn raw uploads into list updates."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.config import Settings, get_settings
from core.exceptions import ListNotFoundError, ValidationError
from core.logging_config import get_context_logger
from core.models import PayloadFormat, PropertyList
from core.types import UploadStats
from ingestion.normalizer import NormalizedPayload, normalize_payload

from .lists import ListService
from .properties import PropertyService


@dataclass
class IngestionResult:
    """Result of ingesting one payload into one list."""

    list_id: str
    list_name: str
    format: PayloadFormat
    stats: UploadStats
    errors: List[str] = field(default_factory=list)
    list_created: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.stats.errors == 0

    @property
    def should_notify(self) -> bool:
        """Subscribers hear about uploads that added properties."""
        return self.stats.new > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "success": self.success,
            "list_id": self.list_id,
            "list_name": self.list_name,
            "list_created": self.list_created,
            "format": self.format.value,
            "stats": self.stats.as_dict(),
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


class IngestionService:
    """Service for the admin and automation upload paths."""

    def __init__(self, session: Session, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.lists = ListService(session, self.settings)
        self.properties = PropertyService(session, self.settings)

    def _upload(
        self,
        property_list: PropertyList,
        normalized: NormalizedPayload,
        actor_id: str,
        started: float,
        list_created: bool = False,
    ) -> IngestionResult:
        logger = get_context_logger(
            __name__, list_id=property_list.id, upload_format=normalized.format.value
        )
        normalization = normalized.result

        upload = self.properties.upload_properties(property_list.id, normalization.accepted, actor_id)

        # Normalizer rejects count toward the batch just like upsert errors
        stats = upload.stats
        stats.total += normalization.rejected
        stats.errors += normalization.rejected

        result = IngestionResult(
            list_id=property_list.id,
            list_name=property_list.name,
            format=normalized.format,
            stats=stats,
            errors=normalization.errors + upload.errors,
            list_created=list_created,
            duration_seconds=round(time.monotonic() - started, 3),
        )

        logger.info(
            f"Ingested {normalized.format.value} payload into '{property_list.name}': {stats.summary()}",
            extra={"extra_data": {"actor_id": actor_id, "list_created": list_created}},
        )
        if stats.errors:
            logger.warning(f"{stats.errors} item(s) rejected", extra={"extra_data": {"errors": result.errors[:20]}})
        return result

    def ingest_into_list(self, list_id: str, payload: Any, actor_id: str) -> IngestionResult:
        """
        Admin path: ingest a payload into an existing list.

        Raises:
            ListNotFoundError: If the list does not exist.
            ValidationError: If the payload as a whole is unusable.
        """
        started = time.monotonic()
        property_list = self.lists.require_list(list_id)
        normalized = normalize_payload(payload)
        return self._upload(property_list, normalized, actor_id, started)

    def ingest_automation(
        self,
        payload: Any,
        actor_id: str,
        list_id: Optional[str] = None,
        list_name: Optional[str] = None,
        location: Optional[str] = None,
        create_if_missing: bool = False,
    ) -> IngestionResult:
        """
        Automation path: resolve the target list, then ingest.

        The list is resolved from, in order: an explicit id (argument or
        payload ``listId``), a name and location (arguments or payload
        ``listName``/``location``; Fotocasa's ``ubicacion`` stands for both).

        Raises:
            ListNotFoundError: If the list cannot be found and
                ``create_if_missing`` is False, or an explicit id is unknown.
            ValidationError: If no list identity can be resolved, or the
                payload as a whole is unusable.
        """
        started = time.monotonic()
        normalized = normalize_payload(payload)

        list_id = list_id or normalized.list_id
        list_name = list_name or normalized.list_name
        location = location or normalized.location
        created = False

        if list_id:
            property_list = self.lists.require_list(list_id)
        elif list_name and location:
            if create_if_missing:
                property_list, created = self.lists.find_or_create_list(list_name, location)
            else:
                property_list = self.lists.find_list_by_name_and_location(list_name, location)
                if property_list is None:
                    raise ListNotFoundError(
                        message=(
                            f"List not found: {list_name} ({location}). "
                            "Use createIfNotExists=true to auto-create the list"
                        )
                    )
        else:
            raise ValidationError("Either listId or both listName and location are required")

        return self._upload(property_list, normalized, actor_id, started, list_created=created)


__all__ = ["IngestionService", "IngestionResult"]
