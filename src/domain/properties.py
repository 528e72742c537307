"""Property domain service - deduplicating upload of properties into a list.

Deduplication is keyed on ``source_url`` within a single list:

* no URL: always inserted as new
* URL already seen earlier in the same batch: duplicate, no database work
* URL already stored in the list: updated when any field differs, otherwise duplicate
* anything else: inserted as new
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from core.config import Settings, get_settings
from core.logging_config import get_logger
from core.models import ListUpdate, Property
from core.types import UploadStats
from core.utils import decode_cursor, encode_cursor, isoformat, utcnow
from ingestion.normalizer import PropertyInput, item_error
from ingestion.parsers import clean_text, normalize_phone

from .lists import ListService

LOGGER = get_logger(__name__)

# Fields compared to decide between "updated" and "duplicate"
COMPARED_FIELDS = ("price", "m2", "bedrooms", "phone", "owner_name", "raw_payload")


@dataclass
class UploadResult:
    """Outcome of one upload batch."""

    success: bool
    list_id: str
    stats: UploadStats
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "list_id": self.list_id,
            "stats": self.stats.as_dict(),
            "errors": list(self.errors),
        }


@dataclass
class PropertyPage:
    """One keyset-paginated page of properties."""

    data: List[Dict[str, Any]]
    cursor: Optional[str]
    has_more: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data, "cursor": self.cursor, "has_more": self.has_more}


def property_to_dict(prop: Property) -> Dict[str, Any]:
    return {
        "id": prop.id,
        "list_id": prop.list_id,
        "price": prop.price,
        "m2": prop.m2,
        "bedrooms": prop.bedrooms,
        "phone": prop.phone,
        "owner_name": prop.owner_name,
        "source_url": prop.source_url,
        "raw_payload": prop.raw_payload,
        "created_at": isoformat(prop.created_at),
    }


def apply_cursor(query: Query, cursor: Optional[str]) -> Query:
    """Restrict ``query`` to properties after ``cursor`` in (created_at DESC, id DESC) order."""
    query = query.order_by(Property.created_at.desc(), Property.id.desc())
    if not cursor:
        return query
    created_at, property_id = decode_cursor(cursor)
    return query.filter(
        or_(
            Property.created_at < created_at,
            and_(Property.created_at == created_at, Property.id < property_id),
        )
    )


def _invalid_reason(item: PropertyInput) -> Optional[str]:
    if item.price is None:
        return "price is required"
    if isinstance(item.price, bool) or not isinstance(item.price, int):
        return f"price must be an integer, got {item.price!r}"
    if item.price < 0:
        return "price must be >= 0"
    for name in ("m2", "bedrooms"):
        value = getattr(item, name)
        if value is not None and (not isinstance(value, int) or value < 0):
            return f"{name} must be a non-negative integer"
    return None


class PropertyService:
    """Service for property upload and lookup within a list."""

    def __init__(self, session: Session, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.lists = ListService(session, self.settings)

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    def _existing_by_url(self, list_id: str) -> Dict[str, Property]:
        rows = (
            self.session.query(Property)
            .filter(Property.list_id == list_id, Property.source_url.isnot(None))
            .all()
        )
        return {row.source_url: row for row in rows}

    def _insert(self, list_id: str, values: Dict[str, Any]) -> bool:
        """Insert inside a savepoint. False when the (list, url) constraint rejects it."""
        try:
            with self.session.begin_nested():
                self.session.add(Property(list_id=list_id, created_at=utcnow(), **values))
        except IntegrityError:
            LOGGER.debug(
                f"Concurrent insert for {values.get('source_url')} counted as duplicate",
                extra={"list_id": list_id},
            )
            return False
        return True

    def upload_properties(
        self,
        list_id: str,
        items: Sequence[PropertyInput],
        uploaded_by: str,
    ) -> UploadResult:
        """
        Upload a batch of canonical properties into a list.

        Items are processed in input order; a bad item is recorded and
        skipped without aborting the batch.

        Args:
            list_id: Target list (must exist).
            items: Canonical inputs, usually from the normalizers.
            uploaded_by: Actor recorded in the list update audit row.

        Returns:
            UploadResult with stats and per-item error messages.

        Raises:
            ListNotFoundError: If the list does not exist.
        """
        self.lists.require_list(list_id)

        stats = UploadStats(total=len(items))
        errors: List[str] = []
        existing = self._existing_by_url(list_id)
        batch_urls: set[str] = set()

        for position, item in enumerate(items):
            index = item.source_index if item.source_index is not None else position

            reason = _invalid_reason(item)
            if reason:
                stats.errors += 1
                errors.append(item_error(index, reason))
                continue

            url = clean_text(item.source_url)
            values = {
                "price": item.price,
                "m2": item.m2,
                "bedrooms": item.bedrooms,
                "phone": normalize_phone(item.phone, self.settings.phone_default_region),
                "owner_name": clean_text(item.owner_name),
                "raw_payload": item.raw_payload or None,
            }

            if url is None:
                self._insert(list_id, {**values, "source_url": None})
                stats.new += 1
                continue

            if url in batch_urls:
                stats.duplicates += 1
                continue
            batch_urls.add(url)

            current = existing.get(url)
            if current is not None:
                changed = {
                    name: values[name]
                    for name in COMPARED_FIELDS
                    if getattr(current, name) != values[name]
                }
                if changed:
                    for name, value in changed.items():
                        setattr(current, name, value)
                    stats.updated += 1
                else:
                    stats.duplicates += 1
                continue

            if self._insert(list_id, {**values, "source_url": url}):
                stats.new += 1
            else:
                stats.duplicates += 1

        self.session.add(
            ListUpdate(
                list_id=list_id,
                uploaded_by=uploaded_by,
                added_count=stats.new,
                updated_count=stats.updated,
            )
        )

        if stats.changed > 0:
            self.lists.touch_list(list_id)
            self.lists.recalculate_price(list_id)

        self.session.flush()

        LOGGER.info(
            f"Upload into list {list_id}: {stats.summary()}",
            extra={"list_id": list_id, "extra_data": {"uploaded_by": uploaded_by, **stats.as_dict()}},
        )

        return UploadResult(
            success=stats.errors == 0,
            list_id=list_id,
            stats=stats,
            errors=errors,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.default_page_size
        return max(1, min(int(limit), self.settings.max_page_size))

    def get_properties_by_list(
        self,
        list_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> PropertyPage:
        """Keyset-paginated properties of a list, newest first."""
        limit = self.clamp_limit(limit)
        query = apply_cursor(self.session.query(Property).filter(Property.list_id == list_id), cursor)
        rows = query.limit(limit + 1).all()

        has_more = len(rows) > limit
        rows = rows[:limit]
        next_cursor = encode_cursor(rows[-1].created_at, rows[-1].id) if has_more and rows else None
        return PropertyPage(
            data=[property_to_dict(row) for row in rows],
            cursor=next_cursor,
            has_more=has_more,
        )

    def count_properties(self, list_id: str) -> int:
        return (
            self.session.query(func.count(Property.id))
            .filter(Property.list_id == list_id)
            .scalar()
        ) or 0

    def count_new_properties(self, list_id: str, since: datetime) -> int:
        """Properties added to the list after ``since``."""
        return (
            self.session.query(func.count(Property.id))
            .filter(Property.list_id == list_id, Property.created_at > since)
            .scalar()
        ) or 0

    def get_list_updates(self, list_id: str, limit: int = 10) -> List[ListUpdate]:
        return (
            self.session.query(ListUpdate)
            .filter(ListUpdate.list_id == list_id)
            .order_by(ListUpdate.created_at.desc())
            .limit(limit)
            .all()
        )

    def property_exists_in_list(self, property_id: str, list_id: str) -> bool:
        return (
            self.session.query(Property.id)
            .filter(Property.id == property_id, Property.list_id == list_id)
            .first()
        ) is not None

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    def delete_property(self, list_id: str, property_id: str) -> bool:
        deleted = (
            self.session.query(Property)
            .filter(Property.id == property_id, Property.list_id == list_id)
            .delete(synchronize_session="fetch")
        )
        if deleted:
            self.lists.recalculate_price(list_id)
        return bool(deleted)

    def delete_all_properties_from_list(self, list_id: str) -> int:
        """Remove every property of a list. Returns the number deleted."""
        deleted = (
            self.session.query(Property)
            .filter(Property.list_id == list_id)
            .delete(synchronize_session="fetch")
        )
        self.lists.recalculate_price(list_id)
        LOGGER.info(f"Deleted {deleted} properties", extra={"list_id": list_id})
        return deleted


__all__ = [
    "PropertyService",
    "UploadResult",
    "PropertyPage",
    "property_to_dict",
    "apply_cursor",
]
