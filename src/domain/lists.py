"""List domain service - resolution and management of property lists."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import Settings, get_settings
from core.exceptions import ListNotFoundError, ValidationError
from core.logging_config import get_logger
from core.models import Property, PropertyList, Subscription, SubscriptionStatus
from core.utils import utcnow

LOGGER = get_logger(__name__)

MAX_NAME_LENGTH = 200
MAX_LOCATION_LENGTH = 500


@dataclass
class ListWithStats:
    """A list together with its active subscriber and property counts."""

    property_list: PropertyList
    subscriber_count: int = 0
    total_properties: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = self.property_list.to_dict()
        data["subscriber_count"] = self.subscriber_count
        data["total_properties"] = self.total_properties
        return data


def _require_text(value: Optional[str], field: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def _check_price(price_cents: int) -> int:
    if price_cents is None or price_cents < 0:
        raise ValidationError("price_cents must be >= 0")
    return int(price_cents)


def _check_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if len(code) != 3:
        raise ValidationError("currency must be a 3-letter code")
    return code


class ListService:
    """Service for list lookup, creation and bookkeeping."""

    def __init__(self, session: Session, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_list(self, list_id: str) -> Optional[PropertyList]:
        return self.session.get(PropertyList, list_id)

    def require_list(self, list_id: str) -> PropertyList:
        """Get a list or raise ListNotFoundError."""
        property_list = self.get_list(list_id)
        if property_list is None:
            raise ListNotFoundError(list_id)
        return property_list

    def find_list_by_name_and_location(self, name: str, location: str) -> Optional[PropertyList]:
        """
        Find a list by name and location, ignoring case on both.

        When several lists match, the oldest one wins.
        """
        return (
            self.session.query(PropertyList)
            .filter(
                func.lower(PropertyList.name) == name.strip().lower(),
                func.lower(PropertyList.location) == location.strip().lower(),
            )
            .order_by(PropertyList.created_at.asc())
            .first()
        )

    def find_or_create_list(
        self,
        name: str,
        location: str,
        default_price_cents: int = 0,
    ) -> Tuple[PropertyList, bool]:
        """
        Return the matching list, creating it when absent.

        Returns:
            Tuple of (list, created).
        """
        existing = self.find_list_by_name_and_location(name, location)
        if existing is not None:
            return existing, False

        created = self.create_list(name=name, location=location, price_cents=default_price_cents)
        LOGGER.info(
            f"Auto-created list '{created.name}' ({created.location})",
            extra={"list_id": created.id},
        )
        return created, True

    def _counts(self, list_ids: Optional[List[str]] = None) -> Tuple[Dict[str, int], Dict[str, int]]:
        sub_query = (
            self.session.query(Subscription.list_id, func.count(Subscription.id))
            .filter(Subscription.status == SubscriptionStatus.ACTIVE.value)
        )
        prop_query = self.session.query(Property.list_id, func.count(Property.id))
        if list_ids is not None:
            sub_query = sub_query.filter(Subscription.list_id.in_(list_ids))
            prop_query = prop_query.filter(Property.list_id.in_(list_ids))

        subscribers = dict(sub_query.group_by(Subscription.list_id).all())
        properties = dict(prop_query.group_by(Property.list_id).all())
        return subscribers, properties

    def get_all_lists(self) -> List[ListWithStats]:
        """All lists, newest first, with subscriber and property counts."""
        lists = self.session.query(PropertyList).order_by(PropertyList.created_at.desc()).all()
        subscribers, properties = self._counts()
        return [
            ListWithStats(
                property_list=item,
                subscriber_count=subscribers.get(item.id, 0),
                total_properties=properties.get(item.id, 0),
            )
            for item in lists
        ]

    def get_list_with_stats(self, list_id: str) -> Optional[ListWithStats]:
        property_list = self.get_list(list_id)
        if property_list is None:
            return None
        subscribers, properties = self._counts([list_id])
        return ListWithStats(
            property_list=property_list,
            subscriber_count=subscribers.get(list_id, 0),
            total_properties=properties.get(list_id, 0),
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_list(
        self,
        name: str,
        location: str,
        price_cents: int = 0,
        currency: Optional[str] = None,
    ) -> PropertyList:
        """Create a list. ``last_updated_at`` starts at creation time."""
        now = utcnow()
        property_list = PropertyList(
            name=_require_text(name, "name", MAX_NAME_LENGTH),
            location=_require_text(location, "location", MAX_LOCATION_LENGTH),
            price_cents=_check_price(price_cents),
            currency=_check_currency(currency or self.settings.default_currency),
            last_updated_at=now,
            created_at=now,
        )
        self.session.add(property_list)
        self.session.flush()
        return property_list

    def update_list(
        self,
        list_id: str,
        name: Optional[str] = None,
        location: Optional[str] = None,
        price_cents: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> PropertyList:
        """Apply a partial update; fields left as None are untouched."""
        property_list = self.require_list(list_id)
        if name is not None:
            property_list.name = _require_text(name, "name", MAX_NAME_LENGTH)
        if location is not None:
            property_list.location = _require_text(location, "location", MAX_LOCATION_LENGTH)
        if price_cents is not None:
            property_list.price_cents = _check_price(price_cents)
        if currency is not None:
            property_list.currency = _check_currency(currency)
        self.session.flush()
        return property_list

    def delete_list(self, list_id: str) -> bool:
        """Delete a list and, through the cascade, its properties. False if absent."""
        property_list = self.get_list(list_id)
        if property_list is None:
            return False
        self.session.delete(property_list)
        self.session.flush()
        LOGGER.info(f"Deleted list {list_id}", extra={"list_id": list_id})
        return True

    def touch_list(self, list_id: str) -> None:
        """Bump ``last_updated_at`` to now."""
        self.session.query(PropertyList).filter(PropertyList.id == list_id).update(
            {PropertyList.last_updated_at: utcnow()}, synchronize_session="fetch"
        )

    def recalculate_price(self, list_id: str) -> Optional[int]:
        """
        Set the list price from its property count.

        Returns the new price in cents, or None when recalculation is disabled.
        """
        per_property = self.settings.price_per_property_cents
        if per_property <= 0:
            return None

        count = (
            self.session.query(func.count(Property.id))
            .filter(Property.list_id == list_id)
            .scalar()
        ) or 0
        price_cents = count * per_property
        self.session.query(PropertyList).filter(PropertyList.id == list_id).update(
            {PropertyList.price_cents: price_cents}, synchronize_session="fetch"
        )
        LOGGER.debug(
            f"List price recalculated: {count} properties -> {price_cents} cents",
            extra={"list_id": list_id},
        )
        return price_cents


__all__ = ["ListService", "ListWithStats"]
