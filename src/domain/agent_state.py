"""Agent state domain service - per-agent private state and comments on properties."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import Settings, get_settings
from core.exceptions import ValidationError
from core.logging_config import get_logger
from core.models import Property, PropertyAgentState, PropertyState
from core.utils import encode_cursor, isoformat, utcnow

from .properties import apply_cursor

LOGGER = get_logger(__name__)

STATE_FILTER_ALL = "all"
VALID_STATES = tuple(state.value for state in PropertyState)


@dataclass
class AgentStateView:
    """One agent's overlay row for one property."""

    user_id: str
    property_id: str
    state: str
    comment: Optional[str]
    updated_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property_id": self.property_id,
            "state": self.state,
            "comment": self.comment or "",
            "updated_at": isoformat(self.updated_at),
        }


@dataclass
class PaginatedProperties:
    """A page of properties merged with the caller's overlay."""

    data: List[Dict[str, Any]]
    cursor: Optional[str]
    has_more: bool
    total: int
    state_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "cursor": self.cursor,
            "has_more": self.has_more,
            "total": self.total,
            "state_counts": self.state_counts,
        }


def _view(row: PropertyAgentState) -> AgentStateView:
    return AgentStateView(
        user_id=row.user_id,
        property_id=row.property_id,
        state=row.state,
        comment=row.comment,
        updated_at=row.updated_at,
    )


def _payload_text(payload: Optional[Dict[str, Any]], key: str) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    value = payload.get(key)
    return value if isinstance(value, str) and value else None


def _merge(prop: Property, overlay: Optional[PropertyAgentState]) -> Dict[str, Any]:
    payload = prop.raw_payload
    return {
        "id": prop.id,
        "list_id": prop.list_id,
        "price": prop.price,
        "m2": prop.m2,
        "bedrooms": prop.bedrooms,
        "phone": prop.phone,
        "owner_name": prop.owner_name,
        "source_url": prop.source_url,
        "created_at": isoformat(prop.created_at),
        "title": _payload_text(payload, "titulo"),
        "location": _payload_text(payload, "ubicacion"),
        "description": _payload_text(payload, "descripcion"),
        "state": overlay.state if overlay else PropertyState.NEW.value,
        "comment": (overlay.comment or "") if overlay else "",
        "state_updated_at": isoformat(overlay.updated_at) if overlay else None,
    }


class AgentStateService:
    """Service for reading and writing the agent state overlay."""

    def __init__(self, session: Session, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    def _overlay_join(self, user_id: str):
        return and_(
            PropertyAgentState.property_id == Property.id,
            PropertyAgentState.user_id == user_id,
        )

    def _state_condition(self, state_filter: str):
        if state_filter == PropertyState.NEW.value:
            # Properties without an overlay row read as "new"
            return or_(
                PropertyAgentState.state.is_(None),
                PropertyAgentState.state == PropertyState.NEW.value,
            )
        return PropertyAgentState.state == state_filter

    def get_properties_with_agent_state(
        self,
        user_id: str,
        list_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        state_filter: str = STATE_FILTER_ALL,
    ) -> PaginatedProperties:
        """
        Page through a list's properties with the caller's state and comment.

        Args:
            user_id: The agent whose overlay is merged in.
            list_id: The list to read.
            cursor: Opaque cursor from a previous page.
            limit: Page size, clamped to [1, MAX_PAGE_SIZE].
            state_filter: "all" or one of the property states.

        Raises:
            ValidationError: On an unknown state filter or malformed cursor.
        """
        state_filter = (state_filter or STATE_FILTER_ALL).lower()
        if state_filter != STATE_FILTER_ALL and state_filter not in VALID_STATES:
            raise ValidationError(f"Invalid state filter: {state_filter}")

        if limit is None:
            limit = self.settings.default_page_size
        limit = max(1, min(int(limit), self.settings.max_page_size))

        query = (
            self.session.query(Property, PropertyAgentState)
            .outerjoin(PropertyAgentState, self._overlay_join(user_id))
            .filter(Property.list_id == list_id)
        )
        count_query = (
            self.session.query(func.count(Property.id))
            .select_from(Property)
            .outerjoin(PropertyAgentState, self._overlay_join(user_id))
            .filter(Property.list_id == list_id)
        )
        if state_filter != STATE_FILTER_ALL:
            condition = self._state_condition(state_filter)
            query = query.filter(condition)
            count_query = count_query.filter(condition)

        rows = apply_cursor(query, cursor).limit(limit + 1).all()
        has_more = len(rows) > limit
        rows = rows[:limit]

        next_cursor = None
        if has_more and rows:
            last = rows[-1][0]
            next_cursor = encode_cursor(last.created_at, last.id)

        return PaginatedProperties(
            data=[_merge(prop, overlay) for prop, overlay in rows],
            cursor=next_cursor,
            has_more=has_more,
            total=count_query.scalar() or 0,
            state_counts=self.get_state_counts(user_id, list_id),
        )

    def get_state_counts(self, user_id: str, list_id: str) -> Dict[str, int]:
        """Per-state counts over the whole list, ignoring any filter."""
        state_col = func.coalesce(PropertyAgentState.state, PropertyState.NEW.value)
        rows = (
            self.session.query(state_col, func.count(Property.id))
            .select_from(Property)
            .outerjoin(PropertyAgentState, self._overlay_join(user_id))
            .filter(Property.list_id == list_id)
            .group_by(state_col)
            .all()
        )
        counts = {state: 0 for state in VALID_STATES}
        for state, count in rows:
            if state in counts:
                counts[state] = count
        return counts

    def get_property_agent_state(self, user_id: str, property_id: str) -> Optional[AgentStateView]:
        row = self.session.get(PropertyAgentState, (user_id, property_id))
        return _view(row) if row else None

    def _upsert(self, user_id: str, property_id: str, **changes: Any) -> PropertyAgentState:
        now = utcnow()
        row = self.session.get(PropertyAgentState, (user_id, property_id))
        if row is None:
            values = {"state": PropertyState.NEW.value, "comment": None}
            values.update(changes)
            try:
                with self.session.begin_nested():
                    row = PropertyAgentState(
                        user_id=user_id,
                        property_id=property_id,
                        updated_at=now,
                        **values,
                    )
                    self.session.add(row)
                return row
            except IntegrityError:
                # Another writer created the row first; apply on top of it
                row = self.session.get(PropertyAgentState, (user_id, property_id))
                if row is None:
                    raise

        for name, value in changes.items():
            setattr(row, name, value)
        row.updated_at = now
        self.session.flush()
        return row

    def update_property_state(self, user_id: str, property_id: str, state: str) -> AgentStateView:
        """Set the caller's state on a property. The comment is left as is."""
        value = state.value if isinstance(state, PropertyState) else str(state).lower()
        if value not in VALID_STATES:
            raise ValidationError(f"Invalid state: {state}")

        row = self._upsert(user_id, property_id, state=value)
        LOGGER.debug(
            f"Property {property_id} marked {value}",
            extra={"user_id": user_id},
        )
        return _view(row)

    def update_property_comment(self, user_id: str, property_id: str, comment: str) -> AgentStateView:
        """Set the caller's comment on a property. New rows start in state "new"."""
        comment = comment or ""
        if len(comment) > self.settings.max_comment_length:
            raise ValidationError(
                f"Comment must be at most {self.settings.max_comment_length} characters"
            )
        row = self._upsert(user_id, property_id, comment=comment)
        return _view(row)


__all__ = [
    "AgentStateService",
    "AgentStateView",
    "PaginatedProperties",
    "STATE_FILTER_ALL",
    "VALID_STATES",
]
