"""Agent routes: browse a subscribed list and track private state per property."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.deps import get_app_settings, get_db, get_readonly_db, get_user_id
from core.config import Settings
from core.exceptions import PropertyNotFoundError
from domain.agent_state import STATE_FILTER_ALL, AgentStateService
from domain.lists import ListService
from domain.properties import PropertyService
from domain.subscriptions import SubscriptionService

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================


class StateUpdateRequest(BaseModel):
    state: str = Field(..., min_length=1)


class CommentUpdateRequest(BaseModel):
    comment: str = ""


def _require_access(db: Session, settings: Settings, user_id: str, list_id: str) -> None:
    """404 for an unknown list, 403 without an active subscription."""
    ListService(db, settings).require_list(list_id)
    if not SubscriptionService(db).has_active_subscription(user_id, list_id):
        raise HTTPException(status_code=403, detail="No active subscription for this list")


def _require_property(db: Session, settings: Settings, list_id: str, property_id: str) -> None:
    if not PropertyService(db, settings).property_exists_in_list(property_id, list_id):
        raise PropertyNotFoundError(property_id)


@router.get("/{list_id}/properties")
def get_properties(
    list_id: str,
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    state: str = Query(STATE_FILTER_ALL),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """A page of the list's properties merged with the caller's state and comment."""
    _require_access(db, settings, user_id, list_id)
    page = AgentStateService(db, settings).get_properties_with_agent_state(
        user_id, list_id, cursor=cursor, limit=limit, state_filter=state
    )
    return page.to_dict()


@router.patch("/{list_id}/properties/{property_id}/state")
def update_state(
    list_id: str,
    property_id: str,
    body: StateUpdateRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    _require_access(db, settings, user_id, list_id)
    _require_property(db, settings, list_id, property_id)
    view = AgentStateService(db, settings).update_property_state(user_id, property_id, body.state)
    db.commit()
    return view.to_dict()


@router.patch("/{list_id}/properties/{property_id}/comment")
def update_comment(
    list_id: str,
    property_id: str,
    body: CommentUpdateRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    _require_access(db, settings, user_id, list_id)
    _require_property(db, settings, list_id, property_id)
    view = AgentStateService(db, settings).update_property_comment(user_id, property_id, body.comment)
    db.commit()
    return view.to_dict()


__all__ = ["router"]
