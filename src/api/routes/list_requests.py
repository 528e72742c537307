"""Agent routes for requesting lists in new locations."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.deps import get_app_settings, get_db, get_readonly_db, get_user_email, get_user_id
from core.config import Settings
from domain.list_requests import ListRequestService
from domain.subscriptions import SubscriptionService

router = APIRouter()


class ListRequestCreate(BaseModel):
    """Request body for a new list request."""

    location: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)


@router.post("", status_code=201)
def create_list_request(
    body: ListRequestCreate,
    user_id: str = Depends(get_user_id),
    email: Optional[str] = Depends(get_user_email),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    # The requester's address is needed later for the approval e-mail
    SubscriptionService(db).ensure_user(user_id, email)
    request = ListRequestService(db, settings).create_request(user_id, body.location, body.notes)
    db.commit()
    return request.to_dict()


@router.get("")
def get_my_list_requests(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> List[Dict[str, Any]]:
    return [request.to_dict() for request in ListRequestService(db, settings).get_requests_by_user(user_id)]


__all__ = ["router"]
