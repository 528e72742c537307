"""Admin routes: list management, manual uploads and list request review."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Header, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from api.deps import get_app_settings, get_db, get_readonly_db, get_session_factory, require_api_key
from core.config import Settings
from core.exceptions import ListNotFoundError, PropertyNotFoundError
from core.logging_config import get_logger
from core.models import SubscriptionStatus
from domain.ingestion import IngestionService
from domain.list_requests import ListRequestService
from domain.lists import ListService
from domain.properties import PropertyService
from domain.subscriptions import SubscriptionService
from services.notification import notify_after_ingestion, notify_list_request_outcome

router = APIRouter(dependencies=[Depends(require_api_key)])
LOGGER = get_logger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================


class ListCreateRequest(BaseModel):
    """Request body for creating a list."""

    name: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=500)
    price_cents: int = Field(0, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class ListUpdateRequest(BaseModel):
    """Request body for a partial list update."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=500)
    price_cents: Optional[int] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class ApproveListRequest(BaseModel):
    """Link an existing list, or create one (named after the location by default)."""

    list_id: Optional[str] = None
    list_name: Optional[str] = Field(None, max_length=200)
    price_cents: int = Field(0, ge=0)


class SubscriptionUpsertRequest(BaseModel):
    """Billing state replayed from the payment provider."""

    user_id: str = Field(..., min_length=1)
    list_id: str = Field(..., min_length=1)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_end: Optional[datetime] = None
    email: Optional[str] = None


# =============================================================================
# List Routes
# =============================================================================


@router.get("/lists")
def get_lists(
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> List[Dict[str, Any]]:
    """All lists with subscriber and property counts."""
    return [item.to_dict() for item in ListService(db, settings).get_all_lists()]


@router.post("/lists", status_code=201)
def create_list(
    body: ListCreateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    property_list = ListService(db, settings).create_list(
        name=body.name,
        location=body.location,
        price_cents=body.price_cents,
        currency=body.currency,
    )
    db.commit()
    return property_list.to_dict()


@router.get("/lists/{list_id}")
def get_list(
    list_id: str,
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    result = ListService(db, settings).get_list_with_stats(list_id)
    if result is None:
        raise ListNotFoundError(list_id)
    return result.to_dict()


@router.patch("/lists/{list_id}")
def update_list(
    list_id: str,
    body: ListUpdateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    property_list = ListService(db, settings).update_list(list_id, **body.model_dump(exclude_unset=True))
    db.commit()
    return property_list.to_dict()


@router.delete("/lists/{list_id}")
def delete_list(
    list_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    if not ListService(db, settings).delete_list(list_id):
        raise ListNotFoundError(list_id)
    db.commit()
    return {"deleted": True, "list_id": list_id}


# =============================================================================
# Property Routes
# =============================================================================


@router.post("/lists/{list_id}/upload")
def upload_to_list(
    list_id: str,
    background_tasks: BackgroundTasks,
    payload: Any = Body(...),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Upload properties into an existing list in any supported format."""
    result = IngestionService(db, settings).ingest_into_list(list_id, payload, actor_id=x_user_id or "admin")
    db.commit()

    if result.should_notify:
        background_tasks.add_task(notify_after_ingestion, session_factory, result, settings=settings)
    return result.to_dict()


@router.get("/lists/{list_id}/properties")
def get_list_properties(
    list_id: str,
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    service = PropertyService(db, settings)
    service.lists.require_list(list_id)
    page = service.get_properties_by_list(list_id, cursor=cursor, limit=limit)
    data = page.to_dict()
    data["total"] = service.count_properties(list_id)
    return data


@router.get("/lists/{list_id}/updates")
def get_list_updates(
    list_id: str,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> List[Dict[str, Any]]:
    service = PropertyService(db, settings)
    service.lists.require_list(list_id)
    return [update.to_dict() for update in service.get_list_updates(list_id, limit=limit)]


@router.delete("/lists/{list_id}/properties")
def delete_all_properties(
    list_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    service = PropertyService(db, settings)
    service.lists.require_list(list_id)
    deleted = service.delete_all_properties_from_list(list_id)
    db.commit()
    return {"deleted": deleted, "list_id": list_id}


@router.delete("/lists/{list_id}/properties/{property_id}")
def delete_property(
    list_id: str,
    property_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    if not PropertyService(db, settings).delete_property(list_id, property_id):
        raise PropertyNotFoundError(property_id)
    db.commit()
    return {"deleted": True, "property_id": property_id}


# =============================================================================
# List Request Routes
# =============================================================================


@router.get("/list-requests")
def get_list_requests(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> List[Dict[str, Any]]:
    return [request.to_dict() for request in ListRequestService(db, settings).get_all_requests(status)]


@router.post("/list-requests/{request_id}/approve")
def approve_list_request(
    request_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[ApproveListRequest] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    body = body or ApproveListRequest()
    request, property_list = ListRequestService(db, settings).approve_request(
        request_id,
        list_id=body.list_id,
        list_name=body.list_name,
        price_cents=body.price_cents,
    )
    requester = SubscriptionService(db).get_user(request.user_id)
    db.commit()

    background_tasks.add_task(
        notify_list_request_outcome,
        requester.email if requester else None,
        request.location,
        True,
        list_name=property_list.name,
        settings=settings,
    )
    return {"request": request.to_dict(), "list": property_list.to_dict()}


@router.post("/list-requests/{request_id}/reject")
def reject_list_request(
    request_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    request = ListRequestService(db, settings).reject_request(request_id)
    requester = SubscriptionService(db).get_user(request.user_id)
    db.commit()

    background_tasks.add_task(
        notify_list_request_outcome,
        requester.email if requester else None,
        request.location,
        False,
        settings=settings,
    )
    return {"request": request.to_dict()}


# =============================================================================
# Subscription Routes
# =============================================================================


@router.put("/subscriptions")
def upsert_subscription(
    body: SubscriptionUpsertRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Record a subscription's billing state for a (user, list) pair."""
    ListService(db, settings).require_list(body.list_id)
    subscription = SubscriptionService(db).upsert_subscription(
        body.user_id,
        body.list_id,
        status=body.status.value,
        current_period_end=body.current_period_end,
        email=body.email,
    )
    db.commit()
    return {
        "id": subscription.id,
        "user_id": subscription.user_id,
        "list_id": subscription.list_id,
        "status": subscription.status,
    }


__all__ = ["router"]
