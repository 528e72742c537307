"""List request domain service - agents asking for lists in new locations."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from core.config import Settings, get_settings
from core.exceptions import InvalidStateTransitionError, ListRequestNotFoundError, ValidationError
from core.logging_config import get_logger
from core.models import ListRequest, ListRequestStatus, PropertyList
from core.utils import utcnow

from .lists import ListService

LOGGER = get_logger(__name__)

MAX_LOCATION_LENGTH = 500
MAX_NOTES_LENGTH = 2000


class ListRequestService:
    """Service for creating and processing list requests."""

    def __init__(self, session: Session, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    def create_request(self, user_id: str, location: str, notes: Optional[str] = None) -> ListRequest:
        """
        Record a pending request.

        Raises:
            ValidationError: Empty or over-long location, over-long notes.
        """
        location = (location or "").strip()
        if not location:
            raise ValidationError("location is required")
        if len(location) > MAX_LOCATION_LENGTH:
            raise ValidationError(f"location must be at most {MAX_LOCATION_LENGTH} characters")

        notes = (notes or "").strip() or None
        if notes and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")

        request = ListRequest(
            user_id=user_id,
            location=location,
            notes=notes,
            status=ListRequestStatus.PENDING.value,
            created_at=utcnow(),
        )
        self.session.add(request)
        self.session.flush()
        LOGGER.info(f"List request for '{location}' created", extra={"user_id": user_id})
        return request

    def get_requests_by_user(self, user_id: str) -> List[ListRequest]:
        return (
            self.session.query(ListRequest)
            .filter(ListRequest.user_id == user_id)
            .order_by(ListRequest.created_at.desc())
            .all()
        )

    def get_all_requests(self, status: Optional[str] = None) -> List[ListRequest]:
        query = self.session.query(ListRequest)
        if status:
            try:
                status = ListRequestStatus(status).value
            except ValueError as exc:
                raise ValidationError(f"Invalid status: {status}") from exc
            query = query.filter(ListRequest.status == status)
        return query.order_by(ListRequest.created_at.desc()).all()

    def get_request(self, request_id: str) -> Optional[ListRequest]:
        return self.session.get(ListRequest, request_id)

    def _require_pending(self, request_id: str) -> ListRequest:
        request = self.get_request(request_id)
        if request is None:
            raise ListRequestNotFoundError(request_id)
        if request.status != ListRequestStatus.PENDING.value:
            raise InvalidStateTransitionError(
                f"List request {request_id} is already {request.status}"
            )
        return request

    def approve_request(
        self,
        request_id: str,
        list_id: Optional[str] = None,
        list_name: Optional[str] = None,
        price_cents: int = 0,
    ) -> tuple[ListRequest, PropertyList]:
        """
        Approve a pending request.

        Links an existing list when ``list_id`` is given, otherwise creates
        one named ``list_name`` (default: the requested location).

        Returns:
            Tuple of (request, list).
        """
        request = self._require_pending(request_id)
        lists = ListService(self.session, self.settings)

        if list_id:
            property_list = lists.require_list(list_id)
        else:
            property_list = lists.create_list(
                name=list_name or request.location,
                location=request.location,
                price_cents=price_cents,
            )

        request.status = ListRequestStatus.APPROVED.value
        request.created_list_id = property_list.id
        self.session.flush()

        LOGGER.info(
            f"List request {request_id} approved",
            extra={"list_id": property_list.id, "user_id": request.user_id},
        )
        return request, property_list

    def reject_request(self, request_id: str) -> ListRequest:
        request = self._require_pending(request_id)
        request.status = ListRequestStatus.REJECTED.value
        self.session.flush()
        LOGGER.info(f"List request {request_id} rejected", extra={"user_id": request.user_id})
        return request


__all__ = ["ListRequestService"]
