"""Subscription lookups used to gate agent access and notification fan-out.

Subscriptions are owned by the billing collaborator; this module only reads
them, plus a small upsert used when billing events are replayed locally.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.logging_config import get_logger
from core.models import Subscription, SubscriptionStatus, User
from core.utils import utcnow

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Subscriber:
    """A notification recipient."""

    user_id: str
    email: str


class SubscriptionService:
    """Service for subscription and subscriber queries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def has_active_subscription(self, user_id: str, list_id: str) -> bool:
        """Active status and a billing period that has not ended (or is open)."""
        return (
            self.session.query(Subscription.id)
            .filter(
                Subscription.user_id == user_id,
                Subscription.list_id == list_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                or_(
                    Subscription.current_period_end.is_(None),
                    Subscription.current_period_end > utcnow(),
                ),
            )
            .first()
        ) is not None

    def get_list_subscribers_with_notifications(self, list_id: str) -> List[Subscriber]:
        """Active subscribers of a list with e-mail notifications on and an address on file."""
        rows = (
            self.session.query(User.id, User.email)
            .join(Subscription, Subscription.user_id == User.id)
            .filter(
                Subscription.list_id == list_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                User.email_notifications_on.is_(True),
                User.email.isnot(None),
                User.email != "",
            )
            .all()
        )
        return [Subscriber(user_id=user_id, email=email) for user_id, email in rows]

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def ensure_user(self, user_id: str, email: Optional[str] = None) -> User:
        """Create the user on first sight; refresh the e-mail when it changed."""
        user = self.session.get(User, user_id)
        if user is None:
            user = User(id=user_id, email=email or "", email_notifications_on=True, created_at=utcnow())
            self.session.add(user)
            self.session.flush()
            return user
        if email and user.email != email:
            user.email = email
            self.session.flush()
        return user

    def upsert_subscription(
        self,
        user_id: str,
        list_id: str,
        status: str = SubscriptionStatus.ACTIVE.value,
        current_period_end: Optional[datetime] = None,
        email: Optional[str] = None,
    ) -> Subscription:
        """Record the billing state of a (user, list) subscription."""
        status = SubscriptionStatus(status).value
        self.ensure_user(user_id, email)

        subscription = (
            self.session.query(Subscription)
            .filter(Subscription.user_id == user_id, Subscription.list_id == list_id)
            .one_or_none()
        )
        if subscription is None:
            subscription = Subscription(
                user_id=user_id,
                list_id=list_id,
                status=status,
                current_period_end=current_period_end,
                created_at=utcnow(),
            )
            self.session.add(subscription)
        else:
            subscription.status = status
            subscription.current_period_end = current_period_end
        self.session.flush()

        LOGGER.info(
            f"Subscription {user_id} -> {list_id} is {status}",
            extra={"list_id": list_id, "user_id": user_id},
        )
        return subscription


__all__ = ["SubscriptionService", "Subscriber"]
