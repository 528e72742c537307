"""SQLAlchemy ORM models for InmoCapt."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base
from core.utils import generate_id, isoformat, utcnow


# =============================================================================
# Enums
# =============================================================================


class PropertyState(str, enum.Enum):
    """Per-agent working state of a property."""
    NEW = "new"
    CONTACTED = "contacted"
    CAPTURED = "captured"
    REJECTED = "rejected"


class ListRequestStatus(str, enum.Enum):
    """Lifecycle of an agent's request for a new list."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubscriptionStatus(str, enum.Enum):
    """Billing status mirrored from the payment provider."""
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    UNPAID = "unpaid"


class PayloadFormat(str, enum.Enum):
    """Upload payload shapes understood by the ingestion pipeline."""
    SIMPLIFIED = "simplified"
    IDEALISTA = "idealista"
    FOTOCASA = "fotocasa"


# =============================================================================
# Lists & Properties
# =============================================================================


class PropertyList(Base):
    """A curated, per-region list of owner-sold properties."""

    __tablename__ = "lists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)

    # Subscription price in minor units (cents)
    price_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)

    last_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    properties: Mapped[List["Property"]] = relationship(
        "Property",
        back_populates="property_list",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    updates: Mapped[List["ListUpdate"]] = relationship(
        "ListUpdate",
        back_populates="property_list",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "price_cents": self.price_cents,
            "currency": self.currency,
            "last_updated_at": isoformat(self.last_updated_at),
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<PropertyList(id={self.id}, name={self.name!r}, location={self.location!r})>"


class Property(Base):
    """
    A single owner-sold listing belonging to one list.

    ``source_url`` is the natural deduplication key within a list.
    URL-less properties are never deduplicated.
    """

    __tablename__ = "properties"
    __table_args__ = (
        UniqueConstraint("list_id", "source_url", name="uq_properties_list_source_url"),
        Index("ix_properties_list_created", "list_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    list_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True
    )

    price: Mapped[int] = mapped_column(Integer, nullable=False)
    m2: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    raw_payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    property_list: Mapped["PropertyList"] = relationship("PropertyList", back_populates="properties")
    agent_states: Mapped[List["PropertyAgentState"]] = relationship(
        "PropertyAgentState",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, list_id={self.list_id}, price={self.price})>"


class PropertyAgentState(Base):
    """
    Private overlay of one agent's state and comment on one property.

    Rows are created on the first mutation; a missing row reads as
    state ``new`` with an empty comment.
    """

    __tablename__ = "property_agent_state"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    property_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("properties.id", ondelete="CASCADE"), primary_key=True
    )
    state: Mapped[str] = mapped_column(String(20), default=PropertyState.NEW.value, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    property: Mapped["Property"] = relationship("Property", back_populates="agent_states")

    def __repr__(self) -> str:
        return f"<PropertyAgentState(user_id={self.user_id}, property_id={self.property_id}, state={self.state})>"


class ListUpdate(Base):
    """Audit row recorded for every upload into a list."""

    __tablename__ = "list_updates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    list_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    added_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    property_list: Mapped["PropertyList"] = relationship("PropertyList", back_populates="updates")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "list_id": self.list_id,
            "uploaded_by": self.uploaded_by,
            "added_count": self.added_count,
            "updated_count": self.updated_count,
            "created_at": isoformat(self.created_at),
        }


# =============================================================================
# Requests, Users & Subscriptions
# =============================================================================


class ListRequest(Base):
    """An agent's request for a list covering a new location."""

    __tablename__ = "list_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ListRequestStatus.PENDING.value, nullable=False, index=True
    )
    created_list_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lists.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "location": self.location,
            "notes": self.notes,
            "status": self.status,
            "created_list_id": self.created_list_id,
            "created_at": isoformat(self.created_at),
        }


class User(Base):
    """An agent account, keyed by the identity provider's subject."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    email_notifications_on: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Subscription(Base):
    """An agent's paid access to one list."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "list_id", name="uq_subscriptions_user_list"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    list_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=SubscriptionStatus.ACTIVE.value, nullable=False)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    user: Mapped["User"] = relationship("User")


__all__ = [
    "Base",
    "PropertyState",
    "ListRequestStatus",
    "SubscriptionStatus",
    "PayloadFormat",
    "PropertyList",
    "Property",
    "PropertyAgentState",
    "ListUpdate",
    "ListRequest",
    "User",
    "Subscription",
]
