"""
Zoo API — Visitor and Visit SQLAlchemy Models
===============================================

What:  `visitors` (guest profile + derived aggregates) and `visits`
       (append-only visit history, one row per recorded visit).

Derived columns on Visitor:
    total_visits, total_spent, average_visit_duration, last_visit_date and
    vip_level are a pure function of the visit history (see
    services/rules.py). VisitorService recomputes them on every save path;
    the API never accepts them as input.

Visit ordering:
    History order is append order, stored as a per-visitor `position`
    (0, 1, 2, ...). "Last visit" is the highest position, whatever its date.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, as_utc, utcnow

MEMBERSHIP_TYPES = ("basic", "premium", "family", "corporate", "lifetime")
VISITOR_SOURCES = ("walk_in", "online", "referral", "social_media", "advertisement", "other")


class Visitor(Base):
    """
    A zoo guest.

    Lifecycle:
        1. Created at registration or first purchase (aggregates all zero)
        2. Each recorded visit appends a Visit row and re-derives aggregates
        3. Loyalty points only ever increase through the loyalty endpoint
        4. Deleted only when no tickets or visits reference the visitor;
           otherwise deactivated (is_active = False)
    """

    __tablename__ = "visitors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, comment="Stored lower-case"
    )
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="walk_in")
    newsletter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Membership ────────────────────────────────────────────────────────
    membership_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    membership_start: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    membership_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    membership_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    membership_discount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    loyalty_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Derived aggregates ────────────────────────────────────────────────
    total_visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    average_visit_duration: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Minutes"
    )
    last_visit_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    vip_level: Mapped[str] = mapped_column(String(10), nullable=False, default="bronze")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_visitors_vip_level", "vip_level"),
        Index("idx_visitors_last_visit_date", "last_visit_date"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_member_at(self, now: datetime) -> bool:
        """Membership counts only while active and not past its end date."""
        if not self.membership_active or self.membership_end is None:
            return False
        return now <= as_utc(self.membership_end)

    @property
    def is_member(self) -> bool:
        return self.is_member_at(utcnow())

    def __repr__(self) -> str:
        return f"<Visitor(id={self.id}, email='{self.email}', vip='{self.vip_level}')>"


class Visit(Base):
    """One entry of a visitor's visit history. Never updated after insert."""

    __tablename__ = "visits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    visitor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("visitors.id", ondelete="CASCADE"), nullable=False
    )

    visit_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    entry_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    exit_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Minutes")
    group_size: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    spending_food: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    spending_souvenirs: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    spending_activities: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    spending_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    feedback_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    exhibits_visited: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    position: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Append order within the visitor history"
    )
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("visitor_id", "position", name="uq_visits_visitor_position"),
    )

    def __repr__(self) -> str:
        return f"<Visit(id={self.id}, visitor={self.visitor_id}, date='{self.visit_date}')>"
