"""
Zoo API — Exhibit SQLAlchemy Model
====================================

What:  ORM model representing the `exhibits` table.
Who:   Used by ExhibitService (capacity guard, occupancy sync) and the
       animal, feeding and analytics services.

Table Design:
    - animal_capacity / visitor_capacity: hard limits set by administrators
    - animal_count: cached size of the exhibit's membership list (animals whose
      exhibit_id points here). Written only by ExhibitService inside the same
      transaction that changes membership; never accepted from API input.
    - visitor_count: current visitor occupancy, maintained by staff updates
    - last_inspection / next_inspection: next = last + inspection interval,
      recomputed whenever last_inspection changes

    CHECK constraints keep animal_count inside [0, animal_capacity] even if a
    writer bypassed the service.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow

EXHIBIT_TYPES = (
    "indoor", "outdoor", "aquatic", "aviary", "nocturnal", "interactive", "educational",
)
EXHIBIT_STATUSES = ("open", "closed", "maintenance", "renovation", "emergency")


class Exhibit(Base):
    """
    A physical enclosure or attraction that houses animals and hosts visitors.

    Lifecycle:
        1. Created by an administrator with capacities (animal_count = 0)
        2. Animals are assigned through the capacity guard
        3. Deactivated (is_active = False, status = 'closed') once empty;
           never hard-deleted because feedings reference it
    """

    __tablename__ = "exhibits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="indoor, outdoor, aquatic, aviary, nocturnal, interactive, educational",
    )
    theme: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    # ── Capacity & Occupancy ──────────────────────────────────────────────
    animal_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    visitor_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    animal_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Cached number of animals referencing this exhibit",
    )
    visitor_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Operations ────────────────────────────────────────────────────────
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="open")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    opening_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    closing_time: Mapped[str] = mapped_column(String(5), nullable=False, default="17:00")
    operating_days: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    features: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    last_inspection: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    next_inspection: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("animal_count >= 0", name="ck_exhibits_animal_count_non_negative"),
        CheckConstraint(
            "animal_count <= animal_capacity",
            name="ck_exhibits_animal_count_within_capacity",
        ),
        CheckConstraint("animal_capacity >= 0", name="ck_exhibits_animal_capacity_non_negative"),
        Index("idx_exhibits_type", "type"),
        Index("idx_exhibits_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Exhibit(id={self.id}, name='{self.name}', "
            f"animals={self.animal_count}/{self.animal_capacity})>"
        )
