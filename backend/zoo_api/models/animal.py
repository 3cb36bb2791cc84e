"""
Zoo API — Animal SQLAlchemy Model
===================================

What:  ORM model representing the `animals` table.
Who:   Used by AnimalService, HealthService, FeedingService and analytics.

Table Design:
    - exhibit_id: every animal lives in exactly one exhibit. The pair
      (exhibit_id, exhibits.animal_count) is kept consistent by ExhibitService.
    - microchip_id: optional but unique when present
    - last_health_check / next_health_check: derived from the animal's
      health records (next = last + health check interval). Indexed because
      the "due for check" list filters on it.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow

ANIMAL_GENDERS = ("male", "female", "unknown")
ANIMAL_ORIGINS = ("wild", "captive_bred", "rescue", "transfer", "donation")
ANIMAL_STATUSES = ("active", "quarantine", "medical", "breeding", "retired", "deceased")


class Animal(Base):
    """
    An individual animal in the collection.

    Lifecycle:
        1. Created into an exhibit with a free slot (capacity guard)
        2. May move between exhibits (guard runs against the target)
        3. Health records advance last/next health check
        4. Deleted outright when it has no history; otherwise soft-retired
           (status = 'retired') so health and feeding records stay attached
    """

    __tablename__ = "animals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    species: Mapped[str] = mapped_column(String(100), nullable=False)
    scientific_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    gender: Mapped[str] = mapped_column(String(10), nullable=False, default="unknown")
    birth_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    arrival_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    origin: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    exhibit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("exhibits.id"), nullable=False
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    temperament: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # ── Diet ──────────────────────────────────────────────────────────────
    diet_primary: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    feeding_frequency: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    dietary_restrictions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Conservation ──────────────────────────────────────────────────────
    is_endangered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    conservation_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    microchip_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Health Schedule (derived) ─────────────────────────────────────────
    last_health_check: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    next_health_check: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_animals_exhibit_id", "exhibit_id"),
        Index("idx_animals_species", "species"),
        Index("idx_animals_next_health_check", "next_health_check"),
    )

    def __repr__(self) -> str:
        return f"<Animal(id={self.id}, name='{self.name}', species='{self.species}')>"
