"""
Zoo API — HealthRecord SQLAlchemy Model
=========================================

What:  Veterinary events (checkups, vaccinations, treatments) for one animal.
Who:   Written by HealthService; appending one advances the animal's
       last/next health check.
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, Date, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow

HEALTH_RECORD_TYPES = (
    "checkup", "vaccination", "treatment", "surgery", "emergency", "follow_up",
)
HEALTH_RECORD_STATUSES = ("scheduled", "in_progress", "completed")

# `date` is also a column name on HealthRecord
OptionalDate = Optional[date]


class HealthRecord(Base):
    __tablename__ = "health_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    animal_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("animals.id"), nullable=False)
    # Denormalized so record lists read without a join
    animal_name: Mapped[str] = mapped_column(String(100), nullable=False)

    date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    veterinarian: Mapped[str] = mapped_column(String(150), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="checkup")
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    treatment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    medications: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    vitals: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    follow_up_date: Mapped[OptionalDate] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_health_records_animal_date", "animal_id", "date"),
        Index("idx_health_records_veterinarian", "veterinarian"),
    )

    def __repr__(self) -> str:
        return f"<HealthRecord(id={self.id}, animal='{self.animal_name}', type='{self.type}')>"
