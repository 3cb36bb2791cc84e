"""
Zoo API — Feeding SQLAlchemy Model
====================================

What:  One scheduled feeding of one animal on one day.
How:   scheduled_time is a wall-clock "HH:MM" in the zoo timezone; the
       exhibit is copied from the animal when the feeding is scheduled so
       keepers can list a whole exhibit's round.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow


class Feeding(Base):
    __tablename__ = "feedings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    animal_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("animals.id"), nullable=False)
    animal_name: Mapped[str] = mapped_column(String(100), nullable=False)
    exhibit_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("exhibits.id"), nullable=False)

    food_type: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")
    feeding_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")

    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_by: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_feedings_date_time", "feeding_date", "scheduled_time"),
        Index("idx_feedings_animal_id", "animal_id"),
        Index("idx_feedings_exhibit_id", "exhibit_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Feeding(id={self.id}, animal='{self.animal_name}', "
            f"{self.feeding_date} {self.scheduled_time}, completed={self.completed})>"
        )
