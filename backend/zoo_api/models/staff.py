"""
Zoo API — Staff SQLAlchemy Model
==================================

What:  Employee directory (keepers, vets, maintenance, visitor services).
How:   employee_id is stored upper-case; employee_id and email are unique.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Date, Float, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow

STAFF_ROLES = (
    "admin", "veterinarian", "animal_care", "maintenance", "visitor_services",
    "manager", "security", "education", "conservation", "research",
)


class Staff(Base):
    __tablename__ = "staff"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    employee_id: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    role: Mapped[str] = mapped_column(String(30), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[str] = mapped_column(String(100), nullable=False)
    hire_date: Mapped[date] = mapped_column(Date, nullable=False)
    salary: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    certifications: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_staff_role", "role"),
        Index("idx_staff_department", "department"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
