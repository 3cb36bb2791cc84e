"""
Zoo API — User SQLAlchemy Model
=================================

What:  Login accounts for the API (staff and visitors).
How:   Passwords are stored as bcrypt hashes only. Repeated failed logins
       set lock_until; AuthService refuses logins until it has passed.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, as_utc, utcnow

USER_ROLES = (
    "admin", "veterinarian", "animal_care", "maintenance", "visitor_services",
    "manager", "staff", "visitor",
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="visitor")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        if self.lock_until is None:
            return False
        return as_utc(self.lock_until) > (now or utcnow())

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
