"""
Zoo API — Report SQLAlchemy Model
===================================

What:  Stored snapshot of an operational report (visitors, exhibits,
       animal health, finances) over a date range.
How:   `data` keeps the full aggregate payload as JSON, `summary` a short
       human-readable line. Exported copies live on disk under
       REPORT_STORAGE_ROOT; `file_path` is relative to that root.

Lifecycle:
    generated ──publish()──▶ published ──archive()──▶ archived
    generated ──archive()──────────────────────────▶ archived
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Date, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow

REPORT_TYPES = ("visitor", "exhibit", "health", "financial")
REPORT_STATUSES = ("generated", "published", "archived")


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False, default="custom")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    generated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="generated")
    file_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_reports_type_created", "type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Report(id={self.id}, type='{self.type}', status='{self.status}')>"
