"""
Zoo API — Report and Analytics Schemas
========================================
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, model_validator

ReportType = Literal["visitor", "exhibit", "health", "financial"]
ReportPeriod = Literal["daily", "weekly", "monthly", "quarterly", "yearly", "custom"]


class ReportGenerateRequest(BaseModel):
    start_date: date
    end_date: date
    period: ReportPeriod = "custom"
    title: Optional[str] = Field(default=None, max_length=200)
    export: bool = Field(default=False, description="Also write the report to a JSON file")

    @model_validator(mode="after")
    def check_range(self) -> "ReportGenerateRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ReportListItem(BaseModel):
    id: uuid.UUID
    title: str
    type: str
    period: str
    start_date: date
    end_date: date
    summary: Optional[str] = None
    status: str
    file_path: Optional[str] = None
    generated_by: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReportResponse(ReportListItem):
    data: Dict[str, Any]


class DashboardOverview(BaseModel):
    """Headline numbers for the operations dashboard (cached)."""
    total_animals: int
    endangered_animals: int
    animals_due_for_health_check: int
    total_exhibits: int
    open_exhibits: int
    animal_occupancy_rate: int
    total_visitors: int
    vip_visitors: int
    tickets_today: int
    visitors_today: int
    revenue_today: float
    pending_feedings_today: int
    generated_at: datetime
