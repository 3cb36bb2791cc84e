"""
Zoo API — Feeding Schemas
===========================

What:  Request/response contracts for /api/feedings and
       POST /api/animals/{id}/feeding.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from zoo_api.schemas.exhibit import HHMM_PATTERN


class AnimalFeedingCreate(BaseModel):
    """Feeding for the animal named by the URL."""
    food_type: str = Field(min_length=1, max_length=100)
    quantity: float = Field(gt=0)
    unit: str = Field(default="kg", max_length=20)
    feeding_date: Optional[date] = Field(default=None, description="Defaults to today")
    scheduled_time: str = Field(pattern=HHMM_PATTERN, description="HH:MM, zoo local time")
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}


class FeedingCreate(AnimalFeedingCreate):
    animal_id: uuid.UUID


class FeedingUpdate(BaseModel):
    food_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    quantity: Optional[float] = Field(default=None, gt=0)
    unit: Optional[str] = Field(default=None, max_length=20)
    feeding_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}


class FeedingComplete(BaseModel):
    completed_by: Optional[str] = Field(
        default=None, max_length=150, description="Defaults to the caller's email"
    )
    notes: Optional[str] = None


class FeedingResponse(BaseModel):
    id: uuid.UUID
    animal_id: uuid.UUID
    animal_name: str
    exhibit_id: uuid.UUID
    food_type: str
    quantity: float
    unit: str
    feeding_date: date
    scheduled_time: str
    completed: bool
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
