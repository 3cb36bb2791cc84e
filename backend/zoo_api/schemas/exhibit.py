"""
Zoo API — Exhibit Schemas
===========================

What:  Request/response contracts for /api/exhibits.

Derived fields (animal_count, next_inspection) appear only on responses;
create/update payloads forbid unknown keys, so a client that sends them
gets a 400 instead of having them silently ignored.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field

from zoo_api.services.rules import occupancy_percentage

ExhibitType = Literal[
    "indoor", "outdoor", "aquatic", "aviary", "nocturnal", "interactive", "educational",
]
ExhibitStatus = Literal["open", "closed", "maintenance", "renovation", "emergency"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

HHMM_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"


class ExhibitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    type: ExhibitType
    theme: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=150)
    animal_capacity: int = Field(ge=0, le=10_000)
    visitor_capacity: int = Field(default=0, ge=0, le=100_000)
    status: ExhibitStatus = "open"
    opening_time: str = Field(default="09:00", pattern=HHMM_PATTERN)
    closing_time: str = Field(default="17:00", pattern=HHMM_PATTERN)
    operating_days: List[Weekday] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    last_inspection: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class ExhibitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    type: Optional[ExhibitType] = None
    theme: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=150)
    animal_capacity: Optional[int] = Field(default=None, ge=0, le=10_000)
    visitor_capacity: Optional[int] = Field(default=None, ge=0, le=100_000)
    visitor_count: Optional[int] = Field(default=None, ge=0)
    status: Optional[ExhibitStatus] = None
    is_active: Optional[bool] = None
    opening_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    closing_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    operating_days: Optional[List[Weekday]] = None
    features: Optional[List[str]] = None
    last_inspection: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class InspectionCreate(BaseModel):
    """Records an inspection; defaults to now."""
    inspected_at: Optional[datetime] = None


class AnimalSummary(BaseModel):
    id: uuid.UUID
    name: str
    species: str
    status: str

    model_config = {"from_attributes": True}


class ExhibitResponse(BaseModel):
    id: uuid.UUID
    name: str
    type: str
    theme: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    animal_capacity: int
    visitor_capacity: int
    animal_count: int
    visitor_count: int
    status: str
    is_active: bool
    opening_time: str
    closing_time: str
    operating_days: List[str]
    features: List[str]
    last_inspection: Optional[datetime] = None
    next_inspection: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def animal_occupancy_rate(self) -> int:
        return occupancy_percentage(self.animal_count, self.animal_capacity)

    @computed_field
    @property
    def visitor_occupancy_rate(self) -> int:
        return occupancy_percentage(self.visitor_count, self.visitor_capacity)


class ExhibitDetailResponse(ExhibitResponse):
    animals: List[AnimalSummary] = Field(default_factory=list)


class ExhibitTypeStats(BaseModel):
    type: str
    count: int
    animal_capacity: int
    animal_count: int
    occupancy_rate: int


class ExhibitStats(BaseModel):
    total: int
    active: int
    open: int
    total_animal_capacity: int
    total_animals: int
    occupancy_rate: int
    by_type: List[ExhibitTypeStats]
