"""
Zoo API — Animal Schemas
==========================

What:  Request/response contracts for /api/animals.

exhibit_id on create is mandatory: an animal always lives somewhere, and
the capacity guard runs before it is stored. On update, a different
exhibit_id is a move and re-runs the guard against the target exhibit.
Health-check timestamps are derived and therefore response-only.
"""

import uuid
from datetime import date, datetime
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field

AnimalGender = Literal["male", "female", "unknown"]
AnimalOrigin = Literal["wild", "captive_bred", "rescue", "transfer", "donation"]
AnimalStatus = Literal["active", "quarantine", "medical", "breeding", "retired", "deceased"]


def _not_in_future(value: date) -> date:
    if value > date.today():
        raise ValueError("date cannot be in the future")
    return value


PastDate = Annotated[date, AfterValidator(_not_in_future)]


class AnimalCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    species: str = Field(min_length=1, max_length=100)
    scientific_name: Optional[str] = Field(default=None, max_length=150)
    gender: AnimalGender = "unknown"
    birth_date: Optional[PastDate] = None
    arrival_date: Optional[date] = None
    origin: Optional[AnimalOrigin] = None
    exhibit_id: uuid.UUID
    status: AnimalStatus = "active"
    temperament: Optional[str] = Field(default=None, max_length=50)
    diet_primary: Optional[str] = Field(default=None, max_length=100)
    feeding_frequency: Optional[str] = Field(default=None, max_length=50)
    dietary_restrictions: List[str] = Field(default_factory=list)
    is_endangered: bool = False
    conservation_status: Optional[str] = Field(default=None, max_length=50)
    microchip_id: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}


class AnimalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    species: Optional[str] = Field(default=None, min_length=1, max_length=100)
    scientific_name: Optional[str] = Field(default=None, max_length=150)
    gender: Optional[AnimalGender] = None
    birth_date: Optional[PastDate] = None
    arrival_date: Optional[date] = None
    origin: Optional[AnimalOrigin] = None
    exhibit_id: Optional[uuid.UUID] = None
    status: Optional[AnimalStatus] = None
    temperament: Optional[str] = Field(default=None, max_length=50)
    diet_primary: Optional[str] = Field(default=None, max_length=100)
    feeding_frequency: Optional[str] = Field(default=None, max_length=50)
    dietary_restrictions: Optional[List[str]] = None
    is_endangered: Optional[bool] = None
    conservation_status: Optional[str] = Field(default=None, max_length=50)
    microchip_id: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}


class AnimalResponse(BaseModel):
    id: uuid.UUID
    name: str
    species: str
    scientific_name: Optional[str] = None
    gender: str
    birth_date: Optional[date] = None
    arrival_date: Optional[date] = None
    origin: Optional[str] = None
    exhibit_id: uuid.UUID
    status: str
    temperament: Optional[str] = None
    diet_primary: Optional[str] = None
    feeding_frequency: Optional[str] = None
    dietary_restrictions: List[str]
    is_endangered: bool
    conservation_status: Optional[str] = None
    microchip_id: Optional[str] = None
    notes: Optional[str] = None
    last_health_check: Optional[datetime] = None
    next_health_check: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AnimalStats(BaseModel):
    total: int
    endangered: int
    due_for_health_check: int
    by_status: Dict[str, int]
    by_species: Dict[str, int]
