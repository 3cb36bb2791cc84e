"""
Zoo API — Health Record Schemas
=================================

What:  Request/response contracts for /api/health-records and
       POST /api/animals/{id}/medical.

A record's animal and date are fixed once written: they drive the animal's
health-check schedule, so updates may only touch the clinical details.
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

HealthRecordType = Literal[
    "checkup", "vaccination", "treatment", "surgery", "emergency", "follow_up",
]
HealthRecordStatus = Literal["scheduled", "in_progress", "completed"]

# `date` is also a field name inside the record schemas
OptionalDate = Optional[date]


class MedicationIn(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    dosage: Optional[str] = Field(default=None, max_length=100)
    frequency: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class VitalsIn(BaseModel):
    weight: Optional[float] = Field(default=None, ge=0)
    temperature: Optional[float] = None
    heart_rate: Optional[int] = Field(default=None, ge=0)
    respiratory_rate: Optional[int] = Field(default=None, ge=0)


class MedicalRecordCreate(BaseModel):
    """Health record for the animal named by the URL."""
    date: Optional[datetime] = Field(default=None, description="Defaults to now")
    veterinarian: str = Field(min_length=1, max_length=150)
    type: HealthRecordType = "checkup"
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medications: List[MedicationIn] = Field(default_factory=list)
    vitals: Optional[VitalsIn] = None
    notes: Optional[str] = None
    cost: float = Field(default=0.0, ge=0)
    follow_up_required: bool = False
    follow_up_date: OptionalDate = None
    status: HealthRecordStatus = "completed"

    model_config = {"extra": "forbid"}


class HealthRecordCreate(MedicalRecordCreate):
    animal_id: uuid.UUID


class HealthRecordUpdate(BaseModel):
    veterinarian: Optional[str] = Field(default=None, min_length=1, max_length=150)
    type: Optional[HealthRecordType] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medications: Optional[List[MedicationIn]] = None
    vitals: Optional[VitalsIn] = None
    notes: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[date] = None
    status: Optional[HealthRecordStatus] = None

    model_config = {"extra": "forbid"}


class HealthRecordResponse(BaseModel):
    id: uuid.UUID
    animal_id: uuid.UUID
    animal_name: str
    date: datetime
    veterinarian: str
    type: str
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medications: List[Dict[str, Any]]
    vitals: Dict[str, Any]
    notes: Optional[str] = None
    cost: float
    follow_up_required: bool
    follow_up_date: Optional[date] = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HealthDueItem(BaseModel):
    """An animal whose next routine health check has passed."""
    animal_id: uuid.UUID
    name: str
    species: str
    exhibit_id: uuid.UUID
    last_health_check: Optional[datetime] = None
    next_health_check: Optional[datetime] = None
