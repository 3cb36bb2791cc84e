"""
Zoo API — Staff Schemas
=========================
"""

import uuid
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

StaffRole = Literal[
    "admin", "veterinarian", "animal_care", "maintenance", "visitor_services",
    "manager", "security", "education", "conservation", "research",
]


class StaffCreate(BaseModel):
    employee_id: str = Field(min_length=1, max_length=30)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=30)
    role: StaffRole
    department: str = Field(min_length=1, max_length=100)
    position: str = Field(min_length=1, max_length=100)
    hire_date: date
    salary: Optional[float] = Field(default=None, ge=0)
    certifications: List[str] = Field(default_factory=list)
    is_active: bool = True

    model_config = {"extra": "forbid"}

    @field_validator("employee_id")
    @classmethod
    def upper_employee_id(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class StaffUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    role: Optional[StaffRole] = None
    department: Optional[str] = Field(default=None, min_length=1, max_length=100)
    position: Optional[str] = Field(default=None, min_length=1, max_length=100)
    salary: Optional[float] = Field(default=None, ge=0)
    certifications: Optional[List[str]] = None
    is_active: Optional[bool] = None

    model_config = {"extra": "forbid"}

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class StaffResponse(BaseModel):
    id: uuid.UUID
    employee_id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    role: str
    department: str
    position: str
    hire_date: date
    salary: Optional[float] = None
    certifications: List[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
