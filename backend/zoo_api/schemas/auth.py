"""
Zoo API — Authentication Schemas
==================================

What:  Contracts for /api/auth. Passwords are accepted on input only and
       never appear in any response model.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, field_validator
from pydantic import ValidationError as SchemaValidationError

UserRole = Literal[
    "admin", "veterinarian", "animal_care", "maintenance", "visitor_services",
    "manager", "staff", "visitor",
]

_email_adapter = TypeAdapter(EmailStr)


def is_login_email(value: str) -> bool:
    """True if LoginRequest would accept `value` as its email."""
    try:
        _email_adapter.validate_python(value)
    except SchemaValidationError:
        return False
    return True


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserCreate(RegisterRequest):
    """Admin-created account with an explicit role."""
    role: UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Seconds until the token expires")
    user: UserResponse
