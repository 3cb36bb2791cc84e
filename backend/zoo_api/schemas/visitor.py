"""
Zoo API — Visitor Schemas
===========================

What:  Request/response contracts for /api/visitors.

Aggregates (total_visits, total_spent, average_visit_duration,
last_visit_date, vip_level) are derived from the visit history and appear
on responses only. A visit's `visit_date` is stamped by the server when the
visit is recorded.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

MembershipType = Literal["basic", "premium", "family", "corporate", "lifetime"]
VisitorSource = Literal["walk_in", "online", "referral", "social_media", "advertisement", "other"]


class MembershipIn(BaseModel):
    type: MembershipType
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    discount_percentage: float = Field(default=0.0, ge=0, le=100)

    @model_validator(mode="after")
    def check_range(self) -> "MembershipIn":
        if self.end_date < self.start_date:
            raise ValueError("membership end_date must not be before start_date")
        return self


class VisitorCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=30)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    source: VisitorSource = "walk_in"
    newsletter: bool = False
    membership: Optional[MembershipIn] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class VisitorUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    source: Optional[VisitorSource] = None
    newsletter: Optional[bool] = None
    membership: Optional[MembershipIn] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class SpendingIn(BaseModel):
    """Spending breakdown; `total` defaults to the sum of the parts."""
    food: float = Field(default=0.0, ge=0)
    souvenirs: float = Field(default=0.0, ge=0)
    activities: float = Field(default=0.0, ge=0)
    total: Optional[float] = Field(default=None, ge=0)


class FeedbackIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    comments: Optional[str] = Field(default=None, max_length=2000)


class VisitCreate(BaseModel):
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0, le=24 * 60, description="Minutes")
    group_size: int = Field(default=1, ge=1, le=500)
    spending: SpendingIn = Field(default_factory=SpendingIn)
    feedback: Optional[FeedbackIn] = None
    exhibits_visited: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def check_times(self) -> "VisitCreate":
        if self.entry_time and self.exit_time and self.exit_time < self.entry_time:
            raise ValueError("exit_time must not be before entry_time")
        return self


class LoyaltyPointsIn(BaseModel):
    points: int = Field(gt=0, le=1_000_000, description="Points to add (positive)")


class VisitResponse(BaseModel):
    id: uuid.UUID
    position: int
    visit_date: datetime
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    duration: Optional[int] = None
    group_size: int
    spending_food: float
    spending_souvenirs: float
    spending_activities: float
    spending_total: float
    feedback_rating: Optional[int] = None
    feedback_comments: Optional[str] = None
    exhibits_visited: List[str]

    model_config = {"from_attributes": True}


class VisitorResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    source: str
    newsletter: bool
    membership_type: Optional[str] = None
    membership_start: Optional[datetime] = None
    membership_end: Optional[datetime] = None
    membership_active: bool
    membership_discount: float
    is_member: bool
    loyalty_points: int
    total_visits: int
    total_spent: float
    average_visit_duration: int
    last_visit_date: Optional[datetime] = None
    vip_level: str
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VisitorDetailResponse(VisitorResponse):
    visit_history: List[VisitResponse] = Field(default_factory=list)


class VisitRecorded(BaseModel):
    """The appended visit and the visitor with recomputed aggregates."""
    visitor: VisitorResponse
    visit: VisitResponse


class VisitorStats(BaseModel):
    total: int
    active: int
    members: int
    total_visits: int
    total_revenue: float
    average_spent: float
    by_vip_level: Dict[str, int]
