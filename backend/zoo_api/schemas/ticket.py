"""
Zoo API — Ticket Schemas
==========================

What:  Request/response contracts for /api/tickets and
       POST /api/visitors/{id}/tickets.

ticket_id, is_used/used_at and refund fields are never client-writable;
they change only through issue, validate and refund.
"""

import uuid
from datetime import date, datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, model_validator

TicketType = Literal["adult", "child", "senior", "student", "group", "annual_pass", "vip"]
PaymentMethod = Literal[
    "cash", "credit_card", "debit_card", "online", "voucher", "complimentary",
]


class TicketPurchase(BaseModel):
    """Ticket for a visitor named by the URL (/visitors/{id}/tickets)."""
    type: TicketType
    price: float = Field(ge=0)
    discount_applied: float = Field(default=0.0, ge=0, le=100)
    discount_code: Optional[str] = Field(default=None, max_length=50)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    visit_date: date
    valid_until: Optional[date] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def check_validity_window(self):
        if self.valid_until is not None and self.valid_until < self.visit_date:
            raise ValueError("valid_until must not be before visit_date")
        return self


class TicketCreate(TicketPurchase):
    visitor_id: uuid.UUID


class TicketUpdate(BaseModel):
    type: Optional[TicketType] = None
    price: Optional[float] = Field(default=None, ge=0)
    discount_applied: Optional[float] = Field(default=None, ge=0, le=100)
    discount_code: Optional[str] = Field(default=None, max_length=50)
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    visit_date: Optional[date] = None
    valid_until: Optional[date] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}


class RefundRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
    amount: Optional[float] = Field(
        default=None, ge=0, description="Defaults to the ticket's final price"
    )


class TicketResponse(BaseModel):
    id: uuid.UUID
    ticket_id: str
    visitor_id: uuid.UUID
    type: str
    price: float
    discount_applied: float
    discount_code: Optional[str] = None
    final_price: float
    payment_method: str
    transaction_id: Optional[str] = None
    purchase_date: datetime
    visit_date: date
    valid_until: Optional[date] = None
    is_used: bool
    used_at: Optional[datetime] = None
    refunded: bool
    refund_date: Optional[datetime] = None
    refund_amount: Optional[float] = None
    refund_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketStats(BaseModel):
    total: int
    used: int
    unused: int
    refunded: int
    usage_rate: int
    total_revenue: float
    refunded_amount: float
    today_count: int
    today_revenue: float
    by_type: Dict[str, int]
    by_payment_method: Dict[str, int]
