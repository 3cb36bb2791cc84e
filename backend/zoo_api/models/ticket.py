"""
Zoo API — Ticket SQLAlchemy Model
===================================

What:  Admission tickets issued to visitors.

State machine:
    unused ──validate()──▶ used        (terminal, exactly once)
    unused ──refund()────▶ refunded    (terminal)

    Both transitions are conditional UPDATEs guarded by `is_used = false
    AND refunded = false`, so two gates scanning the same ticket cannot
    both admit it.

Identity:
    ticket_id is the human-facing code printed on the ticket
    (TKT-<epoch millis>-<9 base36 chars>, upper-case). The unique
    constraint is what ultimately guarantees uniqueness; TicketService
    retries generation when an insert hits it.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Date, Float, ForeignKey, Index, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from zoo_api.database import Base
from zoo_api.models.types import UTCDateTime, utcnow

TICKET_TYPES = ("adult", "child", "senior", "student", "group", "annual_pass", "vip")
PAYMENT_METHODS = (
    "cash", "credit_card", "debit_card", "online", "voucher", "complimentary",
)


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[str] = mapped_column(String(40), nullable=False)
    visitor_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("visitors.id"), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    discount_applied: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="Percentage 0-100"
    )
    discount_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    purchase_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    visit_date: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # ── State ─────────────────────────────────────────────────────────────
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    refunded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    refund_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    refund_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("ticket_id", name="uq_tickets_ticket_id"),
        CheckConstraint("price >= 0", name="ck_tickets_price_non_negative"),
        CheckConstraint(
            "discount_applied >= 0 AND discount_applied <= 100",
            name="ck_tickets_discount_range",
        ),
        Index("idx_tickets_visitor_id", "visitor_id"),
        Index("idx_tickets_visit_date", "visit_date"),
    )

    @property
    def final_price(self) -> float:
        """Price after the percentage discount, rounded to cents."""
        return round(self.price * (1 - (self.discount_applied or 0) / 100), 2)

    @property
    def is_finalized(self) -> bool:
        return bool(self.is_used or self.refunded)

    def __repr__(self) -> str:
        return f"<Ticket(ticket_id='{self.ticket_id}', used={self.is_used})>"


# SQL counterpart of Ticket.final_price for aggregate queries (unrounded)
FINAL_PRICE_SQL = Ticket.price * (1 - Ticket.discount_applied / 100.0)
