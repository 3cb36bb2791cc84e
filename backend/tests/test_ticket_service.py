"""
Zoo API — Ticket Service Tests
================================

What:  Tests for ticket issuance (unique id with retry), single-use
       validation, refunds and the terminal-state rules.
How:   Real in-memory SQLite session; ticket id generation is patched where
       a collision has to be forced.

What we test:
    ✅ Issued tickets carry a TKT id and a confirmation snapshot
    ✅ A ticket id collision is retried with a fresh id
    ✅ Validation admits exactly once, only on the visit date
    ✅ Refunds cap at the price paid and finalize the ticket
    ✅ Used or refunded tickets cannot be edited or deleted
"""

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest

from zoo_api.config import settings
from zoo_api.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    TicketAlreadyUsedError,
    TicketFinalizedError,
    TicketNotValidTodayError,
    ValidationError,
)
from zoo_api.schemas.ticket import RefundRequest, TicketPurchase, TicketUpdate
from zoo_api.schemas.visitor import VisitorCreate
from zoo_api.services import rules
from zoo_api.services.ticket_service import ticket_service
from zoo_api.services.visitor_service import visitor_service


def today():
    return rules.zoo_today(settings.zoo_timezone)


def purchase(visit_date=None, **overrides):
    fields = {
        "type": "adult",
        "price": 40.0,
        "payment_method": "credit_card",
        "visit_date": visit_date or today(),
    }
    fields.update(overrides)
    return TicketPurchase(**fields)


async def new_visitor(db):
    return await visitor_service.create_visitor(
        db, VisitorCreate(first_name="Lena", last_name="Moreau", email="lena@example.com")
    )


class TestIssuance:

    def setup_method(self):
        self.service = ticket_service

    @pytest.mark.asyncio
    async def test_issue_ticket(self, db_session):
        visitor = await new_visitor(db_session)

        ticket, confirmation = await self.service.issue_ticket(
            db_session, visitor.id, purchase(discount_applied=25)
        )

        assert ticket.ticket_id.startswith("TKT-")
        assert ticket.ticket_id == ticket.ticket_id.upper()
        assert ticket.is_used is False
        assert ticket.refunded is False
        assert ticket.final_price == 30.0
        assert confirmation.visitor_email == "lena@example.com"
        assert confirmation.ticket_id == ticket.ticket_id
        assert confirmation.final_price == 30.0

    @pytest.mark.asyncio
    async def test_unknown_visitor(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.issue_ticket(db_session, uuid4(), purchase())

    @pytest.mark.asyncio
    async def test_collision_retries_with_new_id(self, db_session):
        visitor = await new_visitor(db_session)
        with patch(
            "zoo_api.services.rules.generate_ticket_id",
            side_effect=["TKT-1-AAAAAAAAA", "TKT-1-AAAAAAAAA", "TKT-1-BBBBBBBBB"],
        ):
            first, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())
            second, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())

        assert first.ticket_id == "TKT-1-AAAAAAAAA"
        assert second.ticket_id == "TKT-1-BBBBBBBBB"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, db_session):
        visitor = await new_visitor(db_session)
        with patch("zoo_api.services.rules.generate_ticket_id", return_value="TKT-1-AAAAAAAAA"):
            await self.service.issue_ticket(db_session, visitor.id, purchase())
            with pytest.raises(DuplicateKeyError):
                await self.service.issue_ticket(db_session, visitor.id, purchase())


class TestValidation:

    def setup_method(self):
        self.service = ticket_service

    @pytest.mark.asyncio
    async def test_single_use(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())

        admitted = await self.service.validate_ticket(db_session, ticket.ticket_id.lower())
        assert admitted.is_used is True
        assert admitted.used_at is not None

        with pytest.raises(TicketAlreadyUsedError) as exc_info:
            await self.service.validate_ticket(db_session, ticket.ticket_id)
        assert "used_at" in exc_info.value.context

    @pytest.mark.asyncio
    async def test_not_valid_before_visit_date(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(
            db_session, visitor.id, purchase(visit_date=today() + timedelta(days=1))
        )

        with pytest.raises(TicketNotValidTodayError):
            await self.service.validate_ticket(db_session, ticket.ticket_id)
        await db_session.refresh(ticket)
        assert ticket.is_used is False

    @pytest.mark.asyncio
    async def test_not_valid_after_visit_date(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(
            db_session, visitor.id, purchase(visit_date=today() - timedelta(days=1))
        )
        with pytest.raises(TicketNotValidTodayError):
            await self.service.validate_ticket(db_session, ticket.ticket_id)

    @pytest.mark.asyncio
    async def test_unknown_ticket(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.validate_ticket(db_session, "TKT-0-NOPE")


class TestRefundAndFinalState:

    def setup_method(self):
        self.service = ticket_service

    @pytest.mark.asyncio
    async def test_refund_defaults_to_price_paid(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(
            db_session, visitor.id, purchase(discount_applied=50)
        )

        refunded = await self.service.refund_ticket(
            db_session, ticket.id, RefundRequest(reason="Weather closure")
        )

        assert refunded.refunded is True
        assert refunded.refund_amount == 20.0
        assert refunded.refund_date is not None

    @pytest.mark.asyncio
    async def test_refund_cannot_exceed_price(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())

        with pytest.raises(ValidationError):
            await self.service.refund_ticket(
                db_session, ticket.id, RefundRequest(reason="Overcharge", amount=40.01)
            )

    @pytest.mark.asyncio
    async def test_refunded_ticket_is_final(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())
        await self.service.refund_ticket(db_session, ticket.id, RefundRequest(reason="Ill"))

        with pytest.raises(TicketFinalizedError):
            await self.service.validate_ticket(db_session, ticket.ticket_id)
        with pytest.raises(TicketFinalizedError):
            await self.service.refund_ticket(db_session, ticket.id, RefundRequest(reason="Again"))

    @pytest.mark.asyncio
    async def test_used_ticket_cannot_change(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())
        await self.service.validate_ticket(db_session, ticket.ticket_id)

        with pytest.raises(TicketFinalizedError):
            await self.service.update_ticket(db_session, ticket.id, TicketUpdate(notes="late"))
        with pytest.raises(TicketFinalizedError):
            await self.service.delete_ticket(db_session, ticket.id)
        with pytest.raises(TicketFinalizedError):
            await self.service.refund_ticket(db_session, ticket.id, RefundRequest(reason="No"))

    @pytest.mark.asyncio
    async def test_update_unused_ticket(self, db_session):
        visitor = await new_visitor(db_session)
        ticket, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())

        updated = await self.service.update_ticket(
            db_session, ticket.id, TicketUpdate(visit_date=today() + timedelta(days=3))
        )
        assert updated.visit_date == today() + timedelta(days=3)

    @pytest.mark.asyncio
    async def test_stats(self, db_session):
        visitor = await new_visitor(db_session)
        used, _ = await self.service.issue_ticket(db_session, visitor.id, purchase())
        refunded, _ = await self.service.issue_ticket(
            db_session, visitor.id, purchase(type="child", price=20.0)
        )
        await self.service.issue_ticket(db_session, visitor.id, purchase())
        await self.service.validate_ticket(db_session, used.ticket_id)
        await self.service.refund_ticket(db_session, refunded.id, RefundRequest(reason="Ill"))

        stats = await self.service.ticket_stats(db_session)

        assert stats.total == 3
        assert stats.used == 1
        assert stats.refunded == 1
        assert stats.by_type == {"adult": 2, "child": 1}


class TestListing:

    def setup_method(self):
        self.service = ticket_service

    @pytest.mark.asyncio
    async def test_search_matches_ticket_or_transaction_id(self, db_session):
        visitor = await new_visitor(db_session)
        card, _ = await self.service.issue_ticket(
            db_session, visitor.id, purchase(transaction_id="PAY/ORDER/77")
        )
        cash, _ = await self.service.issue_ticket(
            db_session, visitor.id, purchase(payment_method="cash")
        )

        by_transaction, total = await self.service.list_tickets(db_session, q="order/77")
        assert total == 1
        assert by_transaction[0].id == card.id

        by_code, _ = await self.service.list_tickets(db_session, q=cash.ticket_id.lower())
        assert [ticket.id for ticket in by_code] == [cash.id]
