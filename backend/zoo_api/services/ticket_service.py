"""
Zoo API — Ticket Service (Identity Generator & Single-Use Validation)
=======================================================================

What:  Issues, validates, refunds and administers admission tickets.
Who:   Ticket routes and POST /api/visitors/{id}/tickets.

Issuance:
    visitor lookup ──▶ INSERT (in a SAVEPOINT) with a fresh TKT-id ──▶ ticket
                           │ unique clash on ticket_id
                           ▼
                     DuplicateKeyError: tenacity retries with a new id, at
                     most TICKET_ID_MAX_ATTEMPTS times, then surfaces as 409

    The confirmation mail is sent by the route as a background task once
    the response is out. Each attempt runs in a SAVEPOINT, so a clash rolls
    back only that insert and not the caller's transaction.

Validation (gate scan):
    not found → 404, used → 409 with used_at, refunded → 409,
    visit_date != today (zoo timezone) → 400, otherwise a conditional
        UPDATE tickets SET is_used = true, used_at = now
        WHERE id = :id AND is_used = false AND refunded = false
    If that matches no row another gate got there first → 409.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt

from zoo_api.config import settings
from zoo_api.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    TicketAlreadyUsedError,
    TicketFinalizedError,
    TicketNotValidTodayError,
    ValidationError,
)
from zoo_api.models.ticket import FINAL_PRICE_SQL, Ticket
from zoo_api.models.types import utcnow
from zoo_api.models.visitor import Visitor
from zoo_api.schemas.ticket import RefundRequest, TicketPurchase, TicketStats, TicketUpdate
from zoo_api.services import rules
from zoo_api.services.analytics_service import analytics_service
from zoo_api.services.common import (
    apply_changes,
    apply_sort,
    count_where,
    database_error,
    fetch_page,
    get_or_404,
    search_filter,
)
from zoo_api.services.mail_base import TicketConfirmation

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("purchase_date", "visit_date", "price", "type", "created_at")


def _ensure_mutable(ticket: Ticket) -> None:
    if ticket.is_used:
        raise TicketFinalizedError(ticket_id=ticket.ticket_id, reason="used")
    if ticket.refunded:
        raise TicketFinalizedError(ticket_id=ticket.ticket_id, reason="refunded")


def confirmation_for(ticket: Ticket, visitor: Visitor) -> TicketConfirmation:
    return TicketConfirmation(
        visitor_email=visitor.email,
        visitor_name=visitor.full_name,
        ticket_id=ticket.ticket_id,
        ticket_type=ticket.type,
        visit_date=ticket.visit_date,
        final_price=ticket.final_price,
        valid_until=ticket.valid_until,
    )


class TicketService:

    # ══════════════════════════════════════════════════════════════════════
    # Issuance
    # ══════════════════════════════════════════════════════════════════════

    async def issue_ticket(
        self,
        db: AsyncSession,
        visitor_id: uuid.UUID,
        data: TicketPurchase,
    ) -> Tuple[Ticket, TicketConfirmation]:
        """
        Issues a ticket to an existing visitor.

        Returns the stored ticket and a plain confirmation snapshot for the
        mail the route sends after the response.

        Raises:
            NotFoundError: Unknown visitor
            DuplicateKeyError: Every generated ticket id collided
        """
        try:
            visitor = await get_or_404(db, Visitor, visitor_id, "visitor")
            fields = data.model_dump(exclude={"visitor_id"})
            ticket = await self._insert_with_fresh_id(db, visitor.id, fields)
            analytics_service.invalidate_after_commit(db)
            logger.info(
                "Ticket issued: %s (%s) for visitor %s, visit %s",
                ticket.ticket_id, ticket.type, visitor.id, ticket.visit_date,
            )
            return ticket, confirmation_for(ticket, visitor)
        except Exception as e:
            raise database_error("issue the ticket", e, visitor_id=str(visitor_id))

    @retry(
        retry=retry_if_exception_type(DuplicateKeyError),
        stop=stop_after_attempt(settings.ticket_id_max_attempts),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _insert_with_fresh_id(
        self,
        db: AsyncSession,
        visitor_id: uuid.UUID,
        fields: Dict[str, Any],
    ) -> Ticket:
        """
        One insert attempt with a newly generated ticket id.

        A clash on ticket_id becomes DuplicateKeyError, which the decorator
        retries; any other integrity failure propagates untouched.
        """
        ticket = Ticket(
            **fields,
            ticket_id=rules.generate_ticket_id(),
            visitor_id=visitor_id,
            purchase_date=utcnow(),
            is_used=False,
            refunded=False,
        )
        try:
            async with db.begin_nested():
                db.add(ticket)
                await db.flush()
        except IntegrityError as e:
            if "ticket_id" not in str(e.orig):
                raise
            logger.warning("Ticket id collision on %s", ticket.ticket_id)
            raise DuplicateKeyError(field="ticket_id", value=ticket.ticket_id)
        return ticket

    # ══════════════════════════════════════════════════════════════════════
    # State transitions
    # ══════════════════════════════════════════════════════════════════════

    async def validate_ticket(self, db: AsyncSession, ticket_code: str) -> Ticket:
        """
        Admits a ticket at the gate, exactly once.

        Raises:
            NotFoundError, TicketAlreadyUsedError, TicketFinalizedError
            (refunded), TicketNotValidTodayError
        """
        code = ticket_code.strip().upper()
        try:
            ticket = await self._by_code(db, code)
            if ticket.is_used:
                raise TicketAlreadyUsedError(ticket_id=code, used_at=ticket.used_at)
            if ticket.refunded:
                raise TicketFinalizedError(ticket_id=code, reason="refunded")

            today = rules.zoo_today(settings.zoo_timezone)
            if not rules.is_valid_on(ticket.visit_date, today):
                logger.info("Ticket %s presented on %s, valid on %s", code, today, ticket.visit_date)
                raise TicketNotValidTodayError(
                    ticket_id=code, visit_date=ticket.visit_date.isoformat()
                )

            now = utcnow()
            result = await db.execute(
                update(Ticket)
                .where(
                    Ticket.id == ticket.id,
                    Ticket.is_used.is_(False),
                    Ticket.refunded.is_(False),
                )
                .values(is_used=True, used_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.refresh(ticket)
            if result.rowcount != 1:
                raise TicketAlreadyUsedError(ticket_id=code, used_at=ticket.used_at)

            analytics_service.invalidate_after_commit(db)
            logger.info("Ticket validated: %s", code)
            return ticket
        except Exception as e:
            raise database_error("validate the ticket", e, ticket_id=code)

    async def refund_ticket(
        self, db: AsyncSession, ticket_pk: uuid.UUID, data: RefundRequest
    ) -> Ticket:
        """
        Refunds an unused ticket. The amount defaults to the final price
        and may not exceed it.
        """
        try:
            ticket = await get_or_404(db, Ticket, ticket_pk, "ticket")
            _ensure_mutable(ticket)
            amount = ticket.final_price if data.amount is None else round(data.amount, 2)
            if amount > ticket.final_price:
                raise ValidationError(
                    message=f"Refund amount cannot exceed the price paid ({ticket.final_price:.2f})",
                    field="amount",
                )

            now = utcnow()
            result = await db.execute(
                update(Ticket)
                .where(
                    Ticket.id == ticket.id,
                    Ticket.is_used.is_(False),
                    Ticket.refunded.is_(False),
                )
                .values(
                    refunded=True,
                    refund_date=now,
                    refund_amount=amount,
                    refund_reason=data.reason,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await db.refresh(ticket)
            if result.rowcount != 1:
                _ensure_mutable(ticket)

            analytics_service.invalidate_after_commit(db)
            logger.info("Ticket refunded: %s (%.2f)", ticket.ticket_id, amount)
            return ticket
        except Exception as e:
            raise database_error("refund the ticket", e, ticket_id=str(ticket_pk))

    async def update_ticket(
        self, db: AsyncSession, ticket_pk: uuid.UUID, data: TicketUpdate
    ) -> Ticket:
        try:
            ticket = await get_or_404(db, Ticket, ticket_pk, "ticket")
            _ensure_mutable(ticket)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            visit_date = changes.get("visit_date", ticket.visit_date)
            valid_until = changes.get("valid_until", ticket.valid_until)
            if valid_until is not None and valid_until < visit_date:
                raise ValidationError(
                    message="valid_until must not be before visit_date", field="valid_until"
                )
            apply_changes(ticket, changes)
            await db.flush()
            analytics_service.invalidate_after_commit(db)
            return ticket
        except Exception as e:
            raise database_error("update the ticket", e, ticket_id=str(ticket_pk))

    async def delete_ticket(self, db: AsyncSession, ticket_pk: uuid.UUID) -> None:
        try:
            ticket = await get_or_404(db, Ticket, ticket_pk, "ticket")
            _ensure_mutable(ticket)
            await db.delete(ticket)
            await db.flush()
            analytics_service.invalidate_after_commit(db)
            logger.info("Ticket deleted: %s", ticket.ticket_id)
        except Exception as e:
            raise database_error("delete the ticket", e, ticket_id=str(ticket_pk))

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def _by_code(self, db: AsyncSession, code: str) -> Ticket:
        result = await db.execute(select(Ticket).where(Ticket.ticket_id == code))
        ticket = result.scalar_one_or_none()
        if ticket is None:
            raise NotFoundError(resource="ticket", resource_id=code)
        return ticket

    async def get_ticket(self, db: AsyncSession, ticket_pk: uuid.UUID) -> Ticket:
        try:
            return await get_or_404(db, Ticket, ticket_pk, "ticket")
        except Exception as e:
            raise database_error("retrieve the ticket", e, ticket_id=str(ticket_pk))

    async def get_by_ticket_id(self, db: AsyncSession, ticket_code: str) -> Ticket:
        try:
            return await self._by_code(db, ticket_code.strip().upper())
        except Exception as e:
            raise database_error("retrieve the ticket", e, ticket_id=ticket_code)

    async def list_tickets(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        visitor_id: Optional[uuid.UUID] = None,
        type: Optional[str] = None,
        payment_method: Optional[str] = None,
        is_used: Optional[bool] = None,
        refunded: Optional[bool] = None,
        visit_date: Optional[date] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[Ticket], int]:
        try:
            query = select(Ticket)
            if visitor_id:
                query = query.where(Ticket.visitor_id == visitor_id)
            if type:
                query = query.where(Ticket.type == type)
            if payment_method:
                query = query.where(Ticket.payment_method == payment_method)
            if is_used is not None:
                query = query.where(Ticket.is_used == is_used)
            if refunded is not None:
                query = query.where(Ticket.refunded == refunded)
            if visit_date:
                query = query.where(Ticket.visit_date == visit_date)
            match = search_filter(q, Ticket.ticket_id, Ticket.transaction_id)
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, Ticket, sort, order, SORTABLE_FIELDS, default="purchase_date")
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve tickets", e)

    async def tickets_for_visitor(self, db: AsyncSession, visitor_id: uuid.UUID) -> List[Ticket]:
        try:
            await get_or_404(db, Visitor, visitor_id, "visitor")
            result = await db.execute(
                select(Ticket)
                .where(Ticket.visitor_id == visitor_id)
                .order_by(Ticket.purchase_date.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            raise database_error("retrieve the visitor's tickets", e, visitor_id=str(visitor_id))

    async def todays_tickets(self, db: AsyncSession) -> List[Ticket]:
        """Tickets whose visit date is today in the zoo timezone."""
        try:
            today = rules.zoo_today(settings.zoo_timezone)
            result = await db.execute(
                select(Ticket).where(Ticket.visit_date == today).order_by(Ticket.purchase_date)
            )
            return list(result.scalars().all())
        except Exception as e:
            raise database_error("retrieve today's tickets", e)

    async def ticket_stats(self, db: AsyncSession) -> TicketStats:
        """
        Usage and revenue figures.

        Revenue counts the final price of every ticket that has not been
        refunded. "Today" means purchased today in the zoo timezone.
        """
        try:
            total = await count_where(db, Ticket)
            used = await count_where(db, Ticket, Ticket.is_used.is_(True))
            refunded = await count_where(db, Ticket, Ticket.refunded.is_(True))
            revenue = (
                await db.execute(
                    select(func.coalesce(func.sum(FINAL_PRICE_SQL), 0.0)).where(
                        Ticket.refunded.is_(False)
                    )
                )
            ).scalar()
            refunded_amount = (
                await db.execute(select(func.coalesce(func.sum(Ticket.refund_amount), 0.0)))
            ).scalar()

            start, end = rules.day_bounds(rules.zoo_today(settings.zoo_timezone), settings.zoo_timezone)
            today_row = (
                await db.execute(
                    select(func.count(Ticket.id), func.coalesce(func.sum(FINAL_PRICE_SQL), 0.0)).where(
                        Ticket.purchase_date >= start,
                        Ticket.purchase_date < end,
                        Ticket.refunded.is_(False),
                    )
                )
            ).one()

            type_rows = await db.execute(
                select(Ticket.type, func.count(Ticket.id)).group_by(Ticket.type)
            )
            method_rows = await db.execute(
                select(Ticket.payment_method, func.count(Ticket.id)).group_by(Ticket.payment_method)
            )
            return TicketStats(
                total=total,
                used=used,
                unused=total - used - refunded,
                refunded=refunded,
                usage_rate=rules.occupancy_percentage(used, total),
                total_revenue=round(float(revenue), 2),
                refunded_amount=round(float(refunded_amount), 2),
                today_count=today_row[0],
                today_revenue=round(float(today_row[1]), 2),
                by_type={ticket_type: count for ticket_type, count in type_rows.all()},
                by_payment_method={method: count for method, count in method_rows.all()},
            )
        except Exception as e:
            raise database_error("compute ticket statistics", e)


# ── Singleton Instance ────────────────────────────────────────────────────
ticket_service = TicketService()
