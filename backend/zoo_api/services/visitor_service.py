"""
Zoo API — Visitor Service (Aggregate Recalculator)
====================================================

What:  Visitor profiles, the append-only visit history and the derived
       aggregates on each profile.
Who:   Visitor routes; TicketService looks visitors up through it.

Save paths:
    create_visitor, update_visitor and record_visit all end by re-deriving
    total_visits, total_spent, average_visit_duration, last_visit_date and
    vip_level from the full visit history (rules.apply_visitor_aggregates).
    The derivation is a pure function of the history, so running it twice
    changes nothing; vip_level never moves down.

Visit ordering:
    Visits are numbered per visitor (position 0, 1, 2, ...) in the order
    they are recorded. record_visit locks the visitor row while it picks the
    next position, and (visitor_id, position) is unique, so concurrent
    appends for one visitor cannot interleave.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from zoo_api.models.ticket import Ticket
from zoo_api.models.types import as_utc, utcnow
from zoo_api.models.visitor import Visit, Visitor
from zoo_api.schemas.visitor import (
    MembershipIn,
    VisitCreate,
    VisitorCreate,
    VisitorStats,
    VisitorUpdate,
)
from zoo_api.services import rules
from zoo_api.services.analytics_service import analytics_service
from zoo_api.services.common import (
    apply_changes,
    apply_sort,
    count_where,
    database_error,
    fetch_page,
    flush_unique,
    get_or_404,
    search_filter,
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = (
    "last_name", "email", "total_spent", "total_visits", "last_visit_date", "created_at",
)


def _membership_fields(membership: Optional[MembershipIn]) -> Dict[str, Any]:
    """Flattens the membership sub-record onto visitor columns (None clears it)."""
    if membership is None:
        return {
            "membership_type": None,
            "membership_start": None,
            "membership_end": None,
            "membership_active": False,
            "membership_discount": 0.0,
        }
    return {
        "membership_type": membership.type,
        "membership_start": as_utc(membership.start_date),
        "membership_end": as_utc(membership.end_date),
        "membership_active": membership.is_active,
        "membership_discount": membership.discount_percentage,
    }


def _visit_duration(data: VisitCreate) -> Optional[int]:
    if data.duration is not None:
        return data.duration
    if data.entry_time and data.exit_time:
        minutes = (as_utc(data.exit_time) - as_utc(data.entry_time)).total_seconds() / 60
        return rules.round_half_up(minutes)
    return None


class VisitorService:

    async def _ensure_email_free(
        self,
        db: AsyncSession,
        email: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Visitor.id).where(func.lower(Visitor.email) == email.lower())
        if exclude_id is not None:
            query = query.where(Visitor.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise DuplicateKeyError(field="email", value=email)

    async def visit_history(self, db: AsyncSession, visitor_id: uuid.UUID) -> List[Visit]:
        """The visitor's visits in append order (oldest first)."""
        result = await db.execute(
            select(Visit).where(Visit.visitor_id == visitor_id).order_by(Visit.position)
        )
        return list(result.scalars().all())

    async def recalculate(self, db: AsyncSession, visitor: Visitor) -> rules.VisitorAggregates:
        """Re-derives the visitor's aggregates from the stored history."""
        history = await self.visit_history(db, visitor.id)
        return rules.apply_visitor_aggregates(visitor, history)

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_visitors(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        vip_level: Optional[str] = None,
        membership_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        country: Optional[str] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[Visitor], int]:
        try:
            query = select(Visitor)
            if vip_level:
                query = query.where(Visitor.vip_level == vip_level)
            if membership_type:
                query = query.where(Visitor.membership_type == membership_type)
            if is_active is not None:
                query = query.where(Visitor.is_active == is_active)
            if country:
                query = query.where(Visitor.country.ilike(country))
            match = search_filter(q, Visitor.first_name, Visitor.last_name, Visitor.email)
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, Visitor, sort, order, SORTABLE_FIELDS)
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve visitors", e)

    async def get_visitor(self, db: AsyncSession, visitor_id: uuid.UUID) -> Visitor:
        try:
            return await get_or_404(db, Visitor, visitor_id, "visitor")
        except Exception as e:
            raise database_error("retrieve the visitor", e, visitor_id=str(visitor_id))

    async def get_visitor_with_history(
        self, db: AsyncSession, visitor_id: uuid.UUID
    ) -> Tuple[Visitor, List[Visit]]:
        try:
            visitor = await get_or_404(db, Visitor, visitor_id, "visitor")
            return visitor, await self.visit_history(db, visitor_id)
        except Exception as e:
            raise database_error("retrieve the visitor", e, visitor_id=str(visitor_id))

    async def get_by_email(self, db: AsyncSession, email: str) -> Visitor:
        try:
            result = await db.execute(
                select(Visitor).where(func.lower(Visitor.email) == email.strip().lower())
            )
            visitor = result.scalar_one_or_none()
            if visitor is None:
                raise NotFoundError(resource="visitor", resource_id=email)
            return visitor
        except Exception as e:
            raise database_error("retrieve the visitor", e)

    # ══════════════════════════════════════════════════════════════════════
    # Writes
    # ══════════════════════════════════════════════════════════════════════

    async def create_visitor(self, db: AsyncSession, data: VisitorCreate) -> Visitor:
        try:
            await self._ensure_email_free(db, data.email)
            fields = data.model_dump(exclude={"membership"})
            visitor = Visitor(
                **fields,
                **_membership_fields(data.membership),
                loyalty_points=0,
                vip_level=rules.DEFAULT_VIP_LEVEL,
            )
            rules.apply_visitor_aggregates(visitor, [])
            db.add(visitor)
            await flush_unique(db, "email", data.email)
            analytics_service.invalidate_after_commit(db)
            logger.info("Visitor created: %s (%s)", visitor.email, visitor.id)
            return visitor
        except Exception as e:
            raise database_error("create the visitor", e)

    async def update_visitor(
        self, db: AsyncSession, visitor_id: uuid.UUID, data: VisitorUpdate
    ) -> Visitor:
        try:
            visitor = await get_or_404(db, Visitor, visitor_id, "visitor")
            changes = data.model_dump(
                exclude_unset=True, exclude_none=True, exclude={"membership"}
            )
            if "email" in changes:
                await self._ensure_email_free(db, changes["email"], exclude_id=visitor_id)
            if "membership" in data.model_fields_set:
                changes.update(_membership_fields(data.membership))

            changed = apply_changes(visitor, changes)
            await self.recalculate(db, visitor)
            await flush_unique(db, "email", changes.get("email"))
            logger.info("Visitor %s updated: %s", visitor_id, ", ".join(changed) or "no field changes")
            return visitor
        except Exception as e:
            raise database_error("update the visitor", e, visitor_id=str(visitor_id))

    async def record_visit(
        self, db: AsyncSession, visitor_id: uuid.UUID, data: VisitCreate
    ) -> Tuple[Visitor, Visit]:
        """
        Appends a visit and re-derives the visitor's aggregates.

        visit_date is the time the visit is recorded. The spending total
        defaults to food + souvenirs + activities, and the duration to
        exit - entry when both are given.
        """
        try:
            result = await db.execute(
                select(Visitor).where(Visitor.id == visitor_id).with_for_update()
            )
            visitor = result.scalar_one_or_none()
            if visitor is None:
                raise NotFoundError(resource="visitor", resource_id=str(visitor_id))

            last_position = (
                await db.execute(
                    select(func.max(Visit.position)).where(Visit.visitor_id == visitor_id)
                )
            ).scalar()
            spending = data.spending
            total = spending.total
            if total is None:
                total = rules.spending_total(spending.food, spending.souvenirs, spending.activities)

            visit = Visit(
                visitor_id=visitor.id,
                position=0 if last_position is None else last_position + 1,
                visit_date=utcnow(),
                entry_time=as_utc(data.entry_time),
                exit_time=as_utc(data.exit_time),
                duration=_visit_duration(data),
                group_size=data.group_size,
                spending_food=spending.food,
                spending_souvenirs=spending.souvenirs,
                spending_activities=spending.activities,
                spending_total=round(total, 2),
                feedback_rating=data.feedback.rating if data.feedback else None,
                feedback_comments=data.feedback.comments if data.feedback else None,
                exhibits_visited=list(data.exhibits_visited),
            )
            db.add(visit)
            await db.flush()

            aggregates = await self.recalculate(db, visitor)
            await db.flush()
            analytics_service.invalidate_after_commit(db)
            logger.info(
                "Visit recorded for %s: visits=%d spent=%.2f vip=%s",
                visitor.id, aggregates.total_visits, aggregates.total_spent, aggregates.vip_level,
            )
            return visitor, visit
        except Exception as e:
            raise database_error("record the visit", e, visitor_id=str(visitor_id))

    async def add_loyalty_points(
        self, db: AsyncSession, visitor_id: uuid.UUID, points: int
    ) -> Visitor:
        try:
            if points <= 0:
                raise ValidationError(message="Points must be a positive number", field="points")
            visitor = await get_or_404(db, Visitor, visitor_id, "visitor")
            visitor.loyalty_points += points
            await db.flush()
            logger.info("Added %d loyalty points to visitor %s", points, visitor_id)
            return visitor
        except Exception as e:
            raise database_error("add loyalty points", e, visitor_id=str(visitor_id))

    async def delete_visitor(self, db: AsyncSession, visitor_id: uuid.UUID) -> bool:
        """
        Deletes a visitor with no tickets and no visits; otherwise deactivates.

        Returns True when the row was removed.
        """
        try:
            visitor = await get_or_404(db, Visitor, visitor_id, "visitor")
            tickets = await count_where(db, Ticket, Ticket.visitor_id == visitor_id)
            visits = await count_where(db, Visit, Visit.visitor_id == visitor_id)
            if tickets or visits:
                visitor.is_active = False
                await db.flush()
                logger.info(
                    "Visitor %s deactivated (%d tickets, %d visits kept)", visitor_id, tickets, visits
                )
                return False
            await db.delete(visitor)
            await db.flush()
            analytics_service.invalidate_after_commit(db)
            logger.info("Visitor deleted: %s", visitor_id)
            return True
        except Exception as e:
            raise database_error("delete the visitor", e, visitor_id=str(visitor_id))

    async def visitor_stats(self, db: AsyncSession) -> VisitorStats:
        try:
            now = utcnow()
            total = await count_where(db, Visitor)
            active = await count_where(db, Visitor, Visitor.is_active.is_(True))
            members = await count_where(
                db, Visitor, Visitor.membership_active.is_(True), Visitor.membership_end >= now
            )
            sums = (
                await db.execute(
                    select(
                        func.coalesce(func.sum(Visitor.total_visits), 0),
                        func.coalesce(func.sum(Visitor.total_spent), 0.0),
                    )
                )
            ).one()
            vip_rows = await db.execute(
                select(Visitor.vip_level, func.count(Visitor.id)).group_by(Visitor.vip_level)
            )
            revenue = round(float(sums[1]), 2)
            return VisitorStats(
                total=total,
                active=active,
                members=members,
                total_visits=int(sums[0]),
                total_revenue=revenue,
                average_spent=round(revenue / total, 2) if total else 0.0,
                by_vip_level={level: count for level, count in vip_rows.all()},
            )
        except Exception as e:
            raise database_error("compute visitor statistics", e)


# ── Singleton Instance ────────────────────────────────────────────────────
visitor_service = VisitorService()
