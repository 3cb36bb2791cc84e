"""
Zoo API — Analytics Service (Cached Dashboard)
================================================

What:  Headline numbers for the operations dashboard, memoized in a TTLCache.
How:   The overview is computed from live aggregates on a cache miss and
       stored under "dashboard:overview" for ANALYTICS_CACHE_TTL seconds.
       Ticket and visitor writes call invalidate_after_commit(db); the entry
       is dropped when that request commits, so the first read after the
       commit recomputes. Reads during the write see the previous numbers.
Who:   GET /api/analytics/dashboard; invalidated by TicketService and
       VisitorService.
"""

import logging

from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.cache import TTLCache
from zoo_api.config import settings
from zoo_api.models.animal import Animal
from zoo_api.models.exhibit import Exhibit
from zoo_api.models.feeding import Feeding
from zoo_api.models.ticket import FINAL_PRICE_SQL, Ticket
from zoo_api.models.types import utcnow
from zoo_api.models.visitor import Visit, Visitor
from zoo_api.schemas.report import DashboardOverview
from zoo_api.services import rules
from zoo_api.services.common import count_where, database_error

logger = logging.getLogger(__name__)

DASHBOARD_PREFIX = "dashboard:"
DASHBOARD_KEY = DASHBOARD_PREFIX + "overview"
PENDING_INVALIDATION = "zoo_api.dashboard_stale"


class AnalyticsService:
    """
    Args:
        cache: Store for computed results; tests pass one with a fake clock
    """

    def __init__(self, cache: TTLCache):
        self.cache = cache

    def invalidate(self) -> None:
        self.cache.invalidate_prefix(DASHBOARD_PREFIX)

    def invalidate_after_commit(self, db: AsyncSession) -> None:
        """
        Drops the cached overview once `db` commits. A rollback leaves the
        cache alone. One listener per session, however many writes it holds.
        """
        sync_session = db.sync_session
        if sync_session.info.get(PENDING_INVALIDATION):
            return
        sync_session.info[PENDING_INVALIDATION] = True

        def on_commit(session):
            session.info.pop(PENDING_INVALIDATION, None)
            self.invalidate()

        event.listen(sync_session, "after_commit", on_commit, once=True)

    async def dashboard_overview(self, db: AsyncSession) -> DashboardOverview:
        cached = self.cache.get(DASHBOARD_KEY)
        if cached is not None:
            return cached
        overview = await self._compute_overview(db)
        self.cache.set(DASHBOARD_KEY, overview)
        return overview

    async def _compute_overview(self, db: AsyncSession) -> DashboardOverview:
        try:
            now = utcnow()
            today = rules.zoo_today(settings.zoo_timezone, now)
            start, end = rules.day_bounds(today, settings.zoo_timezone)

            capacity_row = (
                await db.execute(
                    select(
                        func.coalesce(func.sum(Exhibit.animal_capacity), 0),
                        func.coalesce(func.sum(Exhibit.animal_count), 0),
                    ).where(Exhibit.is_active.is_(True))
                )
            ).one()
            tickets_row = (
                await db.execute(
                    select(
                        func.count(Ticket.id),
                        func.coalesce(func.sum(FINAL_PRICE_SQL), 0.0),
                    ).where(
                        Ticket.purchase_date >= start,
                        Ticket.purchase_date < end,
                        Ticket.refunded.is_(False),
                    )
                )
            ).one()

            overview = DashboardOverview(
                total_animals=await count_where(db, Animal),
                endangered_animals=await count_where(db, Animal, Animal.is_endangered.is_(True)),
                animals_due_for_health_check=await count_where(
                    db, Animal, Animal.next_health_check <= now
                ),
                total_exhibits=await count_where(db, Exhibit),
                open_exhibits=await count_where(
                    db, Exhibit, Exhibit.status == "open", Exhibit.is_active.is_(True)
                ),
                animal_occupancy_rate=rules.occupancy_percentage(
                    int(capacity_row[1]), int(capacity_row[0])
                ),
                total_visitors=await count_where(db, Visitor),
                vip_visitors=await count_where(
                    db, Visitor, Visitor.vip_level.in_(("gold", "platinum"))
                ),
                tickets_today=tickets_row[0],
                visitors_today=await count_where(
                    db, Visit, Visit.visit_date >= start, Visit.visit_date < end
                ),
                revenue_today=round(float(tickets_row[1]), 2),
                pending_feedings_today=await count_where(
                    db, Feeding, Feeding.feeding_date == today, Feeding.completed.is_(False)
                ),
                generated_at=now,
            )
            logger.debug("Dashboard overview recomputed")
            return overview
        except Exception as e:
            raise database_error("compute the dashboard", e)


# ── Singleton Instance ────────────────────────────────────────────────────
analytics_service = AnalyticsService(TTLCache(ttl=settings.analytics_cache_ttl))
