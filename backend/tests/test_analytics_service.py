"""
Zoo API — Analytics Service Tests
===================================

What:  Tests for the dashboard overview and its memoization.
How:   Real SQLite session; the service gets its own TTLCache so the
       disabled process-wide cache (ANALYTICS_CACHE_TTL=0) is not involved.
"""

import pytest

from zoo_api.cache import TTLCache
from zoo_api.schemas.exhibit import ExhibitCreate
from zoo_api.schemas.visitor import VisitorCreate
from zoo_api.services.analytics_service import DASHBOARD_KEY, AnalyticsService
from zoo_api.services.exhibit_service import exhibit_service
from zoo_api.services.visitor_service import visitor_service


class TestDashboardOverview:

    def setup_method(self):
        self.service = AnalyticsService(TTLCache(ttl=300))

    @pytest.mark.asyncio
    async def test_counts(self, db_session):
        await exhibit_service.create_exhibit(
            db_session, ExhibitCreate(name="Aviary", type="aviary", animal_capacity=10)
        )
        await visitor_service.create_visitor(
            db_session, VisitorCreate(first_name="Jo", last_name="Park", email="jo@example.com")
        )

        overview = await self.service.dashboard_overview(db_session)

        assert overview.total_exhibits == 1
        assert overview.open_exhibits == 1
        assert overview.total_visitors == 1
        assert overview.animal_occupancy_rate == 0
        assert overview.tickets_today == 0

    @pytest.mark.asyncio
    async def test_result_is_memoized_until_invalidated(self, db_session):
        first = await self.service.dashboard_overview(db_session)
        await visitor_service.create_visitor(
            db_session, VisitorCreate(first_name="Jo", last_name="Park", email="jo@example.com")
        )

        cached = await self.service.dashboard_overview(db_session)
        assert cached is first
        assert cached.total_visitors == 0

        self.service.invalidate()
        fresh = await self.service.dashboard_overview(db_session)
        assert fresh.total_visitors == 1

    @pytest.mark.asyncio
    async def test_dropped_when_the_write_commits(self, db_session):
        first = await self.service.dashboard_overview(db_session)
        self.service.invalidate_after_commit(db_session)
        self.service.invalidate_after_commit(db_session)

        # Still cached while the writing transaction is open
        assert await self.service.dashboard_overview(db_session) is first

        await db_session.commit()
        assert self.service.cache.get(DASHBOARD_KEY) is None

    @pytest.mark.asyncio
    async def test_rollback_keeps_cached_overview(self, db_session):
        first = await self.service.dashboard_overview(db_session)
        self.service.invalidate_after_commit(db_session)

        await db_session.rollback()

        assert self.service.cache.get(DASHBOARD_KEY) is first
