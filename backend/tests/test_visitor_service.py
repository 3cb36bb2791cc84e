"""
Zoo API — Visitor Service Tests
=================================

What:  Tests for visitor registration, visit recording and the derived
       aggregates (total visits, spend, average duration, VIP tier).
How:   Real in-memory SQLite session (db_session fixture).
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from zoo_api.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from zoo_api.schemas.visitor import (
    MembershipIn,
    SpendingIn,
    VisitCreate,
    VisitorCreate,
    VisitorUpdate,
)
from zoo_api.services.visitor_service import visitor_service


def visitor_data(email="amara@example.com", **overrides):
    fields = {"first_name": "Amara", "last_name": "Diallo", "email": email}
    fields.update(overrides)
    return VisitorCreate(**fields)


class TestVisitorRegistration:

    def setup_method(self):
        self.service = visitor_service

    @pytest.mark.asyncio
    async def test_new_visitor_starts_empty(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())

        assert visitor.total_visits == 0
        assert visitor.total_spent == 0
        assert visitor.average_visit_duration == 0
        assert visitor.last_visit_date is None
        assert visitor.vip_level == "bronze"
        assert visitor.loyalty_points == 0

    @pytest.mark.asyncio
    async def test_email_is_stored_lower_case_and_unique(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data("Amara@Example.com"))
        assert visitor.email == "amara@example.com"

        with pytest.raises(DuplicateKeyError):
            await self.service.create_visitor(db_session, visitor_data("AMARA@example.com"))

    @pytest.mark.asyncio
    async def test_lookup_by_email(self, db_session):
        created = await self.service.create_visitor(db_session, visitor_data())
        found = await self.service.get_by_email(db_session, "AMARA@example.com")
        assert found.id == created.id

    @pytest.mark.asyncio
    async def test_membership_flattened(self, db_session):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        visitor = await self.service.create_visitor(
            db_session,
            visitor_data(
                membership=MembershipIn(
                    type="family",
                    start_date=start,
                    end_date=start + timedelta(days=365),
                    discount_percentage=15,
                )
            ),
        )
        assert visitor.membership_type == "family"
        assert visitor.membership_active is True
        assert visitor.membership_discount == 15

    @pytest.mark.asyncio
    async def test_update_clears_membership(self, db_session):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        visitor = await self.service.create_visitor(
            db_session,
            visitor_data(
                membership=MembershipIn(
                    type="basic", start_date=start, end_date=start + timedelta(days=30)
                )
            ),
        )
        updated = await self.service.update_visitor(
            db_session, visitor.id, VisitorUpdate(membership=None)
        )
        assert updated.membership_type is None
        assert updated.membership_active is False


class TestVisitRecording:

    def setup_method(self):
        self.service = visitor_service

    @pytest.mark.asyncio
    async def test_aggregates_follow_history(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())

        await self.service.record_visit(
            db_session, visitor.id,
            VisitCreate(duration=120, spending=SpendingIn(food=30, souvenirs=20, activities=10)),
        )
        visitor, visit = await self.service.record_visit(
            db_session, visitor.id,
            VisitCreate(duration=45, spending=SpendingIn(total=2500)),
        )

        assert visit.position == 1
        assert visitor.total_visits == 2
        assert visitor.total_spent == 2560
        assert visitor.average_visit_duration == 83
        assert visitor.last_visit_date == visit.visit_date
        assert visitor.vip_level == "silver"

    @pytest.mark.asyncio
    async def test_spending_total_defaults_to_sum(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        _, visit = await self.service.record_visit(
            db_session, visitor.id,
            VisitCreate(spending=SpendingIn(food=12.5, souvenirs=7.25)),
        )
        assert visit.spending_total == 19.75

    @pytest.mark.asyncio
    async def test_duration_from_entry_and_exit(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        entry = datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)
        _, visit = await self.service.record_visit(
            db_session, visitor.id,
            VisitCreate(entry_time=entry, exit_time=entry + timedelta(hours=2, minutes=30)),
        )
        assert visit.duration == 150

    @pytest.mark.asyncio
    async def test_vip_tier_is_not_lowered_by_admin_edits(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        await self.service.record_visit(
            db_session, visitor.id, VisitCreate(spending=SpendingIn(total=5100))
        )
        assert visitor.vip_level == "gold"

        updated = await self.service.update_visitor(
            db_session, visitor.id, VisitorUpdate(city="Nairobi")
        )
        assert updated.vip_level == "gold"
        assert updated.total_spent == 5100

    @pytest.mark.asyncio
    async def test_unknown_visitor(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.record_visit(db_session, uuid4(), VisitCreate())


class TestLoyaltyAndDeletion:

    def setup_method(self):
        self.service = visitor_service

    @pytest.mark.asyncio
    async def test_loyalty_points_accumulate(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        await self.service.add_loyalty_points(db_session, visitor.id, 50)
        visitor = await self.service.add_loyalty_points(db_session, visitor.id, 25)
        assert visitor.loyalty_points == 75

    @pytest.mark.asyncio
    async def test_loyalty_points_must_be_positive(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        with pytest.raises(ValidationError):
            await self.service.add_loyalty_points(db_session, visitor.id, 0)

    @pytest.mark.asyncio
    async def test_delete_without_history(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        assert await self.service.delete_visitor(db_session, visitor.id) is True
        with pytest.raises(NotFoundError):
            await self.service.get_visitor(db_session, visitor.id)

    @pytest.mark.asyncio
    async def test_delete_with_visits_deactivates(self, db_session):
        visitor = await self.service.create_visitor(db_session, visitor_data())
        await self.service.record_visit(db_session, visitor.id, VisitCreate())

        assert await self.service.delete_visitor(db_session, visitor.id) is False
        assert visitor.is_active is False
