"""
Zoo API — Business Rule Unit Tests
====================================

What:  Tests for the pure functions in services/rules.py.
How:   Plain values in, plain values out; no database.

What we test:
    ✅ Occupancy percentage and free-slot check
    ✅ Visitor aggregates (totals, half-up average, last visit, VIP tier)
    ✅ VIP tier never drops
    ✅ Ticket id format and validity day
    ✅ Calendar-month scheduling with day clamping
    ✅ Zoo-local "today"
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from zoo_api.services import rules


def visit(spent, duration=None, day=1):
    return SimpleNamespace(
        visit_date=datetime(2026, 3, day, 10, 0, tzinfo=timezone.utc),
        duration=duration,
        spending_total=spent,
    )


class TestRounding:

    def test_half_rounds_up(self):
        assert rules.round_half_up(82.5) == 83
        assert rules.round_half_up(82.49) == 82

    def test_accepts_database_decimals(self):
        assert rules.round_half_up(Decimal("82.5")) == 83
        assert rules.round_half_up(Decimal("45.2500000000000000")) == 45


class TestOccupancy:

    def test_percentage_rounds(self):
        assert rules.occupancy_percentage(1, 3) == 33
        assert rules.occupancy_percentage(2, 3) == 67
        assert rules.occupancy_percentage(1, 8) == 13

    def test_zero_capacity_is_zero_percent(self):
        assert rules.occupancy_percentage(0, 0) == 0

    def test_free_slot(self):
        assert rules.has_free_slot(1, 2) is True
        assert rules.has_free_slot(2, 2) is False


class TestVisitorAggregates:

    def test_empty_history(self):
        aggregates = rules.compute_visitor_aggregates([])
        assert aggregates.total_visits == 0
        assert aggregates.total_spent == 0
        assert aggregates.average_visit_duration == 0
        assert aggregates.last_visit_date is None
        assert aggregates.vip_level == "bronze"

    def test_totals_and_last_visit_follow_history_order(self):
        history = [visit(120.0, 60, day=5), visit(80.5, 90, day=2)]
        aggregates = rules.compute_visitor_aggregates(history)
        assert aggregates.total_visits == 2
        assert aggregates.total_spent == 200.5
        assert aggregates.average_visit_duration == 75
        # Last appended, not latest date
        assert aggregates.last_visit_date.day == 2

    def test_average_duration_rounds_half_up(self):
        aggregates = rules.compute_visitor_aggregates([visit(0, 2), visit(0, 3)])
        assert aggregates.average_visit_duration == 3

    def test_missing_duration_counts_as_zero(self):
        aggregates = rules.compute_visitor_aggregates([visit(0, 60), visit(0, None)])
        assert aggregates.average_visit_duration == 30

    def test_recompute_is_idempotent(self):
        history = [visit(2500.0, 120), visit(100.0, 45)]
        first = rules.compute_visitor_aggregates(history)
        second = rules.compute_visitor_aggregates(history, first.vip_level)
        assert first == second

    def test_apply_writes_onto_visitor(self):
        visitor = SimpleNamespace(vip_level="bronze")
        rules.apply_visitor_aggregates(visitor, [visit(5200.0, 30)])
        assert visitor.total_visits == 1
        assert visitor.total_spent == 5200.0
        assert visitor.vip_level == "gold"


class TestVipLevel:

    def test_thresholds(self):
        assert rules.derive_vip_level(499.99) == "bronze"
        assert rules.derive_vip_level(500) == "bronze"
        assert rules.derive_vip_level(2000) == "silver"
        assert rules.derive_vip_level(5000) == "gold"
        assert rules.derive_vip_level(10_000) == "platinum"

    def test_never_downgrades(self):
        assert rules.derive_vip_level(100, current="gold") == "gold"
        assert rules.derive_vip_level(2500, current="platinum") == "platinum"

    def test_upgrades_past_current(self):
        assert rules.derive_vip_level(6000, current="silver") == "gold"


class TestTickets:

    def test_ticket_id_format(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        ticket_id = rules.generate_ticket_id(now)
        millis = int(now.timestamp() * 1000)
        assert re.fullmatch(rf"TKT-{millis}-[0-9A-Z]{{9}}", ticket_id)

    def test_ticket_id_suffix_uses_choice(self):
        ticket_id = rules.generate_ticket_id(
            datetime(2026, 1, 1, tzinfo=timezone.utc), choice=lambda alphabet: "z"
        )
        assert ticket_id.endswith("-ZZZZZZZZZ")

    def test_final_price(self):
        assert rules.final_price(40.0, 25) == 30.0
        assert rules.final_price(19.99, 0) == 19.99
        assert rules.final_price(10.0, 100) == 0.0

    def test_valid_only_on_visit_date(self):
        assert rules.is_valid_on(date(2026, 5, 1), date(2026, 5, 1)) is True
        assert rules.is_valid_on(date(2026, 5, 2), date(2026, 5, 1)) is False
        assert rules.is_valid_on(date(2026, 4, 30), date(2026, 5, 1)) is False


class TestScheduling:

    def test_six_calendar_months(self):
        last = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)
        assert rules.next_check_after(last, 6) == datetime(2026, 7, 15, 9, 30, tzinfo=timezone.utc)

    def test_day_clamped_to_month_end(self):
        last = datetime(2025, 8, 31, tzinfo=timezone.utc)
        assert rules.next_check_after(last, 6) == datetime(2026, 2, 28, tzinfo=timezone.utc)

    def test_no_last_check_means_no_next(self):
        assert rules.next_check_after(None) is None

    def test_is_check_due(self):
        now = datetime(2026, 6, 1, tzinfo=timezone.utc)
        assert rules.is_check_due(datetime(2026, 6, 1, tzinfo=timezone.utc), now) is True
        assert rules.is_check_due(datetime(2026, 6, 2, tzinfo=timezone.utc), now) is False
        assert rules.is_check_due(None, now) is False


class TestZooToday:

    def test_uses_zoo_timezone(self):
        # 02:00 UTC on May 2nd is still May 1st in New York
        moment = datetime(2026, 5, 2, 2, 0, tzinfo=timezone.utc)
        assert rules.zoo_today("America/New_York", moment) == date(2026, 5, 1)
        assert rules.zoo_today("UTC", moment) == date(2026, 5, 2)

    def test_day_bounds(self):
        start, end = rules.day_bounds(date(2026, 5, 1), "America/New_York")
        assert start == datetime(2026, 5, 1, 4, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 5, 2, 4, 0, tzinfo=timezone.utc)
