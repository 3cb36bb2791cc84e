"""
Zoo API — Pure Business Rules
===============================

What:  Side-effect-free functions behind every derived field in the system.
How:   Each rule takes plain values (or rows read as plain values) and returns
       the result; the services call them on their single save path and copy
       the result onto the ORM object.
Who:   ExhibitService, AnimalService, HealthService, VisitorService,
       TicketService, AnalyticsService and the test-suite.

Rules:
    ┌──────────────────────────────┬────────────────────────────────────────┐
    │ occupancy_percentage         │ round(current / capacity * 100)        │
    │ has_free_slot                │ count < capacity                       │
    │ compute_visitor_aggregates   │ visits, spend, avg duration, VIP tier  │
    │ derive_vip_level             │ thresholds 500/2000/5000/10000, raise  │
    │                              │ only                                   │
    │ generate_ticket_id           │ TKT-<epoch ms>-<9 base36>, upper-case  │
    │ next_check_after             │ last + N calendar months               │
    │ is_check_due                 │ now >= next                            │
    │ zoo_today                    │ calendar date in the zoo's timezone    │
    └──────────────────────────────┴────────────────────────────────────────┘

Rounding:
    round_half_up rounds .5 away from zero for non-negative inputs, so a mean
    duration of 2.5 minutes becomes 3 (Python's round() would give 2).
"""

import math
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

# ── VIP tiers ─────────────────────────────────────────────────────────────
# Highest threshold first; the first tier whose threshold is met wins.
VIP_THRESHOLDS = (
    ("platinum", 10_000),
    ("gold", 5_000),
    ("silver", 2_000),
    ("bronze", 500),
)
VIP_RANK = {"bronze": 1, "silver": 2, "gold": 3, "platinum": 4}
DEFAULT_VIP_LEVEL = "bronze"

BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
TICKET_ID_PREFIX = "TKT"
TICKET_SUFFIX_LENGTH = 9


def round_half_up(value: float) -> int:
    # AVG() over an integer column comes back as Decimal on PostgreSQL
    return int(math.floor(float(value) + 0.5))


# ══════════════════════════════════════════════════════════════════════════
# Exhibit occupancy
# ══════════════════════════════════════════════════════════════════════════

def occupancy_percentage(current: int, capacity: int) -> int:
    """Percentage of capacity in use; 0 for an exhibit with no capacity."""
    if capacity <= 0:
        return 0
    return round_half_up(current / capacity * 100)


def has_free_slot(count: int, capacity: int) -> bool:
    return count < capacity


# ══════════════════════════════════════════════════════════════════════════
# Visitor aggregates
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VisitorAggregates:
    """Derived visitor fields, computed from the visit history alone."""

    total_visits: int
    total_spent: float
    average_visit_duration: int
    last_visit_date: Optional[datetime]
    vip_level: str


def derive_vip_level(total_spent: float, current: Optional[str] = None) -> str:
    """
    Tier earned by `total_spent`, never lower than `current`.

    Below the bronze threshold no tier is earned and the current tier (or the
    default) is kept as-is.
    """
    current = current or DEFAULT_VIP_LEVEL
    earned = next(
        (tier for tier, threshold in VIP_THRESHOLDS if total_spent >= threshold),
        None,
    )
    if earned is None:
        return current
    if VIP_RANK.get(earned, 0) > VIP_RANK.get(current, 0):
        return earned
    return current


def compute_visitor_aggregates(
    history: Sequence[Any],
    current_vip_level: Optional[str] = None,
) -> VisitorAggregates:
    """
    Recompute every derived visitor field from an ordered visit history.

    Each item needs `visit_date`, `duration` (minutes or None) and
    `spending_total`. Items are taken in the order given; the last one is
    the most recent visit. Calling this twice on the same history yields
    the same result.
    """
    total_visits = len(history)
    total_spent = round(sum((visit.spending_total or 0.0) for visit in history), 2)

    average_duration = 0
    last_visit_date = None
    if total_visits > 0:
        total_duration = sum((visit.duration or 0) for visit in history)
        average_duration = round_half_up(total_duration / total_visits)
        last_visit_date = history[-1].visit_date

    return VisitorAggregates(
        total_visits=total_visits,
        total_spent=total_spent,
        average_visit_duration=average_duration,
        last_visit_date=last_visit_date,
        vip_level=derive_vip_level(total_spent, current_vip_level),
    )


def apply_visitor_aggregates(visitor: Any, history: Sequence[Any]) -> VisitorAggregates:
    """Computes aggregates for `visitor` and writes them onto it."""
    aggregates = compute_visitor_aggregates(history, visitor.vip_level)
    visitor.total_visits = aggregates.total_visits
    visitor.total_spent = aggregates.total_spent
    visitor.average_visit_duration = aggregates.average_visit_duration
    visitor.last_visit_date = aggregates.last_visit_date
    visitor.vip_level = aggregates.vip_level
    return aggregates


def spending_total(food: float, souvenirs: float, activities: float) -> float:
    return round((food or 0.0) + (souvenirs or 0.0) + (activities or 0.0), 2)


# ══════════════════════════════════════════════════════════════════════════
# Tickets
# ══════════════════════════════════════════════════════════════════════════

def generate_ticket_id(now: Optional[datetime] = None, choice=secrets.choice) -> str:
    """
    Candidate ticket code: TKT-<epoch millis>-<9 random base36 chars>.

    Not guaranteed unique on its own; the unique constraint on
    tickets.ticket_id is the final arbiter and the caller retries on a clash.
    """
    moment = now or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    suffix = "".join(choice(BASE36_ALPHABET) for _ in range(TICKET_SUFFIX_LENGTH))
    return f"{TICKET_ID_PREFIX}-{millis}-{suffix}".upper()


def final_price(price: float, discount_percentage: float) -> float:
    return round(price * (1 - (discount_percentage or 0) / 100), 2)


def is_valid_on(visit_date: date, today: date) -> bool:
    return visit_date == today


# ══════════════════════════════════════════════════════════════════════════
# Scheduling
# ══════════════════════════════════════════════════════════════════════════

def next_check_after(last: Optional[datetime], months: int = 6) -> Optional[datetime]:
    """
    `last` plus a number of calendar months.

    Day-of-month is clamped to the target month's length: Aug 31 + 6 months
    is Feb 28 (or 29).
    """
    if last is None:
        return None
    return last + relativedelta(months=months)


def is_check_due(next_check: Optional[datetime], now: datetime) -> bool:
    return next_check is not None and now >= next_check


def zoo_today(tz_name: str, now: Optional[datetime] = None) -> date:
    """Today's calendar date as seen from the zoo's timezone."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).date()


def day_bounds(day: date, tz_name: str) -> tuple:
    """UTC [start, end) of a calendar day in the zoo's timezone."""
    tz = ZoneInfo(tz_name)
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    end = start + relativedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
