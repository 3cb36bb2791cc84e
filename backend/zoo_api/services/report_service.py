"""
Zoo API — Report Service
==========================

What:  Builds operational reports from live aggregates, stores them, and
       manages their publish/archive lifecycle and JSON exports.
How:   Each report type has a builder that runs grouped SQL aggregates over
       [start_date, end_date] (whole days in the zoo timezone) and returns a
       JSON-safe dict plus a one-line summary. The result is stored on a
       Report row; with `export` set it is also written to disk through
       ReportStorage.
Who:   Report routes (POST /api/reports/{type} and the lifecycle endpoints).

Report types:
    visitor    → registrations, visits, group sizes, spending, ratings
    exhibit    → per-exhibit occupancy and inspections falling due
    health     → veterinary records by type and status, costs, follow-ups
    financial  → ticket revenue, refunds, on-site spending, vet costs
"""

import logging
import uuid
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.config import settings
from zoo_api.exceptions import ValidationError
from zoo_api.models.animal import Animal
from zoo_api.models.exhibit import Exhibit
from zoo_api.models.health_record import HealthRecord
from zoo_api.models.report import Report
from zoo_api.models.ticket import FINAL_PRICE_SQL, Ticket
from zoo_api.models.types import as_utc
from zoo_api.models.visitor import Visit, Visitor
from zoo_api.schemas.report import ReportGenerateRequest
from zoo_api.services import rules
from zoo_api.services.common import count_where, database_error, fetch_page, get_or_404
from zoo_api.services.report_storage import ReportStorage, report_storage

logger = logging.getLogger(__name__)

Period = Tuple[datetime, datetime]
Builder = Callable[[AsyncSession, Period], Awaitable[Tuple[Dict[str, Any], str]]]

REPORT_TITLES = {
    "visitor": "Visitor analytics",
    "exhibit": "Exhibit occupancy",
    "health": "Animal health",
    "financial": "Financial",
}


def _money(value: Any) -> float:
    return round(float(value or 0), 2)


def _period_bounds(start_date: date, end_date: date) -> Period:
    """UTC [start, end) covering both end days in the zoo timezone."""
    start, _ = rules.day_bounds(start_date, settings.zoo_timezone)
    _, end = rules.day_bounds(end_date, settings.zoo_timezone)
    return start, end


async def _grouped_counts(db: AsyncSession, column: Any, *criteria: Any) -> Dict[str, int]:
    result = await db.execute(
        select(column, func.count()).where(*criteria).group_by(column).order_by(column)
    )
    return {str(key): count for key, count in result.all() if key is not None}


# ══════════════════════════════════════════════════════════════════════════
# Builders
# ══════════════════════════════════════════════════════════════════════════

async def build_visitor_report(db: AsyncSession, period: Period) -> Tuple[Dict[str, Any], str]:
    start, end = period
    in_range = (Visit.visit_date >= start, Visit.visit_date < end)

    visits = (
        await db.execute(
            select(
                func.count(Visit.id),
                func.count(func.distinct(Visit.visitor_id)),
                func.coalesce(func.sum(Visit.group_size), 0),
                func.coalesce(func.sum(Visit.spending_total), 0.0),
                func.avg(Visit.duration),
                func.avg(Visit.feedback_rating),
            ).where(*in_range)
        )
    ).one()
    new_visitors = await count_where(
        db, Visitor, Visitor.created_at >= start, Visitor.created_at < end
    )

    data = {
        "new_visitors": new_visitors,
        "total_visits": visits[0],
        "unique_visitors": visits[1],
        "total_guests": int(visits[2]),
        "total_spending": _money(visits[3]),
        "average_spending_per_visit": _money(visits[3] / visits[0]) if visits[0] else 0.0,
        "average_duration_minutes": rules.round_half_up(float(visits[4])) if visits[4] else 0,
        "average_rating": round(float(visits[5]), 2) if visits[5] is not None else None,
        "new_visitors_by_source": await _grouped_counts(
            db, Visitor.source, Visitor.created_at >= start, Visitor.created_at < end
        ),
        "visitors_by_vip_level": await _grouped_counts(db, Visitor.vip_level),
        "ratings": await _grouped_counts(
            db, Visit.feedback_rating, *in_range, Visit.feedback_rating.is_not(None)
        ),
    }
    summary = (
        f"{data['total_visits']} visits by {data['unique_visitors']} visitors, "
        f"{data['new_visitors']} new registrations"
    )
    return data, summary


async def build_exhibit_report(db: AsyncSession, period: Period) -> Tuple[Dict[str, Any], str]:
    _, end = period
    result = await db.execute(
        select(Exhibit).where(Exhibit.is_active.is_(True)).order_by(Exhibit.name)
    )
    exhibits = list(result.scalars().all())

    rows = [
        {
            "id": str(exhibit.id),
            "name": exhibit.name,
            "type": exhibit.type,
            "status": exhibit.status,
            "animal_count": exhibit.animal_count,
            "animal_capacity": exhibit.animal_capacity,
            "occupancy_rate": rules.occupancy_percentage(
                exhibit.animal_count, exhibit.animal_capacity
            ),
            "next_inspection": exhibit.next_inspection.isoformat()
            if exhibit.next_inspection else None,
        }
        for exhibit in exhibits
    ]
    capacity = sum(exhibit.animal_capacity for exhibit in exhibits)
    animals = sum(exhibit.animal_count for exhibit in exhibits)
    inspections_due = [
        row["name"] for row, exhibit in zip(rows, exhibits)
        if exhibit.next_inspection is not None and as_utc(exhibit.next_inspection) < end
    ]

    data = {
        "exhibits": rows,
        "total_exhibits": len(rows),
        "total_animal_capacity": capacity,
        "total_animals": animals,
        "occupancy_rate": rules.occupancy_percentage(animals, capacity),
        "full_exhibits": sum(1 for row in rows if row["animal_count"] >= row["animal_capacity"]),
        "inspections_due": inspections_due,
        "by_status": await _grouped_counts(db, Exhibit.status, Exhibit.is_active.is_(True)),
    }
    summary = (
        f"{animals}/{capacity} animal slots used ({data['occupancy_rate']}%) "
        f"across {len(rows)} exhibits"
    )
    return data, summary


async def build_health_report(db: AsyncSession, period: Period) -> Tuple[Dict[str, Any], str]:
    start, end = period
    in_range = (HealthRecord.date >= start, HealthRecord.date < end)

    totals = (
        await db.execute(
            select(
                func.count(HealthRecord.id),
                func.count(func.distinct(HealthRecord.animal_id)),
                func.coalesce(func.sum(HealthRecord.cost), 0.0),
            ).where(*in_range)
        )
    ).one()
    follow_ups = await count_where(
        db, HealthRecord, *in_range, HealthRecord.follow_up_required.is_(True)
    )
    due = await count_where(
        db, Animal, Animal.next_health_check < end, Animal.status != "retired"
    )

    data = {
        "total_records": totals[0],
        "animals_examined": totals[1],
        "total_cost": _money(totals[2]),
        "follow_ups_required": follow_ups,
        "animals_due_for_check": due,
        "by_type": await _grouped_counts(db, HealthRecord.type, *in_range),
        "by_status": await _grouped_counts(db, HealthRecord.status, *in_range),
        "animals_by_status": await _grouped_counts(db, Animal.status),
        "endangered_animals": await count_where(db, Animal, Animal.is_endangered.is_(True)),
    }
    summary = (
        f"{data['total_records']} health records for {data['animals_examined']} animals, "
        f"{due} animals due for a check"
    )
    return data, summary


async def build_financial_report(db: AsyncSession, period: Period) -> Tuple[Dict[str, Any], str]:
    start, end = period
    sold = (Ticket.purchase_date >= start, Ticket.purchase_date < end)

    tickets = (
        await db.execute(
            select(
                func.count(Ticket.id),
                func.coalesce(func.sum(FINAL_PRICE_SQL), 0.0),
            ).where(*sold)
        )
    ).one()
    refunds = (
        await db.execute(
            select(
                func.count(Ticket.id),
                func.coalesce(func.sum(Ticket.refund_amount), 0.0),
            ).where(*sold, Ticket.refunded.is_(True))
        )
    ).one()
    by_type = await db.execute(
        select(Ticket.type, func.count(Ticket.id), func.coalesce(func.sum(FINAL_PRICE_SQL), 0.0))
        .where(*sold, Ticket.refunded.is_(False))
        .group_by(Ticket.type)
        .order_by(Ticket.type)
    )
    by_payment = await db.execute(
        select(Ticket.payment_method, func.coalesce(func.sum(FINAL_PRICE_SQL), 0.0))
        .where(*sold, Ticket.refunded.is_(False))
        .group_by(Ticket.payment_method)
        .order_by(Ticket.payment_method)
    )
    spending = (
        await db.execute(
            select(
                func.coalesce(func.sum(Visit.spending_food), 0.0),
                func.coalesce(func.sum(Visit.spending_souvenirs), 0.0),
                func.coalesce(func.sum(Visit.spending_activities), 0.0),
                func.coalesce(func.sum(Visit.spending_total), 0.0),
            ).where(Visit.visit_date >= start, Visit.visit_date < end)
        )
    ).one()
    vet_costs = (
        await db.execute(
            select(func.coalesce(func.sum(HealthRecord.cost), 0.0)).where(
                HealthRecord.date >= start, HealthRecord.date < end
            )
        )
    ).scalar()

    gross = _money(tickets[1])
    refunded = _money(refunds[1])
    net_tickets = _money(gross - refunded)
    on_site = _money(spending[3])
    data = {
        "tickets_sold": tickets[0],
        "gross_ticket_revenue": gross,
        "tickets_refunded": refunds[0],
        "refunded_amount": refunded,
        "net_ticket_revenue": net_tickets,
        "revenue_by_ticket_type": {
            row[0]: {"count": row[1], "revenue": _money(row[2])} for row in by_type.all()
        },
        "revenue_by_payment_method": {row[0]: _money(row[1]) for row in by_payment.all()},
        "visitor_spending": {
            "food": _money(spending[0]),
            "souvenirs": _money(spending[1]),
            "activities": _money(spending[2]),
            "total": on_site,
        },
        "veterinary_costs": _money(vet_costs),
        "total_revenue": _money(net_tickets + on_site),
    }
    summary = (
        f"{data['tickets_sold']} tickets sold, net ticket revenue {net_tickets:.2f}, "
        f"total revenue {data['total_revenue']:.2f}"
    )
    return data, summary


BUILDERS: Dict[str, Builder] = {
    "visitor": build_visitor_report,
    "exhibit": build_exhibit_report,
    "health": build_health_report,
    "financial": build_financial_report,
}


def _export_payload(report: Report) -> Dict[str, Any]:
    return {
        "id": str(report.id),
        "title": report.title,
        "type": report.type,
        "period": report.period,
        "start_date": report.start_date.isoformat(),
        "end_date": report.end_date.isoformat(),
        "summary": report.summary,
        "generated_at": report.created_at.isoformat() if report.created_at else None,
        "data": report.data,
    }


class ReportService:
    """
    Args:
        storage: Where exports go; tests pass one rooted in a tmp_path
    """

    def __init__(self, storage: ReportStorage):
        self.storage = storage

    async def generate(
        self,
        db: AsyncSession,
        report_type: str,
        request: ReportGenerateRequest,
        generated_by: Optional[uuid.UUID] = None,
    ) -> Report:
        builder = BUILDERS.get(report_type)
        if builder is None:
            raise ValidationError(
                message=f"Unknown report type '{report_type}'",
                field="type",
                context={"allowed": sorted(BUILDERS)},
            )
        try:
            period = _period_bounds(request.start_date, request.end_date)
            data, summary = await builder(db, period)
            report = Report(
                title=request.title or (
                    f"{REPORT_TITLES[report_type]} report "
                    f"{request.start_date.isoformat()} to {request.end_date.isoformat()}"
                ),
                type=report_type,
                period=request.period,
                start_date=request.start_date,
                end_date=request.end_date,
                generated_by=generated_by,
                data=data,
                summary=summary,
                status="generated",
            )
            db.add(report)
            await db.flush()
            if request.export:
                report.file_path = await self.storage.write_json(_export_payload(report))
                await db.flush()
            logger.info("Report generated: %s (%s)", report.title, report.id)
            return report
        except Exception as e:
            raise database_error("generate the report", e, report_type=report_type)

    async def list_reports(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        report_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[Report], int]:
        try:
            query = select(Report)
            if report_type:
                query = query.where(Report.type == report_type)
            if status:
                query = query.where(Report.status == status)
            return await fetch_page(db, query.order_by(Report.created_at.desc()), page, limit)
        except Exception as e:
            raise database_error("retrieve reports", e)

    async def get_report(self, db: AsyncSession, report_id: uuid.UUID) -> Report:
        try:
            return await get_or_404(db, Report, report_id, "report")
        except Exception as e:
            raise database_error("retrieve the report", e, report_id=str(report_id))

    async def publish(self, db: AsyncSession, report_id: uuid.UUID) -> Report:
        """generated → published. Anything else is a ValidationError."""
        try:
            report = await get_or_404(db, Report, report_id, "report")
            if report.status != "generated":
                raise ValidationError(
                    message=f"Only generated reports can be published (status is {report.status})",
                    field="status",
                )
            report.status = "published"
            await db.flush()
            logger.info("Report published: %s", report_id)
            return report
        except Exception as e:
            raise database_error("publish the report", e, report_id=str(report_id))

    async def archive(self, db: AsyncSession, report_id: uuid.UUID) -> Report:
        try:
            report = await get_or_404(db, Report, report_id, "report")
            if report.status == "archived":
                raise ValidationError(message="Report is already archived", field="status")
            report.status = "archived"
            await db.flush()
            logger.info("Report archived: %s", report_id)
            return report
        except Exception as e:
            raise database_error("archive the report", e, report_id=str(report_id))

    async def download(self, db: AsyncSession, report_id: uuid.UUID) -> Tuple[str, bytes]:
        """
        The report's JSON export as (filename, content).

        Reports generated without `export` are written on first download and
        keep that file afterwards.
        """
        try:
            report = await get_or_404(db, Report, report_id, "report")
            if not report.file_path:
                report.file_path = await self.storage.write_json(_export_payload(report))
                await db.flush()
            content = await self.storage.read(report.file_path)
            filename = f"{report.type}-report-{report.start_date.isoformat()}-{report.id}.json"
            return filename, content
        except Exception as e:
            raise database_error("download the report", e, report_id=str(report_id))

    async def delete_report(self, db: AsyncSession, report_id: uuid.UUID) -> Optional[str]:
        """
        Deletes the row and returns the export path (if any) so the caller
        can remove the file after the transaction commits.
        """
        try:
            report = await get_or_404(db, Report, report_id, "report")
            file_path = report.file_path
            await db.delete(report)
            await db.flush()
            logger.info("Report deleted: %s", report_id)
            return file_path
        except Exception as e:
            raise database_error("delete the report", e, report_id=str(report_id))


# ── Singleton Instance ────────────────────────────────────────────────────
report_service = ReportService(report_storage)
