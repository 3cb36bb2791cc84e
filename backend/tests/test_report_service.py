"""
Zoo API — Report Service & Storage Tests
==========================================

What:  Tests for report generation, the status lifecycle and JSON exports.
How:   Real in-memory SQLite session; exports go to a pytest tmp_path.

What we test:
    ✅ Visitor and financial figures for a period
    ✅ Unknown report types are rejected
    ✅ generated → published → archived, and nothing else
    ✅ Exports are written on request or on first download
    ✅ Storage paths cannot escape the storage root
"""

from datetime import timedelta

import pytest

from zoo_api.config import settings
from zoo_api.exceptions import FileStorageError, NotFoundError, ValidationError
from zoo_api.schemas.report import ReportGenerateRequest
from zoo_api.schemas.ticket import RefundRequest, TicketPurchase
from zoo_api.schemas.visitor import SpendingIn, VisitCreate, VisitorCreate
from zoo_api.services import rules
from zoo_api.services.report_service import ReportService
from zoo_api.services.report_storage import ReportStorage
from zoo_api.services.ticket_service import ticket_service
from zoo_api.services.visitor_service import visitor_service


def today():
    return rules.zoo_today(settings.zoo_timezone)


def period(export=False):
    return ReportGenerateRequest(
        start_date=today() - timedelta(days=1), end_date=today(), export=export
    )


# ══════════════════════════════════════════════════════════════════════════
# Storage
# ══════════════════════════════════════════════════════════════════════════

class TestReportStorage:

    @pytest.mark.asyncio
    async def test_write_and_read(self, tmp_path):
        storage = ReportStorage(storage_root=str(tmp_path))

        relative_path = await storage.write_json({"animals": 3})

        assert relative_path.endswith(".json")
        assert (tmp_path / relative_path).exists()
        assert b'"animals": 3' in await storage.read(relative_path)

    @pytest.mark.asyncio
    async def test_read_missing_file(self, tmp_path):
        storage = ReportStorage(storage_root=str(tmp_path))
        with pytest.raises(NotFoundError):
            await storage.read("2026/01/01/missing.json")

    def test_path_traversal_rejected(self, tmp_path):
        storage = ReportStorage(storage_root=str(tmp_path / "reports"))
        with pytest.raises(FileStorageError):
            storage.resolve("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_delete_is_best_effort(self, tmp_path):
        storage = ReportStorage(storage_root=str(tmp_path))
        relative_path = await storage.write_json({})

        await storage.delete(relative_path)
        await storage.delete(relative_path)

        assert not (tmp_path / relative_path).exists()


# ══════════════════════════════════════════════════════════════════════════
# Generation & lifecycle
# ══════════════════════════════════════════════════════════════════════════

class TestReportService:

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = ReportService(ReportStorage(storage_root=str(tmp_path)))
        self.root = tmp_path

    @pytest.mark.asyncio
    async def test_visitor_report(self, db_session):
        visitor = await visitor_service.create_visitor(
            db_session, VisitorCreate(first_name="Lena", last_name="Moreau", email="lena@example.com")
        )
        await visitor_service.record_visit(
            db_session, visitor.id, VisitCreate(duration=90, spending=SpendingIn(total=45))
        )

        report = await self.service.generate(db_session, "visitor", period())

        assert report.status == "generated"
        assert report.data["new_visitors"] == 1
        assert report.data["total_visits"] == 1
        assert report.data["total_spending"] == 45.0
        assert report.data["average_duration_minutes"] == 90
        assert report.file_path is None

    @pytest.mark.asyncio
    async def test_financial_report(self, db_session):
        visitor = await visitor_service.create_visitor(
            db_session, VisitorCreate(first_name="Lena", last_name="Moreau", email="lena@example.com")
        )
        await ticket_service.issue_ticket(
            db_session, visitor.id,
            TicketPurchase(type="adult", price=40.0, payment_method="cash", visit_date=today()),
        )
        child, _ = await ticket_service.issue_ticket(
            db_session, visitor.id,
            TicketPurchase(type="child", price=20.0, payment_method="cash", visit_date=today()),
        )
        await ticket_service.refund_ticket(db_session, child.id, RefundRequest(reason="Ill"))

        report = await self.service.generate(db_session, "financial", period())

        assert report.data["tickets_sold"] == 2
        assert report.data["gross_ticket_revenue"] == 60.0
        assert report.data["refunded_amount"] == 20.0
        assert report.data["net_ticket_revenue"] == 40.0
        assert report.data["revenue_by_ticket_type"] == {"adult": {"count": 1, "revenue": 40.0}}
        assert report.data["total_revenue"] == 40.0

    @pytest.mark.asyncio
    async def test_unknown_type(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.generate(db_session, "weather", period())
        assert "financial" in exc_info.value.context["allowed"]

    @pytest.mark.asyncio
    async def test_status_lifecycle(self, db_session):
        report = await self.service.generate(db_session, "exhibit", period())

        published = await self.service.publish(db_session, report.id)
        assert published.status == "published"
        with pytest.raises(ValidationError):
            await self.service.publish(db_session, report.id)

        archived = await self.service.archive(db_session, report.id)
        assert archived.status == "archived"
        with pytest.raises(ValidationError):
            await self.service.archive(db_session, report.id)

    @pytest.mark.asyncio
    async def test_export_on_generate(self, db_session):
        report = await self.service.generate(db_session, "health", period(export=True))

        assert report.file_path is not None
        assert (self.root / report.file_path).exists()

    @pytest.mark.asyncio
    async def test_download_writes_export_once(self, db_session):
        report = await self.service.generate(db_session, "exhibit", period())

        filename, content = await self.service.download(db_session, report.id)
        first_path = report.file_path
        await self.service.download(db_session, report.id)

        assert filename.startswith("exhibit-report-")
        assert str(report.id).encode() in content
        assert report.file_path == first_path

    @pytest.mark.asyncio
    async def test_delete_returns_export_path(self, db_session):
        report = await self.service.generate(db_session, "health", period(export=True))

        file_path = await self.service.delete_report(db_session, report.id)

        assert file_path == report.file_path
        with pytest.raises(NotFoundError):
            await self.service.get_report(db_session, report.id)
