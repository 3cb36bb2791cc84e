"""
Zoo API — Report and Analytics Route Handlers
===============================================

Roles:
    read, dashboard            any authenticated user
    generate health report     admin, manager, veterinarian
    generate other reports     admin, manager
    publish / archive          admin, manager
    delete                     admin

Deleting a report removes its row in the request transaction; the export
file (if any) is removed by a background task once the response is out.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import (
    ADMIN,
    HEALTH_REPORTING,
    MANAGEMENT,
    get_current_user,
    require_roles,
)
from zoo_api.exceptions import PermissionDeniedError
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.report import (
    DashboardOverview,
    ReportGenerateRequest,
    ReportListItem,
    ReportResponse,
    ReportType,
)
from zoo_api.services.analytics_service import analytics_service
from zoo_api.services.report_service import report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reports"])

GENERATORS = {
    "visitor": MANAGEMENT,
    "exhibit": MANAGEMENT,
    "health": HEALTH_REPORTING,
    "financial": MANAGEMENT,
}


@router.get("/reports", response_model=ApiResponse[List[ReportListItem]], summary="List reports")
async def list_reports(
    report_type: Optional[ReportType] = Query(default=None, alias="type"),
    report_status: Optional[str] = Query(default=None, alias="status"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[ReportListItem]]:
    items, total = await report_service.list_reports(
        db,
        page=params.page,
        limit=params.limit,
        report_type=report_type,
        status=report_status,
    )
    return paginated(ReportListItem, items, total, params)


@router.get(
    "/reports/{report_id}",
    response_model=ApiResponse[ReportResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get a report with its data",
)
async def get_report(
    report_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReportResponse]:
    report = await report_service.get_report(db, report_id)
    return ApiResponse[ReportResponse](data=ReportResponse.model_validate(report))


@router.post(
    "/reports/{report_type}",
    response_model=ApiResponse[ReportResponse],
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}},
    summary="Generate a report over a date range",
)
async def generate_report(
    report_type: ReportType,
    body: ReportGenerateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReportResponse]:
    allowed = GENERATORS[report_type]
    if user.role not in allowed:
        logger.warning(
            "Permission denied for %s (role=%s) generating a %s report",
            user.email, user.role, report_type,
        )
        raise PermissionDeniedError(role=user.role, allowed_roles=allowed)
    report = await report_service.generate(db, report_type, body, generated_by=user.id)
    return ApiResponse[ReportResponse](
        data=ReportResponse.model_validate(report), message="Report generated"
    )


@router.post(
    "/reports/{report_id}/publish",
    response_model=ApiResponse[ReportListItem],
    summary="Publish a generated report",
)
async def publish_report(
    report_id: UUID,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReportListItem]:
    report = await report_service.publish(db, report_id)
    return ApiResponse[ReportListItem](
        data=ReportListItem.model_validate(report), message="Report published"
    )


@router.post(
    "/reports/{report_id}/archive",
    response_model=ApiResponse[ReportListItem],
    summary="Archive a report",
)
async def archive_report(
    report_id: UUID,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReportListItem]:
    report = await report_service.archive(db, report_id)
    return ApiResponse[ReportListItem](
        data=ReportListItem.model_validate(report), message="Report archived"
    )


@router.get(
    "/reports/{report_id}/download",
    response_class=Response,
    responses={200: {"content": {"application/json": {}}, "description": "Report export"}},
    summary="Download the report as a JSON file",
)
async def download_report(
    report_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    filename, content = await report_service.download(db, report_id)
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/reports/{report_id}", response_model=ApiResponse[None], summary="Delete a report")
async def delete_report(
    report_id: UUID,
    background_tasks: BackgroundTasks,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    file_path = await report_service.delete_report(db, report_id)
    if file_path:
        background_tasks.add_task(report_service.storage.delete, file_path)
    return ApiResponse[None](message="Report deleted")


@router.get(
    "/analytics/dashboard",
    response_model=ApiResponse[DashboardOverview],
    tags=["Analytics"],
    summary="Headline operational numbers (cached)",
)
async def dashboard(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[DashboardOverview]:
    return ApiResponse[DashboardOverview](data=await analytics_service.dashboard_overview(db))
