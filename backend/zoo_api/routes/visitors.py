"""
Zoo API — Visitor Route Handlers
==================================

What:  Visitor profiles, visit recording, ticket purchase and loyalty points.
How:   Visit recording appends to the visitor's history and recomputes the
       aggregates (visits, spend, average duration, VIP tier) in the same
       transaction. Purchases issue a ticket and queue the confirmation
       mail as a background task.

Roles:
    POST /visitors, POST /{id}/tickets   public
    DELETE /{id}                         admin
    everything else                      any authenticated user
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.ticket import TicketPurchase, TicketResponse
from zoo_api.schemas.visitor import (
    LoyaltyPointsIn,
    VisitCreate,
    VisitorCreate,
    VisitorDetailResponse,
    VisitorResponse,
    VisitorStats,
    VisitorUpdate,
    VisitRecorded,
    VisitResponse,
)
from zoo_api.services.mail_service import mail_service
from zoo_api.services.ticket_service import ticket_service
from zoo_api.services.visitor_service import visitor_service

router = APIRouter(prefix="/api/visitors", tags=["Visitors"])


@router.get("", response_model=ApiResponse[List[VisitorResponse]], summary="List visitors")
async def list_visitors(
    vip_level: Optional[str] = Query(default=None),
    membership_type: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    country: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search name, email, phone"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[VisitorResponse]]:
    items, total = await visitor_service.list_visitors(
        db,
        page=params.page,
        limit=params.limit,
        vip_level=vip_level,
        membership_type=membership_type,
        is_active=is_active,
        country=country,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(VisitorResponse, items, total, params)


@router.get("/stats", response_model=ApiResponse[VisitorStats], summary="Visitor statistics")
async def visitor_stats(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitorStats]:
    return ApiResponse[VisitorStats](data=await visitor_service.visitor_stats(db))


@router.get(
    "/email/{email}",
    response_model=ApiResponse[VisitorResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Find a visitor by email",
)
async def get_visitor_by_email(
    email: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitorResponse]:
    visitor = await visitor_service.get_by_email(db, email)
    return ApiResponse[VisitorResponse](data=VisitorResponse.model_validate(visitor))


@router.get(
    "/{visitor_id}",
    response_model=ApiResponse[VisitorDetailResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get a visitor with their visit history",
)
async def get_visitor(
    visitor_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitorDetailResponse]:
    visitor, history = await visitor_service.get_visitor_with_history(db, visitor_id)
    detail = VisitorDetailResponse.model_validate(visitor).model_copy(
        update={"visit_history": [VisitResponse.model_validate(visit) for visit in history]}
    )
    return ApiResponse[VisitorDetailResponse](data=detail)


@router.post(
    "",
    response_model=ApiResponse[VisitorResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Register a visitor",
)
async def create_visitor(
    body: VisitorCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitorResponse]:
    visitor = await visitor_service.create_visitor(db, body)
    return ApiResponse[VisitorResponse](
        data=VisitorResponse.model_validate(visitor), message="Visitor registered"
    )


@router.put("/{visitor_id}", response_model=ApiResponse[VisitorResponse], summary="Update a visitor")
async def update_visitor(
    visitor_id: UUID,
    body: VisitorUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitorResponse]:
    visitor = await visitor_service.update_visitor(db, visitor_id, body)
    return ApiResponse[VisitorResponse](
        data=VisitorResponse.model_validate(visitor), message="Visitor updated"
    )


@router.delete(
    "/{visitor_id}",
    response_model=ApiResponse[None],
    summary="Delete a visitor, or deactivate one with tickets or visits",
)
async def delete_visitor(
    visitor_id: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    deleted = await visitor_service.delete_visitor(db, visitor_id)
    message = "Visitor deleted" if deleted else "Visitor has history and was deactivated"
    return ApiResponse[None](message=message)


@router.post(
    "/{visitor_id}/visits",
    response_model=ApiResponse[VisitRecorded],
    status_code=status.HTTP_201_CREATED,
    summary="Record a visit and recompute the visitor's aggregates",
)
async def record_visit(
    visitor_id: UUID,
    body: VisitCreate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitRecorded]:
    visitor, visit = await visitor_service.record_visit(db, visitor_id, body)
    return ApiResponse[VisitRecorded](
        data=VisitRecorded(
            visitor=VisitorResponse.model_validate(visitor),
            visit=VisitResponse.model_validate(visit),
        ),
        message="Visit recorded",
    )


@router.post(
    "/{visitor_id}/tickets",
    response_model=ApiResponse[TicketResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Buy a ticket for this visitor",
)
async def purchase_ticket(
    visitor_id: UUID,
    body: TicketPurchase,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket, confirmation = await ticket_service.issue_ticket(db, visitor_id, body)
    background_tasks.add_task(mail_service.send_ticket_confirmation, confirmation)
    return ApiResponse[TicketResponse](
        data=TicketResponse.model_validate(ticket), message="Ticket purchased"
    )


@router.post(
    "/{visitor_id}/loyalty-points",
    response_model=ApiResponse[VisitorResponse],
    summary="Add loyalty points",
)
async def add_loyalty_points(
    visitor_id: UUID,
    body: LoyaltyPointsIn,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[VisitorResponse]:
    visitor = await visitor_service.add_loyalty_points(db, visitor_id, body.points)
    return ApiResponse[VisitorResponse](
        data=VisitorResponse.model_validate(visitor),
        message=f"{body.points} loyalty points added",
    )
