"""
Zoo API — Ticket Route Handlers
=================================

What:  Ticket sales, gate validation, refunds and administration.

Roles:
    POST /tickets, POST /validate/{ticket_id},
    GET /ticket-id/{ticket_id}              public
    DELETE /{id}                            admin
    POST /{id}/refund                       admin, manager, visitor_services
    everything else                         any authenticated user

Gate validation answers:
    200 admitted · 404 unknown code · 409 already used (with used_at) or
    refunded · 400 ticket is for another day
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, MANAGEMENT, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.ticket import (
    RefundRequest,
    TicketCreate,
    TicketResponse,
    TicketStats,
    TicketUpdate,
)
from zoo_api.services.mail_service import mail_service
from zoo_api.services.ticket_service import ticket_service

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])

REFUNDERS = MANAGEMENT + ("visitor_services",)


@router.get("", response_model=ApiResponse[List[TicketResponse]], summary="List tickets")
async def list_tickets(
    visitor_id: Optional[UUID] = Query(default=None),
    ticket_type: Optional[str] = Query(default=None, alias="type"),
    payment_method: Optional[str] = Query(default=None),
    is_used: Optional[bool] = Query(default=None),
    refunded: Optional[bool] = Query(default=None),
    visit_date: Optional[date] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search ticket id, transaction id"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[TicketResponse]]:
    items, total = await ticket_service.list_tickets(
        db,
        page=params.page,
        limit=params.limit,
        visitor_id=visitor_id,
        type=ticket_type,
        payment_method=payment_method,
        is_used=is_used,
        refunded=refunded,
        visit_date=visit_date,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(TicketResponse, items, total, params)


@router.get("/stats", response_model=ApiResponse[TicketStats], summary="Ticket statistics")
async def ticket_stats(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketStats]:
    return ApiResponse[TicketStats](data=await ticket_service.ticket_stats(db))


@router.get(
    "/today",
    response_model=ApiResponse[List[TicketResponse]],
    summary="Tickets whose visit date is today",
)
async def todays_tickets(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[TicketResponse]]:
    tickets = await ticket_service.todays_tickets(db)
    return ApiResponse[List[TicketResponse]](
        data=[TicketResponse.model_validate(ticket) for ticket in tickets]
    )


@router.get(
    "/visitor/{visitor_id}",
    response_model=ApiResponse[List[TicketResponse]],
    summary="All tickets of a visitor",
)
async def tickets_for_visitor(
    visitor_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[TicketResponse]]:
    tickets = await ticket_service.tickets_for_visitor(db, visitor_id)
    return ApiResponse[List[TicketResponse]](
        data=[TicketResponse.model_validate(ticket) for ticket in tickets]
    )


@router.get(
    "/ticket-id/{ticket_id}",
    response_model=ApiResponse[TicketResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Look up a ticket by its printed code",
)
async def get_by_ticket_id(
    ticket_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket = await ticket_service.get_by_ticket_id(db, ticket_id)
    return ApiResponse[TicketResponse](data=TicketResponse.model_validate(ticket))


@router.get(
    "/{ticket_pk}",
    response_model=ApiResponse[TicketResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get one ticket",
)
async def get_ticket(
    ticket_pk: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket = await ticket_service.get_ticket(db, ticket_pk)
    return ApiResponse[TicketResponse](data=TicketResponse.model_validate(ticket))


@router.post(
    "",
    response_model=ApiResponse[TicketResponse],
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Visitor not found", "model": ErrorResponse}},
    summary="Buy a ticket",
)
async def create_ticket(
    body: TicketCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket, confirmation = await ticket_service.issue_ticket(db, body.visitor_id, body)
    background_tasks.add_task(mail_service.send_ticket_confirmation, confirmation)
    return ApiResponse[TicketResponse](
        data=TicketResponse.model_validate(ticket), message="Ticket purchased"
    )


@router.put(
    "/{ticket_pk}",
    response_model=ApiResponse[TicketResponse],
    responses={409: {"description": "Ticket used or refunded", "model": ErrorResponse}},
    summary="Update an unused ticket",
)
async def update_ticket(
    ticket_pk: UUID,
    body: TicketUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket = await ticket_service.update_ticket(db, ticket_pk, body)
    return ApiResponse[TicketResponse](
        data=TicketResponse.model_validate(ticket), message="Ticket updated"
    )


@router.delete("/{ticket_pk}", response_model=ApiResponse[None], summary="Delete an unused ticket")
async def delete_ticket(
    ticket_pk: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await ticket_service.delete_ticket(db, ticket_pk)
    return ApiResponse[None](message="Ticket deleted")


@router.post(
    "/validate/{ticket_id}",
    response_model=ApiResponse[TicketResponse],
    responses={
        400: {"description": "Ticket is for another day", "model": ErrorResponse},
        404: {"description": "Unknown ticket", "model": ErrorResponse},
        409: {"description": "Already used or refunded", "model": ErrorResponse},
    },
    summary="Admit a ticket at the gate",
)
async def validate_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket = await ticket_service.validate_ticket(db, ticket_id)
    return ApiResponse[TicketResponse](
        data=TicketResponse.model_validate(ticket), message="Ticket validated"
    )


@router.post(
    "/{ticket_pk}/refund",
    response_model=ApiResponse[TicketResponse],
    responses={409: {"description": "Ticket used or refunded", "model": ErrorResponse}},
    summary="Refund an unused ticket",
)
async def refund_ticket(
    ticket_pk: UUID,
    body: RefundRequest,
    _: User = Depends(require_roles(*REFUNDERS)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[TicketResponse]:
    ticket = await ticket_service.refund_ticket(db, ticket_pk, body)
    return ApiResponse[TicketResponse](
        data=TicketResponse.model_validate(ticket), message="Ticket refunded"
    )
