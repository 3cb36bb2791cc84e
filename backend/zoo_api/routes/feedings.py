"""
Zoo API — Feeding Route Handlers
==================================

Roles:
    read                          any authenticated user
    create / update / complete    admin, veterinarian, animal_care
    delete                        admin
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, ANIMAL_CARE, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.feeding import FeedingComplete, FeedingCreate, FeedingResponse, FeedingUpdate
from zoo_api.services.feeding_service import feeding_service

router = APIRouter(prefix="/api/feedings", tags=["Feedings"])


@router.get("", response_model=ApiResponse[List[FeedingResponse]], summary="List feedings")
async def list_feedings(
    animal_id: Optional[UUID] = Query(default=None),
    exhibit_id: Optional[UUID] = Query(default=None),
    feeding_date: Optional[date] = Query(default=None),
    completed: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search animal name, food type"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[FeedingResponse]]:
    items, total = await feeding_service.list_feedings(
        db,
        page=params.page,
        limit=params.limit,
        animal_id=animal_id,
        exhibit_id=exhibit_id,
        feeding_date=feeding_date,
        completed=completed,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(FeedingResponse, items, total, params)


@router.get(
    "/pending",
    response_model=ApiResponse[List[FeedingResponse]],
    summary="Today's feedings not yet completed",
)
async def pending_feedings(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[FeedingResponse]]:
    feedings = await feeding_service.todays_feedings(db, pending_only=True)
    return ApiResponse[List[FeedingResponse]](
        data=[FeedingResponse.model_validate(feeding) for feeding in feedings]
    )


@router.get("/today", response_model=ApiResponse[List[FeedingResponse]], summary="Today's feedings")
async def todays_feedings(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[FeedingResponse]]:
    feedings = await feeding_service.todays_feedings(db)
    return ApiResponse[List[FeedingResponse]](
        data=[FeedingResponse.model_validate(feeding) for feeding in feedings]
    )


@router.get(
    "/{feeding_id}",
    response_model=ApiResponse[FeedingResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get one feeding",
)
async def get_feeding(
    feeding_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[FeedingResponse]:
    feeding = await feeding_service.get_feeding(db, feeding_id)
    return ApiResponse[FeedingResponse](data=FeedingResponse.model_validate(feeding))


@router.post(
    "",
    response_model=ApiResponse[FeedingResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a feeding",
)
async def create_feeding(
    body: FeedingCreate,
    _: User = Depends(require_roles(*ANIMAL_CARE)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[FeedingResponse]:
    feeding = await feeding_service.schedule_feeding(db, body.animal_id, body)
    return ApiResponse[FeedingResponse](
        data=FeedingResponse.model_validate(feeding), message="Feeding scheduled"
    )


@router.put("/{feeding_id}", response_model=ApiResponse[FeedingResponse], summary="Update a feeding")
async def update_feeding(
    feeding_id: UUID,
    body: FeedingUpdate,
    _: User = Depends(require_roles(*ANIMAL_CARE)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[FeedingResponse]:
    feeding = await feeding_service.update_feeding(db, feeding_id, body)
    return ApiResponse[FeedingResponse](
        data=FeedingResponse.model_validate(feeding), message="Feeding updated"
    )


@router.delete("/{feeding_id}", response_model=ApiResponse[None], summary="Delete a feeding")
async def delete_feeding(
    feeding_id: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await feeding_service.delete_feeding(db, feeding_id)
    return ApiResponse[None](message="Feeding deleted")


@router.post(
    "/{feeding_id}/complete",
    response_model=ApiResponse[FeedingResponse],
    summary="Mark a feeding as done",
)
async def complete_feeding(
    feeding_id: UUID,
    body: FeedingComplete,
    user: User = Depends(require_roles(*ANIMAL_CARE)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[FeedingResponse]:
    feeding = await feeding_service.complete_feeding(db, feeding_id, body, completed_by=user.email)
    return ApiResponse[FeedingResponse](
        data=FeedingResponse.model_validate(feeding), message="Feeding completed"
    )
