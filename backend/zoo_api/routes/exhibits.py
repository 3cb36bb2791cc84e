"""
Zoo API — Exhibit Route Handlers
==================================

Roles:
    read                            any authenticated user
    create / update / inspection    admin, manager
    assign animal                   admin, manager, veterinarian, animal_care
    delete                          admin (deactivates; refused while animals remain)
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, ANIMAL_CARE, MANAGEMENT, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.animal import AnimalResponse
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.exhibit import (
    AnimalSummary,
    ExhibitCreate,
    ExhibitDetailResponse,
    ExhibitResponse,
    ExhibitStats,
    ExhibitUpdate,
    InspectionCreate,
)
from zoo_api.services.exhibit_service import exhibit_service

router = APIRouter(prefix="/api/exhibits", tags=["Exhibits"])

ASSIGNERS = tuple(dict.fromkeys(MANAGEMENT + ANIMAL_CARE))


@router.get("", response_model=ApiResponse[List[ExhibitResponse]], summary="List exhibits")
async def list_exhibits(
    exhibit_type: Optional[str] = Query(default=None, alias="type"),
    exhibit_status: Optional[str] = Query(default=None, alias="status"),
    theme: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search name, theme, location"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[ExhibitResponse]]:
    items, total = await exhibit_service.list_exhibits(
        db,
        page=params.page,
        limit=params.limit,
        type=exhibit_type,
        status=exhibit_status,
        theme=theme,
        is_active=is_active,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(ExhibitResponse, items, total, params)


@router.get("/stats", response_model=ApiResponse[ExhibitStats], summary="Exhibit statistics")
async def exhibit_stats(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ExhibitStats]:
    return ApiResponse[ExhibitStats](data=await exhibit_service.exhibit_stats(db))


@router.get(
    "/{exhibit_id}",
    response_model=ApiResponse[ExhibitDetailResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get an exhibit with its animals",
)
async def get_exhibit(
    exhibit_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ExhibitDetailResponse]:
    exhibit, animals = await exhibit_service.get_exhibit_with_animals(db, exhibit_id)
    detail = ExhibitDetailResponse.model_validate(exhibit).model_copy(
        update={"animals": [AnimalSummary.model_validate(animal) for animal in animals]}
    )
    return ApiResponse[ExhibitDetailResponse](data=detail)


@router.post(
    "",
    response_model=ApiResponse[ExhibitResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an exhibit",
)
async def create_exhibit(
    body: ExhibitCreate,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ExhibitResponse]:
    exhibit = await exhibit_service.create_exhibit(db, body)
    return ApiResponse[ExhibitResponse](
        data=ExhibitResponse.model_validate(exhibit), message="Exhibit created"
    )


@router.put("/{exhibit_id}", response_model=ApiResponse[ExhibitResponse], summary="Update an exhibit")
async def update_exhibit(
    exhibit_id: UUID,
    body: ExhibitUpdate,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ExhibitResponse]:
    exhibit = await exhibit_service.update_exhibit(db, exhibit_id, body)
    return ApiResponse[ExhibitResponse](
        data=ExhibitResponse.model_validate(exhibit), message="Exhibit updated"
    )


@router.delete(
    "/{exhibit_id}",
    response_model=ApiResponse[ExhibitResponse],
    responses={400: {"description": "Exhibit still houses animals", "model": ErrorResponse}},
    summary="Deactivate an empty exhibit",
)
async def delete_exhibit(
    exhibit_id: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ExhibitResponse]:
    exhibit = await exhibit_service.deactivate_exhibit(db, exhibit_id)
    return ApiResponse[ExhibitResponse](
        data=ExhibitResponse.model_validate(exhibit), message="Exhibit deactivated"
    )


@router.post(
    "/{exhibit_id}/animals/{animal_id}",
    response_model=ApiResponse[AnimalResponse],
    responses={409: {"description": "Exhibit full", "model": ErrorResponse}},
    summary="Move an animal into this exhibit",
)
async def assign_animal(
    exhibit_id: UUID,
    animal_id: UUID,
    _: User = Depends(require_roles(*ASSIGNERS)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AnimalResponse]:
    animal = await exhibit_service.assign_animal(db, exhibit_id, animal_id)
    return ApiResponse[AnimalResponse](
        data=AnimalResponse.model_validate(animal), message="Animal assigned"
    )


@router.post(
    "/{exhibit_id}/inspection",
    response_model=ApiResponse[ExhibitResponse],
    summary="Record an inspection and schedule the next one",
)
async def record_inspection(
    exhibit_id: UUID,
    body: InspectionCreate,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ExhibitResponse]:
    exhibit = await exhibit_service.record_inspection(db, exhibit_id, body.inspected_at)
    return ApiResponse[ExhibitResponse](
        data=ExhibitResponse.model_validate(exhibit), message="Inspection recorded"
    )
