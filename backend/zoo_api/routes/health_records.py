"""
Zoo API — Health Record Route Handlers
========================================

Roles:
    read               any authenticated user
    create / update    admin, veterinarian
    delete             admin
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, VETERINARY, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.health_record import (
    HealthDueItem,
    HealthRecordCreate,
    HealthRecordResponse,
    HealthRecordUpdate,
)
from zoo_api.services.health_service import health_service

router = APIRouter(prefix="/api/health-records", tags=["Health Records"])


@router.get("", response_model=ApiResponse[List[HealthRecordResponse]], summary="List health records")
async def list_records(
    animal_id: Optional[UUID] = Query(default=None),
    record_type: Optional[str] = Query(default=None, alias="type"),
    record_status: Optional[str] = Query(default=None, alias="status"),
    veterinarian: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search animal, diagnosis, treatment"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[HealthRecordResponse]]:
    items, total = await health_service.list_records(
        db,
        page=params.page,
        limit=params.limit,
        animal_id=animal_id,
        type=record_type,
        status=record_status,
        veterinarian=veterinarian,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(HealthRecordResponse, items, total, params)


@router.get(
    "/due",
    response_model=ApiResponse[List[HealthDueItem]],
    summary="Animals whose next health check has passed",
)
async def animals_due(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[HealthDueItem]]:
    animals = await health_service.animals_due(db)
    return ApiResponse[List[HealthDueItem]](
        data=[
            HealthDueItem(
                animal_id=animal.id,
                name=animal.name,
                species=animal.species,
                exhibit_id=animal.exhibit_id,
                last_health_check=animal.last_health_check,
                next_health_check=animal.next_health_check,
            )
            for animal in animals
        ]
    )


@router.get(
    "/animal/{animal_id}",
    response_model=ApiResponse[List[HealthRecordResponse]],
    summary="An animal's health history, newest first",
)
async def records_for_animal(
    animal_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[HealthRecordResponse]]:
    records = await health_service.records_for_animal(db, animal_id)
    return ApiResponse[List[HealthRecordResponse]](
        data=[HealthRecordResponse.model_validate(record) for record in records]
    )


@router.get(
    "/{record_id}",
    response_model=ApiResponse[HealthRecordResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get one health record",
)
async def get_record(
    record_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[HealthRecordResponse]:
    record = await health_service.get_record(db, record_id)
    return ApiResponse[HealthRecordResponse](data=HealthRecordResponse.model_validate(record))


@router.post(
    "",
    response_model=ApiResponse[HealthRecordResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a health record",
)
async def create_record(
    body: HealthRecordCreate,
    _: User = Depends(require_roles(*VETERINARY)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[HealthRecordResponse]:
    record = await health_service.add_record(db, body.animal_id, body)
    return ApiResponse[HealthRecordResponse](
        data=HealthRecordResponse.model_validate(record), message="Health record added"
    )


@router.put(
    "/{record_id}",
    response_model=ApiResponse[HealthRecordResponse],
    summary="Update a health record",
)
async def update_record(
    record_id: UUID,
    body: HealthRecordUpdate,
    _: User = Depends(require_roles(*VETERINARY)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[HealthRecordResponse]:
    record = await health_service.update_record(db, record_id, body)
    return ApiResponse[HealthRecordResponse](
        data=HealthRecordResponse.model_validate(record), message="Health record updated"
    )


@router.delete("/{record_id}", response_model=ApiResponse[None], summary="Delete a health record")
async def delete_record(
    record_id: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await health_service.delete_record(db, record_id)
    return ApiResponse[None](message="Health record deleted")
