"""
Zoo API — Animal Route Handlers
=================================

What:  Animal catalogue plus the per-animal medical and feeding shortcuts.
How:   Creating an animal or moving it to another exhibit goes through the
       exhibit capacity guard inside AnimalService; a full exhibit answers
       409 capacity_exceeded and nothing is written.

Roles:
    read                     any authenticated user
    create / update          admin, veterinarian, animal_care
    delete                   admin
    POST /{id}/medical       admin, veterinarian
    POST /{id}/feeding       admin, veterinarian, animal_care
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, ANIMAL_CARE, VETERINARY, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.animal import AnimalCreate, AnimalResponse, AnimalStats, AnimalUpdate
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.feeding import AnimalFeedingCreate, FeedingResponse
from zoo_api.schemas.health_record import HealthRecordResponse, MedicalRecordCreate
from zoo_api.services.animal_service import animal_service
from zoo_api.services.feeding_service import feeding_service
from zoo_api.services.health_service import health_service

router = APIRouter(prefix="/api/animals", tags=["Animals"])


@router.get("", response_model=ApiResponse[List[AnimalResponse]], summary="List animals")
async def list_animals(
    species: Optional[str] = Query(default=None),
    animal_status: Optional[str] = Query(default=None, alias="status"),
    exhibit_id: Optional[UUID] = Query(default=None),
    is_endangered: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search name, species, microchip"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[AnimalResponse]]:
    items, total = await animal_service.list_animals(
        db,
        page=params.page,
        limit=params.limit,
        species=species,
        status=animal_status,
        exhibit_id=exhibit_id,
        is_endangered=is_endangered,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(AnimalResponse, items, total, params)


@router.get("/stats", response_model=ApiResponse[AnimalStats], summary="Animal statistics")
async def animal_stats(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AnimalStats]:
    return ApiResponse[AnimalStats](data=await animal_service.animal_stats(db))


@router.get(
    "/{animal_id}",
    response_model=ApiResponse[AnimalResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get one animal",
)
async def get_animal(
    animal_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AnimalResponse]:
    animal = await animal_service.get_animal(db, animal_id)
    return ApiResponse[AnimalResponse](data=AnimalResponse.model_validate(animal))


@router.post(
    "",
    response_model=ApiResponse[AnimalResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Exhibit full or microchip taken", "model": ErrorResponse}},
    summary="Add an animal to an exhibit",
)
async def create_animal(
    body: AnimalCreate,
    _: User = Depends(require_roles(*ANIMAL_CARE)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AnimalResponse]:
    animal = await animal_service.create_animal(db, body)
    return ApiResponse[AnimalResponse](
        data=AnimalResponse.model_validate(animal), message="Animal created"
    )


@router.put(
    "/{animal_id}",
    response_model=ApiResponse[AnimalResponse],
    responses={409: {"description": "Target exhibit full", "model": ErrorResponse}},
    summary="Update an animal (a new exhibit_id moves it)",
)
async def update_animal(
    animal_id: UUID,
    body: AnimalUpdate,
    _: User = Depends(require_roles(*ANIMAL_CARE)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AnimalResponse]:
    animal = await animal_service.update_animal(db, animal_id, body)
    return ApiResponse[AnimalResponse](
        data=AnimalResponse.model_validate(animal), message="Animal updated"
    )


@router.delete(
    "/{animal_id}",
    response_model=ApiResponse[None],
    summary="Delete an animal, or retire it when it has history",
)
async def delete_animal(
    animal_id: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    deleted = await animal_service.delete_animal(db, animal_id)
    message = "Animal deleted" if deleted else "Animal has history and was retired"
    return ApiResponse[None](message=message)


@router.post(
    "/{animal_id}/medical",
    response_model=ApiResponse[HealthRecordResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a medical record and reschedule the next health check",
)
async def add_medical_record(
    animal_id: UUID,
    body: MedicalRecordCreate,
    _: User = Depends(require_roles(*VETERINARY)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[HealthRecordResponse]:
    record = await health_service.add_record(db, animal_id, body)
    return ApiResponse[HealthRecordResponse](
        data=HealthRecordResponse.model_validate(record), message="Medical record added"
    )


@router.post(
    "/{animal_id}/feeding",
    response_model=ApiResponse[FeedingResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a feeding for this animal",
)
async def add_feeding(
    animal_id: UUID,
    body: AnimalFeedingCreate,
    _: User = Depends(require_roles(*ANIMAL_CARE)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[FeedingResponse]:
    feeding = await feeding_service.schedule_feeding(db, animal_id, body)
    return ApiResponse[FeedingResponse](
        data=FeedingResponse.model_validate(feeding), message="Feeding scheduled"
    )
