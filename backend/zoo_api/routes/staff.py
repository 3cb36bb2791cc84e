"""
Zoo API — Staff Route Handlers
================================

Roles:
    read               any authenticated user
    create / update    admin, manager
    delete             admin (deactivates the record)
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.dependencies import ADMIN, MANAGEMENT, get_current_user, require_roles
from zoo_api.models.user import User
from zoo_api.routes.common import PageParams, page_params, paginated
from zoo_api.schemas.common import ApiResponse, ErrorResponse
from zoo_api.schemas.staff import StaffCreate, StaffResponse, StaffUpdate
from zoo_api.services.staff_service import staff_service

router = APIRouter(prefix="/api/staff", tags=["Staff"])


@router.get("", response_model=ApiResponse[List[StaffResponse]], summary="List staff")
async def list_staff(
    role: Optional[str] = Query(default=None),
    department: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search name, email, employee id"),
    params: PageParams = Depends(page_params),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[StaffResponse]]:
    items, total = await staff_service.list_staff(
        db,
        page=params.page,
        limit=params.limit,
        role=role,
        department=department,
        is_active=is_active,
        q=q,
        sort=params.sort,
        order=params.order,
    )
    return paginated(StaffResponse, items, total, params)


@router.get(
    "/{staff_id}",
    response_model=ApiResponse[StaffResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get one staff member",
)
async def get_staff(
    staff_id: UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[StaffResponse]:
    staff = await staff_service.get_staff(db, staff_id)
    return ApiResponse[StaffResponse](data=StaffResponse.model_validate(staff))


@router.post(
    "",
    response_model=ApiResponse[StaffResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Employee id or email taken", "model": ErrorResponse}},
    summary="Add a staff member",
)
async def create_staff(
    body: StaffCreate,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[StaffResponse]:
    staff = await staff_service.create_staff(db, body)
    return ApiResponse[StaffResponse](
        data=StaffResponse.model_validate(staff), message="Staff member created"
    )


@router.put("/{staff_id}", response_model=ApiResponse[StaffResponse], summary="Update a staff member")
async def update_staff(
    staff_id: UUID,
    body: StaffUpdate,
    _: User = Depends(require_roles(*MANAGEMENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[StaffResponse]:
    staff = await staff_service.update_staff(db, staff_id, body)
    return ApiResponse[StaffResponse](
        data=StaffResponse.model_validate(staff), message="Staff member updated"
    )


@router.delete(
    "/{staff_id}",
    response_model=ApiResponse[StaffResponse],
    summary="Deactivate a staff member",
)
async def delete_staff(
    staff_id: UUID,
    _: User = Depends(require_roles(*ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[StaffResponse]:
    staff = await staff_service.deactivate_staff(db, staff_id)
    return ApiResponse[StaffResponse](
        data=StaffResponse.model_validate(staff), message="Staff member deactivated"
    )
