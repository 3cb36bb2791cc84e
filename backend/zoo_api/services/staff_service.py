"""
Zoo API — Staff Service
=========================

What:  Staff directory CRUD. employee_id is stored upper-case and email
       lower-case; both are unique. Deleting deactivates the record.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.exceptions import DuplicateKeyError
from zoo_api.models.staff import Staff
from zoo_api.schemas.staff import StaffCreate, StaffUpdate
from zoo_api.services.common import (
    apply_changes,
    apply_sort,
    database_error,
    fetch_page,
    flush_unique,
    get_or_404,
    search_filter,
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("last_name", "employee_id", "role", "department", "hire_date", "created_at")


class StaffService:

    async def _ensure_unique(
        self,
        db: AsyncSession,
        employee_id: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        checks = (
            ("employee_id", Staff.employee_id, employee_id),
            ("email", func.lower(Staff.email), email.lower() if email else None),
        )
        for field, column, value in checks:
            if not value:
                continue
            query = select(Staff.id).where(column == value)
            if exclude_id is not None:
                query = query.where(Staff.id != exclude_id)
            if (await db.execute(query)).first() is not None:
                raise DuplicateKeyError(field=field, value=value)

    async def list_staff(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        role: Optional[str] = None,
        department: Optional[str] = None,
        is_active: Optional[bool] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[Staff], int]:
        try:
            query = select(Staff)
            if role:
                query = query.where(Staff.role == role)
            if department:
                query = query.where(Staff.department.ilike(department))
            if is_active is not None:
                query = query.where(Staff.is_active == is_active)
            match = search_filter(
                q, Staff.first_name, Staff.last_name, Staff.email, Staff.employee_id
            )
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, Staff, sort, order, SORTABLE_FIELDS)
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve staff", e)

    async def get_staff(self, db: AsyncSession, staff_id: uuid.UUID) -> Staff:
        try:
            return await get_or_404(db, Staff, staff_id, "staff member")
        except Exception as e:
            raise database_error("retrieve the staff member", e, staff_id=str(staff_id))

    async def create_staff(self, db: AsyncSession, data: StaffCreate) -> Staff:
        try:
            await self._ensure_unique(db, employee_id=data.employee_id, email=data.email)
            staff = Staff(**data.model_dump())
            db.add(staff)
            await flush_unique(db, "employee_id", data.employee_id)
            logger.info("Staff member created: %s (%s)", staff.employee_id, staff.role)
            return staff
        except Exception as e:
            raise database_error("create the staff member", e)

    async def update_staff(
        self, db: AsyncSession, staff_id: uuid.UUID, data: StaffUpdate
    ) -> Staff:
        try:
            staff = await get_or_404(db, Staff, staff_id, "staff member")
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            if changes.get("email"):
                await self._ensure_unique(db, email=changes["email"], exclude_id=staff_id)
            apply_changes(staff, changes)
            await flush_unique(db, "email", changes.get("email"))
            return staff
        except Exception as e:
            raise database_error("update the staff member", e, staff_id=str(staff_id))

    async def deactivate_staff(self, db: AsyncSession, staff_id: uuid.UUID) -> Staff:
        try:
            staff = await get_or_404(db, Staff, staff_id, "staff member")
            staff.is_active = False
            await db.flush()
            logger.info("Staff member deactivated: %s", staff.employee_id)
            return staff
        except Exception as e:
            raise database_error("delete the staff member", e, staff_id=str(staff_id))


# ── Singleton Instance ────────────────────────────────────────────────────
staff_service = StaffService()
