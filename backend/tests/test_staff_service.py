"""
Zoo API — Staff Service Tests
===============================

What:  Tests for the staff directory: identifier normalization, uniqueness,
       deactivation and error wrapping.
How:   Real SQLite session for the happy paths; mock_db_session where a
       database failure has to be simulated.
"""

from datetime import date
from uuid import uuid4

import pytest

from zoo_api.exceptions import DatabaseError, DuplicateKeyError, NotFoundError
from zoo_api.schemas.staff import StaffCreate, StaffUpdate
from zoo_api.services.staff_service import staff_service


def staff_data(**overrides):
    fields = {
        "employee_id": " emp-0042 ",
        "first_name": "Ines",
        "last_name": "Carvalho",
        "email": "ines@example.com",
        "role": "animal_care",
        "department": "Primates",
        "position": "Senior Keeper",
        "hire_date": date(2021, 4, 12),
    }
    fields.update(overrides)
    return StaffCreate(**fields)


class TestStaffService:

    def setup_method(self):
        self.service = staff_service

    @pytest.mark.asyncio
    async def test_create_normalizes_employee_id(self, db_session):
        staff = await self.service.create_staff(db_session, staff_data())
        assert staff.employee_id == "EMP-0042"
        assert staff.is_active is True

    @pytest.mark.asyncio
    async def test_duplicate_employee_id(self, db_session):
        await self.service.create_staff(db_session, staff_data())
        with pytest.raises(DuplicateKeyError) as exc_info:
            await self.service.create_staff(
                db_session, staff_data(employee_id="EMP-0042", email="other@example.com")
            )
        assert exc_info.value.field == "employee_id"

    @pytest.mark.asyncio
    async def test_duplicate_email_on_update(self, db_session):
        await self.service.create_staff(db_session, staff_data())
        other = await self.service.create_staff(
            db_session, staff_data(employee_id="EMP-0043", email="tomas@example.com")
        )
        with pytest.raises(DuplicateKeyError):
            await self.service.update_staff(
                db_session, other.id, StaffUpdate(email="INES@example.com")
            )

    @pytest.mark.asyncio
    async def test_delete_deactivates(self, db_session):
        staff = await self.service.create_staff(db_session, staff_data())

        await self.service.deactivate_staff(db_session, staff.id)

        staff = await self.service.get_staff(db_session, staff.id)
        assert staff.is_active is False

    @pytest.mark.asyncio
    async def test_missing_staff(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.get_staff(mock_db_session, uuid4())

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_wrapped(self, mock_db_session):
        mock_db_session.get.side_effect = RuntimeError("connection reset")
        with pytest.raises(DatabaseError) as exc_info:
            await self.service.get_staff(mock_db_session, uuid4())
        assert exc_info.value.context["error_type"] == "RuntimeError"
