"""
Zoo API — Exhibit Capacity Tests
==================================

What:  Tests for the capacity guard and occupancy synchronizer as seen
       through ExhibitService and AnimalService.
How:   Real in-memory SQLite session (db_session fixture).

What we test:
    ✅ animal_count always equals the animals referencing the exhibit
    ✅ A full exhibit rejects create, move and assign without writing
    ✅ Moves update both exhibits
    ✅ Capacity cannot drop below current occupancy
    ✅ Only empty exhibits can be deactivated
    ✅ The recount locks the exhibit row before counting
    ✅ Deleting an animal with history retires it instead
"""

from datetime import datetime, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from zoo_api.exceptions import CapacityExceededError, NotFoundError, ValidationError
from zoo_api.models.animal import Animal
from zoo_api.schemas.animal import AnimalCreate, AnimalUpdate
from zoo_api.schemas.exhibit import ExhibitCreate, ExhibitUpdate
from zoo_api.schemas.health_record import MedicalRecordCreate
from zoo_api.services.animal_service import animal_service
from zoo_api.services.exhibit_service import exhibit_service
from zoo_api.services.health_service import health_service


async def new_exhibit(db, capacity=2, name="Savanna"):
    return await exhibit_service.create_exhibit(
        db, ExhibitCreate(name=name, type="outdoor", animal_capacity=capacity)
    )


async def new_animal(db, exhibit_id, name="Zuri", species="Lion"):
    return await animal_service.create_animal(
        db, AnimalCreate(name=name, species=species, exhibit_id=exhibit_id)
    )


async def housed(db, exhibit_id):
    result = await db.execute(select(func.count(Animal.id)).where(Animal.exhibit_id == exhibit_id))
    return result.scalar()


class TestCapacityGuard:

    def setup_method(self):
        self.service = exhibit_service

    @pytest.mark.asyncio
    async def test_create_counts_animals(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=3)
        await new_animal(db_session, exhibit.id, "Zuri")
        await new_animal(db_session, exhibit.id, "Kito")

        await db_session.refresh(exhibit)
        assert exhibit.animal_count == 2
        assert exhibit.animal_count == await housed(db_session, exhibit.id)

    @pytest.mark.asyncio
    async def test_full_exhibit_rejects_new_animal(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=1)
        await new_animal(db_session, exhibit.id, "Zuri")

        with pytest.raises(CapacityExceededError) as exc_info:
            await new_animal(db_session, exhibit.id, "Kito")

        assert exc_info.value.context["capacity"] == 1
        await db_session.refresh(exhibit)
        assert exhibit.animal_count == 1
        assert await housed(db_session, exhibit.id) == 1

    @pytest.mark.asyncio
    async def test_zero_capacity_exhibit_rejects(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=0)
        with pytest.raises(CapacityExceededError):
            await new_animal(db_session, exhibit.id)
        assert await housed(db_session, exhibit.id) == 0

    @pytest.mark.asyncio
    async def test_unknown_exhibit_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await new_animal(db_session, uuid4())

    @pytest.mark.asyncio
    async def test_move_updates_both_exhibits(self, db_session):
        source = await new_exhibit(db_session, capacity=2, name="Savanna")
        target = await new_exhibit(db_session, capacity=1, name="Night House")
        animal = await new_animal(db_session, source.id)

        await animal_service.update_animal(db_session, animal.id, AnimalUpdate(exhibit_id=target.id))

        await db_session.refresh(source)
        await db_session.refresh(target)
        assert animal.exhibit_id == target.id
        assert source.animal_count == 0
        assert target.animal_count == 1

    @pytest.mark.asyncio
    async def test_move_into_full_exhibit_changes_nothing(self, db_session):
        source = await new_exhibit(db_session, capacity=2, name="Savanna")
        target = await new_exhibit(db_session, capacity=1, name="Night House")
        await new_animal(db_session, target.id, "Bat")
        animal = await new_animal(db_session, source.id, "Zuri")

        with pytest.raises(CapacityExceededError):
            await self.service.assign_animal(db_session, target.id, animal.id)

        await db_session.refresh(source)
        await db_session.refresh(target)
        assert animal.exhibit_id == source.id
        assert source.animal_count == 1
        assert target.animal_count == 1

    @pytest.mark.asyncio
    async def test_assign_to_current_exhibit_is_noop(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=1)
        animal = await new_animal(db_session, exhibit.id)

        result = await self.service.assign_animal(db_session, exhibit.id, animal.id)

        await db_session.refresh(exhibit)
        assert result.exhibit_id == exhibit.id
        assert exhibit.animal_count == 1

    @pytest.mark.asyncio
    async def test_delete_animal_frees_slot(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=1)
        animal = await new_animal(db_session, exhibit.id)

        deleted = await animal_service.delete_animal(db_session, animal.id)

        await db_session.refresh(exhibit)
        assert deleted is True
        assert exhibit.animal_count == 0

    @pytest.mark.asyncio
    async def test_delete_animal_with_history_retires_it(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=1)
        animal = await new_animal(db_session, exhibit.id)
        await health_service.add_record(
            db_session,
            animal.id,
            MedicalRecordCreate(veterinarian="Dr. Okafor", date=datetime(2026, 1, 10, tzinfo=timezone.utc)),
        )

        deleted = await animal_service.delete_animal(db_session, animal.id)

        await db_session.refresh(exhibit)
        assert deleted is False
        assert animal.status == "retired"
        assert exhibit.animal_count == 1


class TestExhibitAdministration:

    def setup_method(self):
        self.service = exhibit_service

    @pytest.mark.asyncio
    async def test_capacity_cannot_drop_below_occupancy(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=3)
        await new_animal(db_session, exhibit.id, "Zuri")
        await new_animal(db_session, exhibit.id, "Kito")

        with pytest.raises(ValidationError) as exc_info:
            await self.service.update_exhibit(
                db_session, exhibit.id, ExhibitUpdate(animal_capacity=1)
            )
        assert exc_info.value.field == "animal_capacity"

    @pytest.mark.asyncio
    async def test_visitor_count_within_capacity(self, db_session):
        exhibit = await new_exhibit(db_session, capacity=1)
        with pytest.raises(ValidationError):
            await self.service.update_exhibit(
                db_session, exhibit.id, ExhibitUpdate(visitor_count=10)
            )

    @pytest.mark.asyncio
    async def test_inspection_schedules_next(self, db_session):
        exhibit = await new_exhibit(db_session)
        inspected = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)

        updated = await self.service.record_inspection(db_session, exhibit.id, inspected)

        assert updated.last_inspection == inspected
        assert updated.next_inspection == datetime(2026, 8, 1, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_deactivate_requires_empty_exhibit(self, db_session):
        exhibit = await new_exhibit(db_session)
        await new_animal(db_session, exhibit.id)

        with pytest.raises(ValidationError):
            await self.service.deactivate_exhibit(db_session, exhibit.id)

    @pytest.mark.asyncio
    async def test_deactivate_empty_exhibit(self, db_session):
        exhibit = await new_exhibit(db_session)

        closed = await self.service.deactivate_exhibit(db_session, exhibit.id)

        assert closed.is_active is False
        assert closed.status == "closed"

    @pytest.mark.asyncio
    async def test_update_cannot_deactivate_occupied_exhibit(self, db_session):
        exhibit = await new_exhibit(db_session)
        await new_animal(db_session, exhibit.id)

        with pytest.raises(ValidationError) as exc_info:
            await self.service.update_exhibit(
                db_session, exhibit.id, ExhibitUpdate(is_active=False)
            )

        assert exc_info.value.field == "is_active"
        await db_session.refresh(exhibit)
        assert exhibit.is_active is True
        assert exhibit.animal_count == 1

    @pytest.mark.asyncio
    async def test_update_deactivates_empty_exhibit(self, db_session):
        exhibit = await new_exhibit(db_session)

        updated = await self.service.update_exhibit(
            db_session, exhibit.id, ExhibitUpdate(is_active=False)
        )

        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_recount_locks_exhibit_row_first(self, db_session):
        exhibit = await new_exhibit(db_session)
        await new_animal(db_session, exhibit.id)
        statements = []
        real_execute = db_session.execute

        async def recording_execute(statement, *args, **kwargs):
            statements.append(statement)
            return await real_execute(statement, *args, **kwargs)

        with patch.object(db_session, "execute", recording_execute):
            count = await self.service.sync_animal_count(db_session, exhibit.id)

        assert count == 1
        lock_sql = str(statements[0].compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in lock_sql
        assert "UPDATE exhibits" in str(statements[1].compile(dialect=postgresql.dialect()))

    @pytest.mark.asyncio
    async def test_stats(self, db_session):
        savanna = await new_exhibit(db_session, capacity=3, name="Savanna")
        await new_exhibit(db_session, capacity=1, name="Pond")
        await new_animal(db_session, savanna.id)

        stats = await self.service.exhibit_stats(db_session)

        assert stats.total == 2
        assert stats.total_animal_capacity == 4
        assert stats.total_animals == 1
        assert stats.occupancy_rate == 25
