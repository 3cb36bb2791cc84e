"""
Zoo API — Health & Feeding Service Tests
==========================================

What:  Tests for health records driving the animal's check schedule, the
       due-for-check query and feeding completion.
How:   Real in-memory SQLite session (db_session fixture).
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from zoo_api.exceptions import NotFoundError, ValidationError
from zoo_api.schemas.animal import AnimalCreate
from zoo_api.schemas.exhibit import ExhibitCreate
from zoo_api.schemas.feeding import AnimalFeedingCreate, FeedingComplete
from zoo_api.schemas.health_record import MedicalRecordCreate, MedicationIn, VitalsIn
from zoo_api.services.animal_service import animal_service
from zoo_api.services.exhibit_service import exhibit_service
from zoo_api.services.feeding_service import feeding_service
from zoo_api.services.health_service import health_service


async def new_animal(db, name="Tembo"):
    exhibit = await exhibit_service.create_exhibit(
        db, ExhibitCreate(name=f"{name} Yard", type="outdoor", animal_capacity=2)
    )
    return await animal_service.create_animal(
        db, AnimalCreate(name=name, species="Elephant", exhibit_id=exhibit.id)
    )


class TestHealthRecords:

    def setup_method(self):
        self.service = health_service

    @pytest.mark.asyncio
    async def test_record_sets_check_schedule(self, db_session):
        animal = await new_animal(db_session)
        checked = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

        record = await self.service.add_record(
            db_session,
            animal.id,
            MedicalRecordCreate(
                veterinarian="Dr. Okafor",
                date=checked,
                medications=[MedicationIn(name="Ivermectin", dosage="10ml")],
                vitals=VitalsIn(weight=4200.5),
            ),
        )

        assert record.animal_name == "Tembo"
        assert record.medications == [{"name": "Ivermectin", "dosage": "10ml"}]
        assert record.vitals == {"weight": 4200.5}
        assert animal.last_health_check == checked
        assert animal.next_health_check == datetime(2026, 9, 10, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_record_date_defaults_to_now(self, db_session):
        animal = await new_animal(db_session)
        before = datetime.now(timezone.utc)

        record = await self.service.add_record(
            db_session, animal.id, MedicalRecordCreate(veterinarian="Dr. Okafor")
        )

        assert record.date >= before
        assert animal.next_health_check > record.date

    @pytest.mark.asyncio
    async def test_unknown_animal(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.add_record(
                db_session, uuid4(), MedicalRecordCreate(veterinarian="Dr. Okafor")
            )

    @pytest.mark.asyncio
    async def test_animals_due(self, db_session):
        overdue = await new_animal(db_session, "Tembo")
        current = await new_animal(db_session, "Kibo")
        await self.service.add_record(
            db_session, overdue.id,
            MedicalRecordCreate(veterinarian="Dr. Okafor", date=datetime(2024, 1, 5, tzinfo=timezone.utc)),
        )
        await self.service.add_record(
            db_session, current.id, MedicalRecordCreate(veterinarian="Dr. Okafor")
        )

        due = await self.service.animals_due(db_session)

        assert [animal.id for animal in due] == [overdue.id]


class TestFeedings:

    def setup_method(self):
        self.service = feeding_service

    @pytest.mark.asyncio
    async def test_schedule_copies_animal_details(self, db_session):
        animal = await new_animal(db_session)

        feeding = await self.service.schedule_feeding(
            db_session,
            animal.id,
            AnimalFeedingCreate(food_type="Hay", quantity=50, scheduled_time="07:30"),
        )

        assert feeding.animal_name == "Tembo"
        assert feeding.exhibit_id == animal.exhibit_id
        assert feeding.feeding_date is not None
        assert feeding.completed is False

    @pytest.mark.asyncio
    async def test_complete_once(self, db_session):
        animal = await new_animal(db_session)
        feeding = await self.service.schedule_feeding(
            db_session,
            animal.id,
            AnimalFeedingCreate(food_type="Hay", quantity=50, scheduled_time="07:30"),
        )

        done = await self.service.complete_feeding(
            db_session, feeding.id, FeedingComplete(), completed_by="keeper@example.com"
        )
        assert done.completed is True
        assert done.completed_by == "keeper@example.com"
        assert done.completed_at is not None

        with pytest.raises(ValidationError):
            await self.service.complete_feeding(
                db_session, feeding.id, FeedingComplete(completed_by="Sam"), completed_by="x"
            )
