"""
Zoo API — Health Record Service (Health-Check Scheduler)
==========================================================

What:  Veterinary records and the animal health-check schedule they drive.
How:   Appending a record sets the animal's last_health_check to the
       record's date and next_health_check to that date plus the configured
       interval (calendar months). "Due" is a query filter,
       next_health_check <= now; nothing is queued or dispatched.
Who:   Health-record routes and POST /api/animals/{id}/medical.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.config import settings
from zoo_api.models.animal import Animal
from zoo_api.models.health_record import HealthRecord
from zoo_api.models.types import as_utc, utcnow
from zoo_api.schemas.health_record import (
    HealthRecordUpdate,
    MedicalRecordCreate,
    MedicationIn,
    VitalsIn,
)
from zoo_api.services import rules
from zoo_api.services.common import (
    apply_changes,
    apply_sort,
    database_error,
    fetch_page,
    get_or_404,
    search_filter,
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("date", "type", "veterinarian", "cost", "created_at")


def _medications_json(medications: List[MedicationIn]) -> List[dict]:
    return [medication.model_dump(mode="json", exclude_none=True) for medication in medications]


def _vitals_json(vitals: Optional[VitalsIn]) -> dict:
    return vitals.model_dump(exclude_none=True) if vitals else {}


class HealthService:

    async def add_record(
        self,
        db: AsyncSession,
        animal_id: uuid.UUID,
        data: MedicalRecordCreate,
    ) -> HealthRecord:
        """
        Appends a health record and advances the animal's schedule.

        The schedule follows the record just written, even when its date is
        earlier than a previous check (records are taken in append order).
        """
        try:
            animal = await get_or_404(db, Animal, animal_id, "animal")
            payload = data.model_dump(exclude={"animal_id", "medications", "vitals"})
            payload["date"] = as_utc(payload.get("date")) or utcnow()

            record = HealthRecord(
                **payload,
                medications=_medications_json(data.medications),
                vitals=_vitals_json(data.vitals),
                animal_id=animal.id,
                animal_name=animal.name,
            )
            db.add(record)

            animal.last_health_check = record.date
            animal.next_health_check = rules.next_check_after(
                record.date, settings.health_check_interval_months
            )
            await db.flush()
            logger.info(
                "Health record %s added for animal %s; next check %s",
                record.id, animal.id, animal.next_health_check.date(),
            )
            return record
        except Exception as e:
            raise database_error("add the health record", e, animal_id=str(animal_id))

    async def list_records(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        animal_id: Optional[uuid.UUID] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
        veterinarian: Optional[str] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[HealthRecord], int]:
        try:
            query = select(HealthRecord)
            if animal_id:
                query = query.where(HealthRecord.animal_id == animal_id)
            if type:
                query = query.where(HealthRecord.type == type)
            if status:
                query = query.where(HealthRecord.status == status)
            if veterinarian:
                query = query.where(HealthRecord.veterinarian.ilike(f"%{veterinarian}%"))
            match = search_filter(
                q, HealthRecord.animal_name, HealthRecord.diagnosis, HealthRecord.treatment
            )
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, HealthRecord, sort, order, SORTABLE_FIELDS, default="date")
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve health records", e)

    async def records_for_animal(
        self, db: AsyncSession, animal_id: uuid.UUID
    ) -> List[HealthRecord]:
        try:
            await get_or_404(db, Animal, animal_id, "animal")
            result = await db.execute(
                select(HealthRecord)
                .where(HealthRecord.animal_id == animal_id)
                .order_by(HealthRecord.date.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            raise database_error("retrieve health records", e, animal_id=str(animal_id))

    async def get_record(self, db: AsyncSession, record_id: uuid.UUID) -> HealthRecord:
        try:
            return await get_or_404(db, HealthRecord, record_id, "health record")
        except Exception as e:
            raise database_error("retrieve the health record", e, record_id=str(record_id))

    async def update_record(
        self,
        db: AsyncSession,
        record_id: uuid.UUID,
        data: HealthRecordUpdate,
    ) -> HealthRecord:
        """Edits clinical details; the animal and date are fixed once written."""
        try:
            record = await get_or_404(db, HealthRecord, record_id, "health record")
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            if "medications" in changes:
                changes["medications"] = _medications_json(data.medications or [])
            if "vitals" in changes:
                changes["vitals"] = _vitals_json(data.vitals)
            apply_changes(record, changes)
            await db.flush()
            return record
        except Exception as e:
            raise database_error("update the health record", e, record_id=str(record_id))

    async def delete_record(self, db: AsyncSession, record_id: uuid.UUID) -> None:
        """Deletes a record. The animal's schedule is left as it is."""
        try:
            record = await get_or_404(db, HealthRecord, record_id, "health record")
            await db.delete(record)
            await db.flush()
            logger.info("Health record deleted: %s (animal %s)", record_id, record.animal_id)
        except Exception as e:
            raise database_error("delete the health record", e, record_id=str(record_id))

    async def animals_due(self, db: AsyncSession) -> List[Animal]:
        """Animals whose next health check is now or in the past, most overdue first."""
        try:
            result = await db.execute(
                select(Animal)
                .where(Animal.next_health_check <= utcnow())
                .order_by(Animal.next_health_check.asc())
            )
            return list(result.scalars().all())
        except Exception as e:
            raise database_error("retrieve animals due for a health check", e)


# ── Singleton Instance ────────────────────────────────────────────────────
health_service = HealthService()
