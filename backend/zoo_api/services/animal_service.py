"""
Zoo API — Animal Service
==========================

What:  Animal CRUD. Every change of exhibit membership goes through
       ExhibitService so the capacity guard and occupancy sync run in the
       same transaction as the animal write.
Who:   Animal routes.

Lifecycle rules:
    create  → reserve a slot in the exhibit, insert, sync the count
    move    → reserve in the target, re-point, sync target and source
    delete  → hard delete (and sync) when the animal has no health or
              feeding history; otherwise status = 'retired' and it stays
              where it is
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.exceptions import DuplicateKeyError
from zoo_api.models.animal import Animal
from zoo_api.models.feeding import Feeding
from zoo_api.models.health_record import HealthRecord
from zoo_api.models.types import utcnow
from zoo_api.schemas.animal import AnimalCreate, AnimalStats, AnimalUpdate
from zoo_api.services.common import (
    apply_changes,
    apply_sort,
    count_where,
    database_error,
    fetch_page,
    flush_unique,
    get_or_404,
    search_filter,
)
from zoo_api.services.exhibit_service import exhibit_service

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("name", "species", "status", "arrival_date", "next_health_check", "created_at")


class AnimalService:

    async def _ensure_microchip_free(
        self,
        db: AsyncSession,
        microchip_id: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        if not microchip_id:
            return
        query = select(Animal.id).where(Animal.microchip_id == microchip_id)
        if exclude_id is not None:
            query = query.where(Animal.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise DuplicateKeyError(field="microchip_id", value=microchip_id)

    async def list_animals(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        species: Optional[str] = None,
        status: Optional[str] = None,
        exhibit_id: Optional[uuid.UUID] = None,
        is_endangered: Optional[bool] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[Animal], int]:
        """
        Paginated, filtered animal list.

        `q` matches name, species or scientific name (case-insensitive);
        `species` is an exact, case-insensitive match.
        """
        try:
            query = select(Animal)
            if species:
                query = query.where(Animal.species.ilike(species))
            if status:
                query = query.where(Animal.status == status)
            if exhibit_id:
                query = query.where(Animal.exhibit_id == exhibit_id)
            if is_endangered is not None:
                query = query.where(Animal.is_endangered == is_endangered)
            match = search_filter(q, Animal.name, Animal.species, Animal.scientific_name)
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, Animal, sort, order, SORTABLE_FIELDS)
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve animals", e)

    async def get_animal(self, db: AsyncSession, animal_id: uuid.UUID) -> Animal:
        try:
            return await get_or_404(db, Animal, animal_id, "animal")
        except Exception as e:
            raise database_error("retrieve the animal", e, animal_id=str(animal_id))

    async def create_animal(self, db: AsyncSession, data: AnimalCreate) -> Animal:
        """
        Inserts an animal into its exhibit.

        Raises:
            NotFoundError: The exhibit does not exist
            CapacityExceededError: The exhibit is full (nothing is written)
            DuplicateKeyError: microchip_id already registered
        """
        try:
            await self._ensure_microchip_free(db, data.microchip_id)
            await exhibit_service.reserve_slot(db, data.exhibit_id)

            animal = Animal(**data.model_dump())
            db.add(animal)
            await flush_unique(db, "microchip_id", data.microchip_id)
            await exhibit_service.sync_animal_count(db, data.exhibit_id)

            logger.info(
                "Animal created: %s (%s) in exhibit %s", animal.name, animal.species, animal.exhibit_id
            )
            return animal
        except Exception as e:
            raise database_error("create the animal", e)

    async def update_animal(
        self, db: AsyncSession, animal_id: uuid.UUID, data: AnimalUpdate
    ) -> Animal:
        """
        Partial update. A different exhibit_id is a move and re-runs the
        capacity guard against the target before anything else changes.
        """
        try:
            animal = await get_or_404(db, Animal, animal_id, "animal")
            changes = data.model_dump(exclude_unset=True, exclude_none=True)

            target_id = changes.pop("exhibit_id", None)
            if target_id is not None and target_id != animal.exhibit_id:
                await exhibit_service.move_animal(db, animal, target_id)

            if "microchip_id" in changes:
                await self._ensure_microchip_free(db, changes["microchip_id"], exclude_id=animal_id)

            changed = apply_changes(animal, changes)
            await flush_unique(db, "microchip_id", changes.get("microchip_id"))
            logger.info("Animal %s updated: %s", animal_id, ", ".join(changed) or "no field changes")
            return animal
        except Exception as e:
            raise database_error("update the animal", e, animal_id=str(animal_id))

    async def delete_animal(self, db: AsyncSession, animal_id: uuid.UUID) -> bool:
        """
        Removes an animal.

        Returns True when the row was deleted, False when it was retired
        because health or feeding records still reference it.
        """
        try:
            animal = await get_or_404(db, Animal, animal_id, "animal")
            history = await count_where(db, HealthRecord, HealthRecord.animal_id == animal_id)
            history += await count_where(db, Feeding, Feeding.animal_id == animal_id)

            if history:
                animal.status = "retired"
                await db.flush()
                logger.info("Animal %s retired (%d history records kept)", animal_id, history)
                return False

            exhibit_id = animal.exhibit_id
            await db.delete(animal)
            await db.flush()
            await exhibit_service.sync_animal_count(db, exhibit_id)
            logger.info("Animal deleted: %s (%s)", animal.name, animal_id)
            return True
        except Exception as e:
            raise database_error("delete the animal", e, animal_id=str(animal_id))

    async def animal_stats(self, db: AsyncSession) -> AnimalStats:
        try:
            total = await count_where(db, Animal)
            endangered = await count_where(db, Animal, Animal.is_endangered.is_(True))
            due = await count_where(db, Animal, Animal.next_health_check <= utcnow())

            status_rows = await db.execute(
                select(Animal.status, func.count(Animal.id)).group_by(Animal.status)
            )
            species_rows = await db.execute(
                select(Animal.species, func.count(Animal.id))
                .group_by(Animal.species)
                .order_by(func.count(Animal.id).desc(), Animal.species)
            )
            return AnimalStats(
                total=total,
                endangered=endangered,
                due_for_health_check=due,
                by_status={status: count for status, count in status_rows.all()},
                by_species={species: count for species, count in species_rows.all()},
            )
        except Exception as e:
            raise database_error("compute animal statistics", e)


# ── Singleton Instance ────────────────────────────────────────────────────
animal_service = AnimalService()
