"""
Zoo API — Feeding Service
===========================

What:  Feeding schedule entries and their completion.
How:   The animal's name and exhibit are copied onto the feeding when it is
       scheduled. "Today" and "pending" are calendar-day views in the zoo
       timezone.
Who:   Feeding routes and POST /api/animals/{id}/feeding.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.config import settings
from zoo_api.exceptions import ValidationError
from zoo_api.models.animal import Animal
from zoo_api.models.feeding import Feeding
from zoo_api.models.types import utcnow
from zoo_api.schemas.feeding import AnimalFeedingCreate, FeedingComplete, FeedingUpdate
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

SORTABLE_FIELDS = ("feeding_date", "scheduled_time", "food_type", "created_at")


class FeedingService:

    async def schedule_feeding(
        self,
        db: AsyncSession,
        animal_id: uuid.UUID,
        data: AnimalFeedingCreate,
    ) -> Feeding:
        try:
            animal = await get_or_404(db, Animal, animal_id, "animal")
            payload = data.model_dump(exclude={"animal_id"})
            payload["feeding_date"] = payload.get("feeding_date") or rules.zoo_today(
                settings.zoo_timezone
            )
            feeding = Feeding(
                **payload,
                animal_id=animal.id,
                animal_name=animal.name,
                exhibit_id=animal.exhibit_id,
            )
            db.add(feeding)
            await db.flush()
            logger.info(
                "Feeding scheduled for %s on %s at %s",
                animal.name, feeding.feeding_date, feeding.scheduled_time,
            )
            return feeding
        except Exception as e:
            raise database_error("schedule the feeding", e, animal_id=str(animal_id))

    async def list_feedings(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        animal_id: Optional[uuid.UUID] = None,
        exhibit_id: Optional[uuid.UUID] = None,
        feeding_date: Optional[date] = None,
        completed: Optional[bool] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[Feeding], int]:
        try:
            query = select(Feeding)
            if animal_id:
                query = query.where(Feeding.animal_id == animal_id)
            if exhibit_id:
                query = query.where(Feeding.exhibit_id == exhibit_id)
            if feeding_date:
                query = query.where(Feeding.feeding_date == feeding_date)
            if completed is not None:
                query = query.where(Feeding.completed == completed)
            match = search_filter(q, Feeding.animal_name, Feeding.food_type)
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, Feeding, sort, order, SORTABLE_FIELDS, default="feeding_date")
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve feedings", e)

    async def todays_feedings(
        self, db: AsyncSession, pending_only: bool = False
    ) -> List[Feeding]:
        """Today's round ordered by scheduled time; optionally only the open ones."""
        try:
            today = rules.zoo_today(settings.zoo_timezone)
            query = select(Feeding).where(Feeding.feeding_date == today)
            if pending_only:
                query = query.where(Feeding.completed.is_(False))
            result = await db.execute(query.order_by(Feeding.scheduled_time, Feeding.animal_name))
            return list(result.scalars().all())
        except Exception as e:
            raise database_error("retrieve today's feedings", e)

    async def get_feeding(self, db: AsyncSession, feeding_id: uuid.UUID) -> Feeding:
        try:
            return await get_or_404(db, Feeding, feeding_id, "feeding")
        except Exception as e:
            raise database_error("retrieve the feeding", e, feeding_id=str(feeding_id))

    async def update_feeding(
        self, db: AsyncSession, feeding_id: uuid.UUID, data: FeedingUpdate
    ) -> Feeding:
        try:
            feeding = await get_or_404(db, Feeding, feeding_id, "feeding")
            if feeding.completed:
                raise ValidationError(
                    message="A completed feeding can no longer be changed",
                    field="completed",
                )
            apply_changes(feeding, data.model_dump(exclude_unset=True, exclude_none=True))
            await db.flush()
            return feeding
        except Exception as e:
            raise database_error("update the feeding", e, feeding_id=str(feeding_id))

    async def complete_feeding(
        self,
        db: AsyncSession,
        feeding_id: uuid.UUID,
        data: FeedingComplete,
        completed_by: str,
    ) -> Feeding:
        """
        Marks a feeding as done.

        Args:
            completed_by: Fallback keeper name when the body does not give one
                          (the route passes the caller's email)
        """
        try:
            feeding = await get_or_404(db, Feeding, feeding_id, "feeding")
            if feeding.completed:
                raise ValidationError(
                    message="Feeding has already been completed",
                    field="completed",
                    context={"completed_at": feeding.completed_at.isoformat()
                             if feeding.completed_at else None},
                )
            feeding.completed = True
            feeding.completed_by = data.completed_by or completed_by
            feeding.completed_at = utcnow()
            if data.notes:
                feeding.notes = data.notes
            await db.flush()
            logger.info("Feeding %s completed by %s", feeding_id, feeding.completed_by)
            return feeding
        except Exception as e:
            raise database_error("complete the feeding", e, feeding_id=str(feeding_id))

    async def delete_feeding(self, db: AsyncSession, feeding_id: uuid.UUID) -> None:
        try:
            feeding = await get_or_404(db, Feeding, feeding_id, "feeding")
            await db.delete(feeding)
            await db.flush()
        except Exception as e:
            raise database_error("delete the feeding", e, feeding_id=str(feeding_id))


# ── Singleton Instance ────────────────────────────────────────────────────
feeding_service = FeedingService()
