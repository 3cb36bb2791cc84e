"""
Zoo API — Exhibit Service (Capacity Guard & Occupancy Sync)
=============================================================

What:  Exhibit CRUD plus the two operations every animal move goes through:
       the capacity guard (reserve_slot) and the occupancy synchronizer
       (sync_animal_count).
Who:   Exhibit routes; AnimalService for create, move and delete.
When:  On every write that changes which exhibit an animal belongs to.

Assignment flow (create, move, POST /exhibits/{id}/animals/{animal_id}):
    ┌──────────────────┐   ┌───────────────────┐   ┌──────────────────────┐
    │  reserve_slot    │──▶│  animal.exhibit_id│──▶│  sync_animal_count   │
    │  (conditional    │   │  = target, flush  │   │  (target and source) │
    │   UPDATE +1)     │   └───────────────────┘   └──────────────────────┘
    └──────────────────┘
        │ 0 rows matched
        ▼
    NotFoundError (no such exhibit) or CapacityExceededError (full);
    nothing has been written.

Concurrency:
    reserve_slot is one statement:
        UPDATE exhibits SET animal_count = animal_count + 1
        WHERE id = :id AND animal_count < animal_capacity
    The row lock it takes serializes competing assignments, so two requests
    cannot both claim the last slot from a stale read. sync_animal_count then
    rewrites the cached count from COUNT(*) over animals, which also repairs
    any drift. It locks the row with SELECT ... FOR UPDATE before counting,
    so a source exhibit recounted after a competing insert commits sees
    that animal.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.config import settings
from zoo_api.exceptions import CapacityExceededError, NotFoundError, ValidationError
from zoo_api.models.animal import Animal
from zoo_api.models.exhibit import Exhibit
from zoo_api.models.types import utcnow
from zoo_api.schemas.exhibit import (
    ExhibitCreate,
    ExhibitStats,
    ExhibitTypeStats,
    ExhibitUpdate,
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

SORTABLE_FIELDS = ("name", "type", "status", "animal_count", "animal_capacity", "created_at")


class ExhibitService:
    """
    Business logic for exhibits.

    Responsibilities:
        - reserve_slot() / sync_animal_count(): capacity guard and cache sync
        - assign_animal(): move an existing animal into an exhibit
        - create/update/deactivate, inspections, listing and statistics
    """

    # ══════════════════════════════════════════════════════════════════════
    # Capacity guard & occupancy synchronizer
    # ══════════════════════════════════════════════════════════════════════

    async def reserve_slot(self, db: AsyncSession, exhibit_id: uuid.UUID) -> None:
        """
        Claims one animal slot in an exhibit, or fails without writing.

        Raises:
            NotFoundError: No exhibit with this id
            CapacityExceededError: animal_count >= animal_capacity
        """
        result = await db.execute(
            update(Exhibit)
            .where(Exhibit.id == exhibit_id, Exhibit.animal_count < Exhibit.animal_capacity)
            .values(animal_count=Exhibit.animal_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        exhibit = await db.get(Exhibit, exhibit_id)
        if exhibit is None:
            raise NotFoundError(resource="exhibit", resource_id=str(exhibit_id))
        logger.info(
            "Capacity guard rejected assignment to exhibit %s (%d/%d)",
            exhibit_id, exhibit.animal_count, exhibit.animal_capacity,
        )
        raise CapacityExceededError(exhibit_id=str(exhibit_id), capacity=exhibit.animal_capacity)

    async def sync_animal_count(self, db: AsyncSession, exhibit_id: uuid.UUID) -> int:
        """
        Sets exhibits.animal_count to the number of animals referencing the
        exhibit and returns it. Any in-session Exhibit instance is refreshed.

        The row is locked before counting, so the count runs on a snapshot
        that includes animals committed by earlier holders of the lock.
        """
        locked = await db.execute(
            select(Exhibit.id).where(Exhibit.id == exhibit_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            return 0
        true_count = (
            select(func.count(Animal.id))
            .where(Animal.exhibit_id == exhibit_id)
            .scalar_subquery()
        )
        await db.execute(
            update(Exhibit)
            .where(Exhibit.id == exhibit_id)
            .values(animal_count=true_count)
            .execution_options(synchronize_session=False)
        )
        exhibit = await db.get(Exhibit, exhibit_id)
        if exhibit is None:
            return 0
        await db.refresh(exhibit)
        return exhibit.animal_count

    async def assign_animal(
        self,
        db: AsyncSession,
        exhibit_id: uuid.UUID,
        animal_id: uuid.UUID,
    ) -> Animal:
        """
        Moves an animal into `exhibit_id` through the capacity guard.

        Assigning an animal to the exhibit it already lives in is a no-op.
        """
        try:
            animal = await get_or_404(db, Animal, animal_id, "animal")
            if animal.exhibit_id == exhibit_id:
                await get_or_404(db, Exhibit, exhibit_id, "exhibit")
                return animal
            await self.move_animal(db, animal, exhibit_id)
            return animal
        except Exception as e:
            raise database_error("assign the animal", e, exhibit_id=str(exhibit_id))

    async def move_animal(self, db: AsyncSession, animal: Animal, target_id: uuid.UUID) -> None:
        source_id = animal.exhibit_id
        await self.reserve_slot(db, target_id)
        animal.exhibit_id = target_id
        await db.flush()
        await self.sync_animal_count(db, target_id)
        await self.sync_animal_count(db, source_id)
        logger.info("Animal %s moved from exhibit %s to %s", animal.id, source_id, target_id)

    # ══════════════════════════════════════════════════════════════════════
    # CRUD
    # ══════════════════════════════════════════════════════════════════════

    async def list_exhibits(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        type: Optional[str] = None,
        status: Optional[str] = None,
        theme: Optional[str] = None,
        is_active: Optional[bool] = None,
        q: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "desc",
    ) -> Tuple[List[Exhibit], int]:
        try:
            query = select(Exhibit)
            if type:
                query = query.where(Exhibit.type == type)
            if status:
                query = query.where(Exhibit.status == status)
            if theme:
                query = query.where(Exhibit.theme.ilike(theme))
            if is_active is not None:
                query = query.where(Exhibit.is_active == is_active)
            match = search_filter(q, Exhibit.name, Exhibit.theme, Exhibit.description)
            if match is not None:
                query = query.where(match)
            query = apply_sort(query, Exhibit, sort, order, SORTABLE_FIELDS)
            return await fetch_page(db, query, page, limit)
        except Exception as e:
            raise database_error("retrieve exhibits", e)

    async def get_exhibit(self, db: AsyncSession, exhibit_id: uuid.UUID) -> Exhibit:
        try:
            return await get_or_404(db, Exhibit, exhibit_id, "exhibit")
        except Exception as e:
            raise database_error("retrieve the exhibit", e, exhibit_id=str(exhibit_id))

    async def get_exhibit_with_animals(
        self, db: AsyncSession, exhibit_id: uuid.UUID
    ) -> Tuple[Exhibit, List[Animal]]:
        try:
            exhibit = await get_or_404(db, Exhibit, exhibit_id, "exhibit")
            result = await db.execute(
                select(Animal).where(Animal.exhibit_id == exhibit_id).order_by(Animal.name)
            )
            return exhibit, list(result.scalars().all())
        except Exception as e:
            raise database_error("retrieve the exhibit", e, exhibit_id=str(exhibit_id))

    async def create_exhibit(self, db: AsyncSession, data: ExhibitCreate) -> Exhibit:
        try:
            exhibit = Exhibit(**data.model_dump(), animal_count=0, visitor_count=0)
            exhibit.next_inspection = rules.next_check_after(
                data.last_inspection, settings.inspection_interval_months
            )
            db.add(exhibit)
            await db.flush()
            logger.info("Exhibit created: %s (%s, capacity=%d)", exhibit.name, exhibit.id,
                        exhibit.animal_capacity)
            return exhibit
        except Exception as e:
            raise database_error("create the exhibit", e)

    async def update_exhibit(
        self, db: AsyncSession, exhibit_id: uuid.UUID, data: ExhibitUpdate
    ) -> Exhibit:
        """
        Applies a partial update.

        Capacity may not drop below the animals currently housed, and
        visitor_count may not exceed visitor_capacity. is_active=False follows
        the deactivate_exhibit rule: refused while animals remain. A new
        last_inspection moves next_inspection with it.
        """
        try:
            exhibit = await get_or_404(db, Exhibit, exhibit_id, "exhibit")
            changes = data.model_dump(exclude_unset=True, exclude_none=True)

            capacity = changes.get("animal_capacity", exhibit.animal_capacity)
            if capacity < exhibit.animal_count:
                raise ValidationError(
                    message=(
                        f"Animal capacity cannot be lower than the {exhibit.animal_count} "
                        f"animals currently in the exhibit"
                    ),
                    field="animal_capacity",
                )
            visitor_capacity = changes.get("visitor_capacity", exhibit.visitor_capacity)
            visitor_count = changes.get("visitor_count", exhibit.visitor_count)
            if visitor_count > visitor_capacity:
                raise ValidationError(
                    message="Visitor count cannot exceed visitor capacity",
                    field="visitor_count",
                )

            if changes.get("is_active") is False and exhibit.is_active:
                housed = await self.sync_animal_count(db, exhibit_id)
                if housed > 0:
                    raise ValidationError(
                        message="Cannot deactivate an exhibit that still houses animals. Relocate them first.",
                        field="is_active",
                        context={"animal_count": housed},
                    )

            changed = apply_changes(exhibit, changes)
            if "last_inspection" in changed:
                exhibit.next_inspection = rules.next_check_after(
                    exhibit.last_inspection, settings.inspection_interval_months
                )
            await db.flush()
            logger.info("Exhibit %s updated: %s", exhibit_id, ", ".join(changed) or "no changes")
            return exhibit
        except Exception as e:
            raise database_error("update the exhibit", e, exhibit_id=str(exhibit_id))

    async def record_inspection(
        self,
        db: AsyncSession,
        exhibit_id: uuid.UUID,
        inspected_at: Optional[datetime] = None,
    ) -> Exhibit:
        try:
            exhibit = await get_or_404(db, Exhibit, exhibit_id, "exhibit")
            exhibit.last_inspection = inspected_at or utcnow()
            exhibit.next_inspection = rules.next_check_after(
                exhibit.last_inspection, settings.inspection_interval_months
            )
            await db.flush()
            return exhibit
        except Exception as e:
            raise database_error("record the inspection", e, exhibit_id=str(exhibit_id))

    async def deactivate_exhibit(self, db: AsyncSession, exhibit_id: uuid.UUID) -> Exhibit:
        """
        DELETE /exhibits/{id}: closes an empty exhibit.

        Exhibits are never hard-deleted (feedings keep referencing them);
        one that still houses animals is rejected.
        """
        try:
            exhibit = await get_or_404(db, Exhibit, exhibit_id, "exhibit")
            housed = await self.sync_animal_count(db, exhibit_id)
            if housed > 0:
                raise ValidationError(
                    message="Cannot delete an exhibit that still houses animals. Relocate them first.",
                    field="animal_count",
                    context={"animal_count": housed},
                )
            exhibit.is_active = False
            exhibit.status = "closed"
            await db.flush()
            logger.info("Exhibit deactivated: %s (%s)", exhibit.name, exhibit_id)
            return exhibit
        except Exception as e:
            raise database_error("delete the exhibit", e, exhibit_id=str(exhibit_id))

    async def exhibit_stats(self, db: AsyncSession) -> ExhibitStats:
        try:
            totals = (
                await db.execute(
                    select(
                        func.count(Exhibit.id),
                        func.coalesce(func.sum(Exhibit.animal_capacity), 0),
                        func.coalesce(func.sum(Exhibit.animal_count), 0),
                    )
                )
            ).one()
            active = (
                await db.execute(select(func.count(Exhibit.id)).where(Exhibit.is_active.is_(True)))
            ).scalar() or 0
            open_count = (
                await db.execute(
                    select(func.count(Exhibit.id)).where(
                        Exhibit.status == "open", Exhibit.is_active.is_(True)
                    )
                )
            ).scalar() or 0

            by_type_rows = await db.execute(
                select(
                    Exhibit.type,
                    func.count(Exhibit.id),
                    func.coalesce(func.sum(Exhibit.animal_capacity), 0),
                    func.coalesce(func.sum(Exhibit.animal_count), 0),
                )
                .group_by(Exhibit.type)
                .order_by(Exhibit.type)
            )
            by_type = [
                ExhibitTypeStats(
                    type=row[0],
                    count=row[1],
                    animal_capacity=int(row[2]),
                    animal_count=int(row[3]),
                    occupancy_rate=rules.occupancy_percentage(int(row[3]), int(row[2])),
                )
                for row in by_type_rows.all()
            ]

            total, capacity, animals = totals[0], int(totals[1]), int(totals[2])
            return ExhibitStats(
                total=total,
                active=active,
                open=open_count,
                total_animal_capacity=capacity,
                total_animals=animals,
                occupancy_rate=rules.occupancy_percentage(animals, capacity),
                by_type=by_type,
            )
        except Exception as e:
            raise database_error("compute exhibit statistics", e)


# ── Singleton Instance ────────────────────────────────────────────────────
exhibit_service = ExhibitService()
