"""
Zoo API — Shared Query Helpers
================================

What:  Small building blocks every resource service uses: offset pagination,
       whitelisted sorting, `q` search and the not-found / database-error
       conversions.
How:   Plain async functions over an AsyncSession. They raise the
       application's own exceptions so the global handlers can answer with
       the right status code.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import Select, asc, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.exceptions import DatabaseError, DuplicateKeyError, NotFoundError, ZooError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

MAX_PAGE_SIZE = 100


async def get_or_404(
    db: AsyncSession,
    model: Type[ModelT],
    object_id: uuid.UUID,
    resource: str,
) -> ModelT:
    """Primary-key lookup that raises NotFoundError instead of returning None."""
    instance = await db.get(model, object_id)
    if instance is None:
        raise NotFoundError(resource=resource, resource_id=str(object_id))
    return instance


def search_filter(q: Optional[str], *columns: Any):
    """Case-insensitive substring match of `q` against any of `columns`."""
    if not q or not q.strip():
        return None
    pattern = f"%{q.strip()}%"
    return or_(*(column.ilike(pattern) for column in columns))


def apply_sort(
    query: Select,
    model: Any,
    sort: Optional[str],
    order: str,
    allowed: Sequence[str],
    default: str = "created_at",
) -> Select:
    """Orders by `sort` when it is whitelisted, otherwise by `default`."""
    field = sort if sort in allowed else default
    column = getattr(model, field)
    return query.order_by(asc(column) if order == "asc" else desc(column))


async def fetch_page(
    db: AsyncSession,
    query: Select,
    page: int,
    limit: int,
) -> Tuple[List[Any], int]:
    """
    One page of `query` plus the total number of matching rows.

    The count runs over the unordered, unpaged query wrapped as a subquery,
    so it honours every filter the caller added.
    """
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    page = max(1, page)
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total


async def count_where(db: AsyncSession, model: Any, *criteria: Any) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar() or 0


def apply_changes(instance: Any, changes: Dict[str, Any]) -> List[str]:
    """Copies the given fields onto an ORM object; returns the names changed."""
    changed = []
    for field, value in changes.items():
        if getattr(instance, field) != value:
            setattr(instance, field, value)
            changed.append(field)
    return changed


async def flush_unique(db: AsyncSession, field: str, value: Optional[str] = None) -> None:
    """
    Flushes pending writes, turning a unique-constraint violation into
    DuplicateKeyError. Pre-checks catch the common case; this catches the
    race where two requests pass the pre-check together.
    """
    try:
        await db.flush()
    except IntegrityError as e:
        logger.warning("Unique constraint hit on %s: %s", field, e.orig)
        raise DuplicateKeyError(field=field, value=value)


def database_error(action: str, error: Exception, **context: Any) -> ZooError:
    """
    What:  Converts an unexpected exception into the error a service raises.
    How:   Application errors pass through unchanged; anything else is logged
           with its traceback and wrapped in a generic DatabaseError.
    """
    if isinstance(error, ZooError):
        return error
    logger.error("Database error while trying to %s: %s", action, error, exc_info=error)
    context["error_type"] = type(error).__name__
    return DatabaseError(
        message=f"Could not {action}. Please try again.",
        context=context,
    )
