"""
Zoo API — Route Helpers
=========================

What:  Pagination query parameters and the paginated envelope builder
       shared by every list endpoint.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Type

from fastapi import Query
from pydantic import BaseModel

from zoo_api.schemas.common import ApiResponse, Pagination
from zoo_api.services.common import MAX_PAGE_SIZE


@dataclass
class PageParams:
    page: int
    limit: int
    sort: Optional[str]
    order: str


def page_params(
    page: int = Query(default=1, ge=1, description="Page number (1-based)"),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    sort: Optional[str] = Query(default=None, description="Field to sort by"),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
) -> PageParams:
    return PageParams(page=page, limit=limit, sort=sort, order=order)


def paginated(
    schema: Type[BaseModel],
    items: Iterable[Any],
    total: int,
    params: PageParams,
) -> ApiResponse:
    data: List[BaseModel] = [schema.model_validate(item) for item in items]
    return ApiResponse[List[schema]](
        data=data,
        pagination=Pagination.build(params.page, params.limit, total),
    )
