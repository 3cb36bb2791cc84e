"""
Zoo API — Shared Response Schemas
===================================

What:  The response envelope every endpoint returns, plus error and health
       payloads.

Envelope:
    Success:  {"success": true, "data": ..., "message"?: ..., "pagination"?: {...}}
    Error:    {"success": false, "error": ..., "message": ..., "details"?: ...,
               "request_id": ...}

Pagination is offset based ({page, limit, total, pages}); list endpoints
accept `page` and `limit` query parameters.
"""

import math
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Pagination(BaseModel):
    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Items per page")
    total: int = Field(description="Total number of matching items")
    pages: int = Field(description="Total number of pages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = math.ceil(total / limit) if limit else 0
        return cls(page=page, limit=limit, total=total, pages=pages)


class ApiResponse(BaseModel, Generic[T]):
    """
    What:  Success envelope shared by all endpoints.
    How:   Parametrized by the payload type, e.g. ApiResponse[AnimalResponse]
           or ApiResponse[List[AnimalResponse]], so OpenAPI documents the
           concrete shape of `data`.
    """
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "error": "capacity_exceeded",
            "message": "Exhibit is at full animal capacity (2 animals)",
            "details": {"exhibit_id": "...", "capacity": 2},
            "request_id": "a1b2c3d4"
        }
    """
    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    mail: str = Field(description="Mail relay: available, disabled, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
