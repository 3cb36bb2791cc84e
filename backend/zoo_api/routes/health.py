"""
Zoo API — Health Check Route
==============================

What:  Liveness/readiness probe for the orchestrator and load balancer.
How:   Runs SELECT 1 against the database and reads the mail circuit
       breaker. The database is critical (503 when down); mail is a side
       channel, so problems there only mark the service as degraded.

Status levels:
    healthy     database up, mail relay usable or disabled by config
    degraded    database up, mail circuit open
    unhealthy   database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from zoo_api import __version__
from zoo_api.config import settings
from zoo_api.database import engine
from zoo_api.schemas.common import HealthResponse
from zoo_api.services.mail_service import CircuitBreaker, mail_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/api/health", response_model=HealthResponse, summary="Service health check")
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    if not settings.mail_enabled:
        mail_status = "disabled"
    elif mail_service.circuit_breaker.state == CircuitBreaker.OPEN:
        mail_status = "circuit_open"
        if overall == "healthy":
            overall = "degraded"
    else:
        mail_status = "available"

    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        mail=mail_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
