"""
Zoo API — FastAPI Application Factory
=======================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers.
Who:   uvicorn (uvicorn zoo_api.main:app); tests build their own app with
       create_app() and override the session dependency.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: Rate Limit → Request ID → Logging → GZip    │
    │              → CORS                                      │
    │                                                          │
    │  Routers (/api): auth, animals, exhibits, visitors,      │
    │                  tickets, health-records, feedings,      │
    │                  staff, reports + analytics, health      │
    │                                                          │
    │  Exception handlers: ZooError family → 400/401/403/404/  │
    │  409/429/500, request schema errors → 400, anything      │
    │  else → 500                                              │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, config validation, report directory, bootstrap admin
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from zoo_api import __version__
from zoo_api.config import settings
from zoo_api.database import async_session_factory, dispose_engine
from zoo_api.exceptions import (
    AuthenticationError,
    CapacityExceededError,
    ConflictError,
    DatabaseError,
    DuplicateKeyError,
    FileStorageError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    TicketAlreadyUsedError,
    TicketFinalizedError,
    TicketNotValidTodayError,
    ValidationError,
    ZooError,
)
from zoo_api.middleware.logging import RequestLoggingMiddleware
from zoo_api.middleware.rate_limit import RateLimitMiddleware
from zoo_api.middleware.request_id import RequestIDMiddleware, request_id_var
from zoo_api.routes import (
    animals,
    auth,
    exhibits,
    feedings,
    health,
    health_records,
    reports,
    staff,
    tickets,
    visitors,
)
from zoo_api.services.auth_service import auth_service
from zoo_api.services.report_storage import report_storage

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Root logger to stdout at LOG_LEVEL.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # The access log comes from RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Zoo API %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /api/health can report; the operator sees this at startup
        logger.error("Configuration error: %s", e)
        logger.error("Fix the configuration and restart the server.")

    report_storage.ensure_root()

    try:
        async with async_session_factory() as session:
            if await auth_service.ensure_bootstrap_admin(session):
                await session.commit()
    except Exception as e:
        logger.error("Could not create the bootstrap admin: %s", e, exc_info=True)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Zoo API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# Most specific first; the first isinstance match wins.
# (exception type, HTTP status, error code, expose context as `details`)
ERROR_TABLE: List[Tuple[Type[ZooError], int, str, bool]] = [
    (ValidationError, 400, "validation_error", True),
    (TicketNotValidTodayError, 400, "ticket_not_valid_today", True),
    (AuthenticationError, 401, "authentication_error", False),
    (PermissionDeniedError, 403, "permission_denied", True),
    (NotFoundError, 404, "not_found", True),
    (CapacityExceededError, 409, "capacity_exceeded", True),
    (DuplicateKeyError, 409, "duplicate_key", True),
    (TicketAlreadyUsedError, 409, "ticket_already_used", True),
    (TicketFinalizedError, 409, "ticket_finalized", True),
    (ConflictError, 409, "conflict", True),
    (RateLimitExceededError, 429, "rate_limit_exceeded", True),
    (FileStorageError, 500, "server_error", False),
    (DatabaseError, 500, "server_error", False),
]


def _error_body(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "success": False,
        "error": code,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps the ZooError family and request-schema failures onto the error
    envelope. Server-side failures return a generic message; their context
    is logged only.
    """

    @app.exception_handler(ZooError)
    async def handle_zoo_error(request: Request, exc: ZooError):
        rid = request_id_var.get("")
        for error_type, status_code, code, expose in ERROR_TABLE:
            if isinstance(exc, error_type):
                break
        else:
            status_code, code, expose = 500, "server_error", False

        headers: Dict[str, str] = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        if isinstance(exc, AuthenticationError):
            headers["WWW-Authenticate"] = "Bearer"

        if status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            message = exc.message if isinstance(exc, FileStorageError) else (
                "An internal error occurred. Please try again later."
            )
            return JSONResponse(status_code=status_code, content=_error_body(code, message))

        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=status_code,
            content=_error_body(code, exc.message, exc.context if expose else None),
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Schema failures (FastAPI's 422) re-shaped into the 400 error body."""
        rid = request_id_var.get("")
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", ""),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        first = errors[0] if errors else {"field": "", "message": "Invalid request"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, {"errors": errors}),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Zoo API",
        description=(
            "Zoo operations backend: animals and exhibits with capacity tracking, "
            "visitors and single-use tickets, veterinary and feeding schedules, "
            "staff directory and operational reports."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(animals.router)
    app.include_router(exhibits.router)
    app.include_router(visitors.router)
    app.include_router(tickets.router)
    app.include_router(health_records.router)
    app.include_router(feedings.router)
    app.include_router(staff.router)
    app.include_router(reports.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
