"""
Zoo API — Request Logging Middleware
======================================

What:  One access-log line per request with status and duration.
How:   Written to the "zoo_api.access" logger once the response exists.
       Level: 5xx → ERROR, 4xx or slower than SLOW_REQUEST_MS → WARNING,
       everything else INFO. The same fields go in `extra` for JSON log
       shippers.

Logged:      method, path, query flag, status, duration, client IP, request id
Not logged:  request bodies (visitor PII, passwords) and Authorization headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from zoo_api.middleware.request_id import request_id_var

logger = logging.getLogger("zoo_api.access")

# Probed every few seconds by the orchestrator
QUIET_PATHS = frozenset({"/api/health"})

SLOW_REQUEST_MS = 2000.0


def access_level(status_code: int, elapsed_ms: float) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 or elapsed_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "has_query": bool(request.url.query),
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            access_level(response.status_code, elapsed_ms),
            "%(method)s %(path)s → %(status)d in %(duration_ms).1fms [%(request_id)s] %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
