"""
Zoo API — Rate Limiting Middleware
====================================

What:  Per-IP sliding window rate limiter.
How:   Each client IP keeps a list of request timestamps. Timestamps older
       than RATE_LIMIT_WINDOW seconds are dropped on every request; when
       RATE_LIMIT_REQUESTS remain the request is answered with 429 and a
       Retry-After header computed from the oldest timestamp.

Scope:
    State is in process memory, so every worker enforces its own limit.
    Behind a reverse proxy the client IP is the proxy's unless the server
    is run with --proxy-headers.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from zoo_api.config import settings
from zoo_api.exceptions import RateLimitExceededError
from zoo_api.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Args:
        max_requests: Override RATE_LIMIT_REQUESTS (tests use a small value)
        window:       Override RATE_LIMIT_WINDOW in seconds
        clock:        Time source; tests inject a fake one
    """

    EXCLUDED_PATHS = {"/api/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: int = 0,
        window: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self._clock()
        window_start = now - self.window

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip, len(timestamps), self.window,
            )
            error = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "rate_limit_exceeded",
                    "message": error.message,
                    "request_id": request_id_var.get(""),
                    "details": error.context,
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
