"""
Zoo API — Request ID Middleware
=================================

What:  Gives each request a short correlation id and returns it in the
       X-Request-ID response header.
How:   A client-supplied X-Request-ID is kept (so gate terminals and the
       staff app can trace their own calls); otherwise the first 8 chars of
       a UUID4 are used. The id lives in a ContextVar for loggers and the
       error handlers, and on request.state for route handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_CLIENT_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER, "")[:MAX_CLIENT_ID_LENGTH]
        if not rid:
            rid = str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
