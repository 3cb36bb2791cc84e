"""
Zoo API — Middleware Package
==============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Rate limiting runs first so rejected requests cost nothing further.
    The request ID is set before the access log line is written, so both
    carry the same correlation id. Responses pass back through in reverse.
"""
