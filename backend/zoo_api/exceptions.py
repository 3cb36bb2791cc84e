"""
Zoo API — Custom Exception Hierarchy
======================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, dependencies and middleware; caught by global handlers.
When:  During request processing when a business rule or collaborator fails.

Exception Hierarchy:
    ZooError (base)
    ├── ValidationError            → 400 Bad Request (client can fix)
    ├── TicketNotValidTodayError   → 400 Bad Request (ticket is for another day)
    ├── AuthenticationError        → 401 Unauthorized
    ├── PermissionDeniedError      → 403 Forbidden
    ├── NotFoundError              → 404 Not Found
    ├── ConflictError              → 409 Conflict
    │   ├── CapacityExceededError  → exhibit has no free animal slot
    │   ├── DuplicateKeyError      → unique field already taken
    │   ├── TicketAlreadyUsedError → ticket was validated before
    │   └── TicketFinalizedError   → used/refunded ticket cannot change
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── DatabaseError              → 500 Internal Server Error
    ├── FileStorageError           → 500 Internal Server Error
    ├── MailDeliveryError          → never surfaced (logged by the mail path)
    └── CircuitBreakerOpenError    → never surfaced (logged by the mail path)
"""

from datetime import datetime
from typing import Any, Dict, Optional


class ZooError(Exception):
    """
    Base exception for all Zoo API errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only where the
                  handler explicitly exposes it as `details`)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ZooError):
    """
    Raised when client input fails a business-rule validation.

    HTTP:    400 Bad Request

    Schema-level problems (wrong types, missing fields) are caught earlier by
    FastAPI and re-shaped into the same error body by the handler in main.py.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(ZooError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that into
    this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class AuthenticationError(ZooError):
    """Missing, malformed, expired or revoked credentials. HTTP 401."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(ZooError):
    """
    The caller is authenticated but their role may not perform the action.

    HTTP:    403 Forbidden
    Context: the caller's role and the roles that would have been accepted.
    """

    def __init__(
        self,
        role: str = "",
        allowed_roles: Optional[tuple] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "You do not have permission to perform this action"
        ctx = context or {}
        ctx["role"] = role
        if allowed_roles:
            ctx["allowed_roles"] = list(allowed_roles)
        super().__init__(message=message, context=ctx)


class ConflictError(ZooError):
    """Base for 409 outcomes: the request is valid but clashes with stored state."""


class CapacityExceededError(ConflictError):
    """
    Raised by the capacity guard when an exhibit has no free animal slot.

    The exhibit is left untouched: the guard's conditional update matched no
    row, so nothing was written.
    """

    def __init__(
        self,
        exhibit_id: str,
        capacity: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Exhibit is at full animal capacity"
        if capacity is not None:
            message = f"Exhibit is at full animal capacity ({capacity} animals)"
        ctx = context or {}
        ctx["exhibit_id"] = exhibit_id
        if capacity is not None:
            ctx["capacity"] = capacity
        super().__init__(message=message, context=ctx)


class DuplicateKeyError(ConflictError):
    """A unique field (email, ticket id, employee id, microchip) is already taken."""

    def __init__(
        self,
        field: str,
        value: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"A record with this {field} already exists"
        ctx = context or {}
        ctx["field"] = field
        if value is not None:
            ctx["value"] = value
        super().__init__(message=message, context=ctx)
        self.field = field


class TicketAlreadyUsedError(ConflictError):
    """
    Raised when a ticket that has already been validated is presented again.

    `used_at` is returned to the caller so gate staff can see when the
    ticket was first admitted.
    """

    def __init__(
        self,
        ticket_id: str,
        used_at: Optional[datetime] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["ticket_id"] = ticket_id
        if used_at is not None:
            ctx["used_at"] = used_at.isoformat()
        super().__init__(message="Ticket has already been used", context=ctx)
        self.used_at = used_at


class TicketFinalizedError(ConflictError):
    """A used or refunded ticket is terminal: no update, delete, refund or reuse."""

    def __init__(
        self,
        ticket_id: str,
        reason: str = "used",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["ticket_id"] = ticket_id
        ctx["reason"] = reason
        super().__init__(
            message=f"Ticket is {reason} and can no longer be modified",
            context=ctx,
        )


class TicketNotValidTodayError(ZooError):
    """The ticket's visit date is not today's calendar date in the zoo timezone. HTTP 400."""

    def __init__(
        self,
        ticket_id: str,
        visit_date: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["ticket_id"] = ticket_id
        if visit_date:
            ctx["visit_date"] = visit_date
        super().__init__(message="Ticket is not valid for today", context=ctx)


class DatabaseError(ZooError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info (SQL, constraint names) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(ZooError):
    """Could not write, read or delete an exported report file. HTTP 500."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MailDeliveryError(ZooError):
    """
    The SMTP relay rejected or failed a message.

    Never reaches a client: mail is a side effect of ticket issuance and
    registration, so the mail path logs and swallows it.
    """

    def __init__(
        self,
        message: str = "Mail delivery failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(ZooError):
    """Mail relay paused by the circuit breaker; recovery_time is in seconds."""

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Mail relay is temporarily disabled after repeated failures. "
            f"Delivery resumes in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class RateLimitExceededError(ZooError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes:
        - retry_after: Seconds until the rate limit window resets
        - Retry-After header for HTTP-compliant clients
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
