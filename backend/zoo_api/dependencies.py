"""
Zoo API — Authentication Dependencies
=======================================

What:  FastAPI dependencies that resolve the caller from a bearer token and
       enforce role checks.
How:   HTTPBearer extracts the token (auto_error=False so a missing header
       becomes our own 401 body), AuthService decodes it, and the user is
       loaded from the database so a deactivated account or a changed role
       takes effect immediately.
Who:   Every protected route, via `Depends(get_current_user)` or
       `Depends(require_roles("admin", ...))`.

Example:
    @router.delete("/animals/{animal_id}")
    async def delete_animal(
        animal_id: UUID,
        user: User = Depends(require_roles("admin")),
        db: AsyncSession = Depends(get_db_session),
    ): ...
"""

import logging
import uuid
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.exceptions import AuthenticationError, PermissionDeniedError
from zoo_api.models.user import User
from zoo_api.services.auth_service import auth_service, decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Raises:
        AuthenticationError: No token, bad token, or the account is gone or
                             disabled
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Authentication required")

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationError(message="Invalid token")

    user = await auth_service.get_user(db, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError(message="Account not found or disabled")
    return user


def require_roles(*roles: str) -> Callable:
    """
    Dependency factory: the caller must be authenticated and hold one of
    `roles`. With no roles given any authenticated user passes.
    """

    async def checker(user: User = Depends(get_current_user)) -> User:
        if roles and user.role not in roles:
            logger.warning(
                "Permission denied for %s (role=%s); requires one of %s",
                user.email, user.role, ", ".join(roles),
            )
            raise PermissionDeniedError(role=user.role, allowed_roles=roles)
        return user

    return checker


# ── Role Groups ───────────────────────────────────────────────────────────
ADMIN = ("admin",)
MANAGEMENT = ("admin", "manager")
VETERINARY = ("admin", "veterinarian")
ANIMAL_CARE = ("admin", "veterinarian", "animal_care")
HEALTH_REPORTING = ("admin", "manager", "veterinarian")
