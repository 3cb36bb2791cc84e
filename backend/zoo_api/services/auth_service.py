"""
Zoo API — Authentication Service
==================================

What:  Accounts, password hashing, login with lockout and JWT issuance.
How:   bcrypt hashes (cost BCRYPT_ROUNDS) computed in a worker thread so the
       event loop keeps serving; PyJWT HS256 bearer tokens carrying the user
       id (`sub`) and role.
Who:   Auth routes; zoo_api.dependencies decodes tokens on every protected
       request; the lifespan creates the bootstrap admin.

Lockout:
    Each wrong password increments failed_login_attempts. Reaching
    MAX_LOGIN_ATTEMPTS sets lock_until = now + LOCKOUT_MINUTES and resets
    the counter; while locked every login is refused, even with the right
    password. A successful login clears both.
"""

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

import bcrypt
import jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.config import settings
from zoo_api.exceptions import AuthenticationError, DuplicateKeyError, ValidationError
from zoo_api.models.user import User
from zoo_api.models.types import utcnow
from zoo_api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UserCreate,
    is_login_email,
)
from zoo_api.services.common import database_error, flush_unique

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

INVALID_CREDENTIALS = "Invalid email or password"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user: User) -> Tuple[str, int]:
    """Signed bearer token for `user` and its lifetime in seconds."""
    now = utcnow()
    lifetime = timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "iat": now,
        "exp": now + lifetime,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verifies signature and expiry.

    Raises:
        AuthenticationError: Expired, tampered or otherwise unreadable token
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(message="Invalid token", context={"reason": str(e)})
    return payload


class AuthService:

    async def _by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def _create(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        role: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        if await self._by_email(db, email) is not None:
            raise DuplicateKeyError(field="email", value=email)
        password_hash = await asyncio.to_thread(hash_password, password)
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
            failed_login_attempts=0,
        )
        db.add(user)
        await flush_unique(db, "email", email)
        logger.info("User created: %s (role=%s)", user.email, user.role)
        return user

    async def register(self, db: AsyncSession, data: RegisterRequest) -> User:
        """Self-service sign-up; always creates a visitor account."""
        try:
            return await self._create(
                db, data.email, data.password, "visitor", data.first_name, data.last_name
            )
        except Exception as e:
            raise database_error("register the account", e)

    async def create_user(self, db: AsyncSession, data: UserCreate) -> User:
        """Admin-only: creates an account with any role."""
        try:
            return await self._create(
                db, data.email, data.password, data.role, data.first_name, data.last_name
            )
        except Exception as e:
            raise database_error("create the user", e)

    async def login(self, db: AsyncSession, data: LoginRequest) -> Tuple[str, int, User]:
        """
        Checks credentials and returns (token, expires_in, user).

        Raises:
            AuthenticationError: Unknown email, wrong password, disabled or
                                 locked account (the message does not say
                                 which of the first two it was)
        """
        try:
            user = await self._by_email(db, data.email)
            if user is None:
                logger.warning("Login failed for unknown email %s", data.email)
                raise AuthenticationError(message=INVALID_CREDENTIALS)
            if not user.is_active:
                logger.warning("Login refused for disabled account %s", user.email)
                raise AuthenticationError(message="Account is disabled")

            now = utcnow()
            if user.is_locked(now):
                logger.warning("Login refused for locked account %s", user.email)
                raise AuthenticationError(
                    message="Account is temporarily locked after repeated failed logins",
                    context={"lock_until": user.lock_until.isoformat()},
                )

            if not await asyncio.to_thread(verify_password, data.password, user.password_hash):
                await self._record_failure(db, user, now)
                raise AuthenticationError(message=INVALID_CREDENTIALS)

            user.failed_login_attempts = 0
            user.lock_until = None
            user.last_login = now
            await db.flush()

            token, expires_in = create_access_token(user)
            logger.info("User logged in: %s", user.email)
            return token, expires_in, user
        except Exception as e:
            raise database_error("log in", e)

    async def _record_failure(self, db: AsyncSession, user: User, now) -> None:
        user.failed_login_attempts += 1
        if user.failed_login_attempts >= settings.max_login_attempts:
            user.lock_until = now + timedelta(minutes=settings.lockout_minutes)
            user.failed_login_attempts = 0
            logger.warning(
                "Account %s locked for %d minutes after %d failed logins",
                user.email, settings.lockout_minutes, settings.max_login_attempts,
            )
        else:
            logger.warning(
                "Failed login for %s (%d/%d)",
                user.email, user.failed_login_attempts, settings.max_login_attempts,
            )
        # The request ends in 401 and its transaction is rolled back, so the
        # counter is committed here.
        await db.commit()

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        return await db.get(User, user_id)

    async def change_password(
        self, db: AsyncSession, user: User, data: ChangePasswordRequest
    ) -> None:
        try:
            if not await asyncio.to_thread(verify_password, data.current_password, user.password_hash):
                raise ValidationError(
                    message="Current password is incorrect", field="current_password"
                )
            if data.new_password == data.current_password:
                raise ValidationError(
                    message="New password must differ from the current one", field="new_password"
                )
            user.password_hash = await asyncio.to_thread(hash_password, data.new_password)
            await db.flush()
            logger.info("Password changed for %s", user.email)
        except Exception as e:
            raise database_error("change the password", e)

    async def ensure_bootstrap_admin(self, db: AsyncSession) -> Optional[User]:
        """
        Creates the admin named by BOOTSTRAP_ADMIN_EMAIL / _PASSWORD if both
        are set and no account with that email exists yet. The address must
        pass the same check as a login (no reserved domains such as .test).
        """
        email = settings.bootstrap_admin_email.strip().lower()
        if not email or not settings.bootstrap_admin_password:
            return None
        if not is_login_email(email):
            raise ValidationError(
                message=f"BOOTSTRAP_ADMIN_EMAIL {email!r} is not an address that can log in",
                field="bootstrap_admin_email",
            )
        if await self._by_email(db, email) is not None:
            return None
        user = await self._create(db, email, settings.bootstrap_admin_password, "admin")
        logger.info("Bootstrap admin account created: %s", email)
        return user


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
