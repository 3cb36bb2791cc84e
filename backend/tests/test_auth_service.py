"""
Zoo API — Auth Service Tests
==============================

What:  Tests for registration, login lockout, token handling and password
       changes.
How:   Real in-memory SQLite session; tokens are forged with PyJWT where an
       expired or foreign signature is needed.

What we test:
    ✅ Self-registration always creates a visitor
    ✅ Emails are unique regardless of case
    ✅ Failed logins count up and lock the account at the limit
    ✅ A locked account refuses even the right password
    ✅ Tokens carry sub/role and are rejected when expired or tampered
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt
import pytest

from zoo_api.config import Settings, settings
from zoo_api.exceptions import AuthenticationError, DuplicateKeyError, ValidationError
from zoo_api.schemas.auth import ChangePasswordRequest, LoginRequest, RegisterRequest, UserCreate
from zoo_api.services.auth_service import (
    INVALID_CREDENTIALS,
    auth_service,
    decode_access_token,
    hash_password,
    verify_password,
)

EMAIL = "keeper@example.com"
PASSWORD = "banana-split"


async def register(db, email=EMAIL, password=PASSWORD):
    return await auth_service.register(db, RegisterRequest(email=email, password=password))


class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert verify_password(PASSWORD, hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_only_first_72_bytes_count(self):
        hashed = hash_password("a" * 72 + "tail")
        assert verify_password("a" * 72 + "different", hashed) is True

    def test_malformed_hash(self):
        assert verify_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestRegistration:

    def setup_method(self):
        self.service = auth_service

    @pytest.mark.asyncio
    async def test_register_creates_visitor(self, db_session):
        user = await register(db_session, email="Keeper@Example.com")

        assert user.role == "visitor"
        assert user.email == "keeper@example.com"
        assert user.password_hash != PASSWORD

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session):
        await register(db_session)
        with pytest.raises(DuplicateKeyError):
            await register(db_session, email="KEEPER@example.com")

    @pytest.mark.asyncio
    async def test_admin_creates_any_role(self, db_session):
        user = await self.service.create_user(
            db_session, UserCreate(email="vet@example.com", password=PASSWORD, role="veterinarian")
        )
        assert user.role == "veterinarian"


class TestLogin:

    def setup_method(self):
        self.service = auth_service

    @pytest.mark.asyncio
    async def test_login_returns_token(self, db_session):
        user = await register(db_session)

        token, expires_in, logged_in = await self.service.login(
            db_session, LoginRequest(email=EMAIL, password=PASSWORD)
        )

        payload = decode_access_token(token)
        assert payload["sub"] == str(user.id)
        assert payload["role"] == "visitor"
        assert expires_in == settings.jwt_expire_minutes * 60
        assert logged_in.last_login is not None

    @pytest.mark.asyncio
    async def test_unknown_email(self, db_session):
        with pytest.raises(AuthenticationError) as exc_info:
            await self.service.login(db_session, LoginRequest(email="nobody@example.com", password="x"))
        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_wrong_password_counts(self, db_session):
        user = await register(db_session)

        with pytest.raises(AuthenticationError) as exc_info:
            await self.service.login(db_session, LoginRequest(email=EMAIL, password="wrong"))

        assert exc_info.value.message == INVALID_CREDENTIALS
        assert user.failed_login_attempts == 1

    @pytest.mark.asyncio
    async def test_lockout_after_max_attempts(self, db_session):
        user = await register(db_session)

        for _ in range(settings.max_login_attempts):
            with pytest.raises(AuthenticationError):
                await self.service.login(db_session, LoginRequest(email=EMAIL, password="wrong"))

        assert user.lock_until is not None
        assert user.failed_login_attempts == 0

        with pytest.raises(AuthenticationError) as exc_info:
            await self.service.login(db_session, LoginRequest(email=EMAIL, password=PASSWORD))
        assert "lock_until" in exc_info.value.context

    @pytest.mark.asyncio
    async def test_success_clears_counter(self, db_session):
        user = await register(db_session)
        with pytest.raises(AuthenticationError):
            await self.service.login(db_session, LoginRequest(email=EMAIL, password="wrong"))

        await self.service.login(db_session, LoginRequest(email=EMAIL, password=PASSWORD))

        assert user.failed_login_attempts == 0

    @pytest.mark.asyncio
    async def test_disabled_account(self, db_session):
        user = await register(db_session)
        user.is_active = False
        await db_session.flush()

        with pytest.raises(AuthenticationError):
            await self.service.login(db_session, LoginRequest(email=EMAIL, password=PASSWORD))


class TestTokens:

    def _encode(self, secret=None, **overrides):
        now = datetime.now(timezone.utc)
        payload = {"sub": "4b7c1f9e-0000-4000-8000-000000000001", "role": "admin",
                   "iat": now, "exp": now + timedelta(minutes=5)}
        payload.update(overrides)
        return jwt.encode(payload, secret or settings.jwt_secret, algorithm="HS256")

    def test_valid_token(self):
        assert decode_access_token(self._encode())["role"] == "admin"

    def test_expired_token(self):
        token = self._encode(exp=datetime.now(timezone.utc) - timedelta(seconds=5))
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Token has expired"

    def test_foreign_signature(self):
        token = self._encode(secret="some-other-secret-entirely")
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.token")


class TestChangePassword:

    def setup_method(self):
        self.service = auth_service

    @pytest.mark.asyncio
    async def test_change_password(self, db_session):
        user = await register(db_session)

        await self.service.change_password(
            db_session, user,
            ChangePasswordRequest(current_password=PASSWORD, new_password="mango-sorbet"),
        )

        assert verify_password("mango-sorbet", user.password_hash) is True

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, db_session):
        user = await register(db_session)
        with pytest.raises(ValidationError) as exc_info:
            await self.service.change_password(
                db_session, user,
                ChangePasswordRequest(current_password="nope", new_password="mango-sorbet"),
            )
        assert exc_info.value.field == "current_password"

    @pytest.mark.asyncio
    async def test_new_password_must_differ(self, db_session):
        user = await register(db_session)
        with pytest.raises(ValidationError):
            await self.service.change_password(
                db_session, user,
                ChangePasswordRequest(current_password=PASSWORD, new_password=PASSWORD),
            )


class TestBootstrapAdmin:

    def setup_method(self):
        self.service = auth_service

    @pytest.mark.asyncio
    async def test_created_admin_can_log_in(self, db_session):
        with patch.object(settings, "bootstrap_admin_email", " Root@Example.com "), \
             patch.object(settings, "bootstrap_admin_password", "long-enough-pw"):
            admin = await self.service.ensure_bootstrap_admin(db_session)
            again = await self.service.ensure_bootstrap_admin(db_session)

        assert admin.role == "admin"
        assert again is None
        token, _, _ = await self.service.login(
            db_session, LoginRequest(email="root@example.com", password="long-enough-pw")
        )
        assert decode_access_token(token)["role"] == "admin"

    @pytest.mark.asyncio
    async def test_reserved_domain_is_refused(self, db_session):
        with patch.object(settings, "bootstrap_admin_email", "root@zoo.test"), \
             patch.object(settings, "bootstrap_admin_password", "long-enough-pw"):
            with pytest.raises(ValidationError) as exc_info:
                await self.service.ensure_bootstrap_admin(db_session)

        assert exc_info.value.field == "bootstrap_admin_email"

    @pytest.mark.asyncio
    async def test_unset_is_noop(self, db_session):
        with patch.object(settings, "bootstrap_admin_email", ""):
            assert await self.service.ensure_bootstrap_admin(db_session) is None

    def test_startup_check_flags_reserved_domain(self):
        config = Settings(
            jwt_secret="x" * 32,
            bootstrap_admin_email="root@zoo.test",
            bootstrap_admin_password="long-enough-pw",
        )
        with pytest.raises(ValueError, match="BOOTSTRAP_ADMIN_EMAIL is not an address"):
            config.validate_required_for_production()
