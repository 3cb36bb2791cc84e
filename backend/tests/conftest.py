"""
Zoo API — Test Configuration (conftest.py)
============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine:           In-memory SQLite engine with the schema created
    ├── session_factory:  Session factory bound to that engine
    ├── db_session:       One session for service-level tests
    ├── mock_db_session:  AsyncMock session for pure unit tests
    ├── make_user:        Creates an account and returns it with a bearer header
    └── client:           HTTPX AsyncClient wired to create_app()

Database:
    Every test gets its own in-memory database (StaticPool keeps the single
    connection alive). pysqlite's implicit transactions break SAVEPOINT, so
    the engine takes over BEGIN itself; ticket issuance relies on
    begin_nested().
"""

import os
import tempfile

# Override settings for testing BEFORE any zoo_api imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-with-enough-length"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ANALYTICS_CACHE_TTL"] = "0"
os.environ["SMTP_HOST"] = ""
os.environ["REPORT_STORAGE_ROOT"] = tempfile.mkdtemp(prefix="zoo_reports_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import zoo_api.models  # noqa: F401
from zoo_api.database import Base, get_db_session
from zoo_api.main import create_app
from zoo_api.models.user import User
from zoo_api.services.auth_service import create_access_token, hash_password


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    A real session for service tests.

    Do not combine with `client` in one test: both share the single
    in-memory connection. API tests seed data through `make_user` or the
    API itself.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_missing(mock_db_session):
            mock_db_session.get.return_value = None
            with pytest.raises(NotFoundError):
                await staff_service.get_staff(mock_db_session, uuid4())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(session_factory):
    """
    Factory: `await make_user("veterinarian")` commits an account with that
    role and returns (user, {"Authorization": "Bearer ..."}).
    """
    counter = {"n": 0}

    async def _make(role: str = "admin", password: str = "secret-pass") -> Tuple[User, Dict[str, str]]:
        counter["n"] += 1
        async with session_factory() as session:
            user = User(
                email=f"{role}{counter['n']}@example.com",
                password_hash=hash_password(password),
                first_name=role.title(),
                role=role,
                is_active=True,
                failed_login_attempts=0,
            )
            session.add(user)
            await session.commit()
        token, _ = create_access_token(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to a fresh app whose session dependency uses
    the test database (same commit/rollback contract as production).

    Usage:
        async def test_health(client):
            response = await client.get("/api/health")
            assert response.status_code == 200
    """
    app = create_app()

    async def _test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
