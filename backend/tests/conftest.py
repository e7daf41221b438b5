"""
Trame Backend — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock AsyncSession (no database)
    ├── db_engine: Async engine on a fresh SQLite file with the full schema
    ├── session_factory: async_sessionmaker bound to db_engine
    ├── db_session: One session from session_factory
    ├── user_id: A persisted user (documents need an owner)
    ├── test_app: create_app() with get_db_session pointed at db_engine
    ├── test_client: HTTPX AsyncClient for API endpoint testing
    └── signup_user / auth_headers: bearer headers for a fresh account
"""

import os
import tempfile

# Must run before the first `trame` import: settings and the module-level
# engine are built at import time.
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="trame_test_"), "app.db")
)
os.environ["LOG_LEVEL"] = "WARNING"
# Endpoint tests sign up many users from one client address
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

import trame.models  # noqa: E402,F401
from trame.database import Base, build_engine, build_session_factory, get_db_session  # noqa: E402
from trame.models.user import User  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Mock Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_login_unknown_email(mock_db_session):
            result = MagicMock()
            result.scalar_one_or_none.return_value = None
            mock_db_session.execute.return_value = result
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# SQLite Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh SQLite database per test, schema created from the ORM metadata."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user_id(session_factory):
    """Id of a committed user, for tests that need a document owner."""
    async with session_factory() as session:
        user = User(email="owner@example.com", password_hash="$argon2id$unused")
        session.add(user)
        await session.commit()
        return user.id


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_app(db_engine, session_factory, monkeypatch):
    """
    A fresh application whose request sessions use the test database.

    Each test gets its own app, so middleware state (rate-limit windows)
    does not leak between tests. The health check engine is swapped too.
    """
    from trame import database
    from trame.main import create_app

    monkeypatch.setattr(database, "engine", db_engine)

    app = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    return app


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def signup_user(test_client):
    """
    Returns an async helper that signs up through the API and returns
    `Authorization` headers for the new account.
    """

    async def _signup(email: str = "writer@example.com", password: str = "correct horse"):
        response = await test_client.post(
            "/api/signup", json={"email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _signup


@pytest_asyncio.fixture
async def auth_headers(signup_user):
    return await signup_user()
