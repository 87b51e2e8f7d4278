"""Pytest configuration and fixtures for backend tests.

Database tests run against a fresh in-memory SQLite database (aiosqlite)
per test. Token components receive a controllable clock so expiry can be
tested without sleeping.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing sessionvault modules
os.environ["JWT_SECRET_KEY"] = "test-signing-key-" + "0" * 47  # 64 chars
os.environ["JWT_ISSUER"] = "test-issuer"
os.environ["JWT_AUDIENCE"] = "test-audience"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOGIN_RATE_LIMIT_PER_MINUTE"] = "10000"

from sessionvault.core.config import TokenSettings  # noqa: E402

TEST_SECRET_KEY = os.environ["JWT_SECRET_KEY"]
TEST_USER_EMAIL = "user@example.com"
TEST_USER_PASSWORD = "correct-horse-battery"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_settings() -> TokenSettings:
    """Token configuration matching the environment above."""
    return TokenSettings(
        secret_key=TEST_SECRET_KEY,
        issuer="test-issuer",
        audience="test-audience",
        access_token_ttl=timedelta(minutes=15),
        refresh_token_ttl=timedelta(days=7),
        clock_skew=timedelta(0),
        max_refresh_tokens_per_user=5,
        cleanup_interval=timedelta(minutes=360),
    )


# --- Reset Fixtures ---


@pytest.fixture(autouse=True)
def reset_module_state():
    """Clear login rate limit buckets and the cleanup service singleton."""
    from sessionvault.api.auth import _login_attempts
    from sessionvault.services.token_cleanup import RefreshTokenCleanupService

    _login_attempts.clear()
    RefreshTokenCleanupService._instance = None
    yield
    _login_attempts.clear()
    RefreshTokenCleanupService._instance = None


# --- Database Fixtures ---


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with all tables created."""
    from sessionvault.core.database import Base
    import sessionvault.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# --- Service Fixtures ---


@pytest.fixture
def access_token_service(token_settings, clock):
    from sessionvault.services.access_tokens import AccessTokenService

    return AccessTokenService(token_settings, clock=clock)


@pytest.fixture
def refresh_token_manager(db_session, token_settings, clock):
    from sessionvault.services.refresh_tokens import RefreshTokenManager
    from sessionvault.services.token_store import RefreshTokenRepository

    return RefreshTokenManager(RefreshTokenRepository(db_session), token_settings, clock=clock)


@pytest.fixture
def user_directory(db_session, clock):
    from sessionvault.services.users import SqlUserDirectory

    return SqlUserDirectory(
        db_session,
        max_failed_attempts=5,
        lockout=timedelta(minutes=15),
        clock=clock,
    )


@pytest.fixture
def user_factory(user_directory):
    """Factory for creating test user accounts."""

    async def _create_user(
        email: str = TEST_USER_EMAIL,
        password: str = TEST_USER_PASSWORD,
        roles: tuple[str, ...] = ("User",),
        **kwargs,
    ):
        user = await user_directory.create_user(email, password, roles=roles)
        for key, value in kwargs.items():
            setattr(user, key, value)
        if kwargs:
            await user_directory.update(user)
        # Committed so a rolled-back request cannot take the account with it
        await user_directory.session.commit()
        return user

    return _create_user


@pytest_asyncio.fixture
async def test_user(user_factory):
    return await user_factory()


@pytest.fixture
def session_service(access_token_service, refresh_token_manager, user_directory, clock):
    from sessionvault.services.auth import SessionService

    return SessionService(
        access_tokens=access_token_service,
        refresh_tokens=refresh_token_manager,
        users=user_directory,
        clock=clock,
    )


# --- API Fixtures ---


@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database override."""
    from sessionvault.core.database import get_db
    from sessionvault.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        # Same transaction handling as get_db, on the shared test session
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# --- Pytest Hooks for Auto-Marking ---


def pytest_collection_modifyitems(config, items):
    """Mark tests using the database or the ASGI app as integration, others as unit."""
    integration_fixtures = {"db_session", "db_engine", "async_client", "session_factory"}

    for item in items:
        if any(mark.name in ("unit", "integration") for mark in item.iter_markers()):
            continue

        if integration_fixtures & set(getattr(item, "fixturenames", ())):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
