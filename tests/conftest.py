"""
TaskBoard — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── clock:        FakeClock, advanced by hand
    ├── settings:     Settings for an in-memory SQLite database, cheap bcrypt
    ├── db_engine:    in-memory SQLite engine with all tables created
    ├── db_session:   AsyncSession on db_engine
    ├── hasher / directory / verifier / issuer / store / lifecycle
    └── app / test_client: FastAPI app + HTTPX AsyncClient (ASGITransport)
"""

import os

# Override settings for testing BEFORE any app imports
# `taskboard.main` builds a module-level app from the environment on import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET"] = "test-session-secret-" + "x" * 48
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from taskboard.config import Settings
from taskboard.database import create_engine, create_session_factory, init_models
from taskboard.services.credential_verifier import CredentialVerifier
from taskboard.services.passwords import PasswordHasher
from taskboard.services.session_issuer import SessionIssuer
from taskboard.services.task_lifecycle import TaskLifecycleManager
from taskboard.services.task_store import TaskStore
from taskboard.services.user_directory import UserDirectory

TEST_SECRET = "test-session-secret-" + "x" * 48
TEST_TTL = 3600
START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable clock frozen at `now` until advance() is called."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """
    Settings isolated from the developer's .env file.

    Rate limits are raised well above anything a single test sends; the rate
    limiting tests build their own app with tight limits.
    """
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        session_secret=TEST_SECRET,
        session_ttl_seconds=TEST_TTL,
        bcrypt_rounds=4,
        log_level="WARNING",
        rate_limit_requests=10000,
        auth_rate_limit_requests=10000,
    )


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(settings)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    A real session against an in-memory database.

    Services only flush; nothing is committed, and the engine is thrown away
    after the test.
    """
    session_factory = create_session_factory(db_engine)
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def directory(hasher) -> UserDirectory:
    return UserDirectory(hasher)


@pytest.fixture
def verifier(directory, hasher) -> CredentialVerifier:
    return CredentialVerifier(directory, hasher)


@pytest.fixture
def session_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def issuer(clock, session_secret) -> SessionIssuer:
    return SessionIssuer(secret=session_secret, ttl_seconds=TEST_TTL, clock=clock)


@pytest.fixture
def store() -> TaskStore:
    return TaskStore()


@pytest.fixture
def lifecycle(store) -> TaskLifecycleManager:
    return TaskLifecycleManager(store)


@pytest_asyncio.fixture
async def alice(db_session, directory):
    return await directory.create_user(db_session, "alice", "alice-password-1")


@pytest_asyncio.fixture
async def bob(db_session, directory):
    return await directory.create_user(db_session, "bob", "bob-password-12")


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(settings, clock):
    """
    A fully wired application on its own in-memory database.

    ASGITransport does not run the lifespan, so tables are created here.
    """
    from taskboard.main import create_app

    application = create_app(settings, clock=clock)
    await init_models(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sign_up_and_in():
    """
    Returns a helper that creates an account over HTTP and returns
    Authorization headers for it.
    """

    async def _sign_up_and_in(client: AsyncClient, username: str, password: str) -> dict:
        response = await client.post(
            "/api/auth/sign-up", json={"username": username, "password": password}
        )
        assert response.status_code == 201, response.text
        response = await client.post(
            "/api/auth/sign-in", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _sign_up_and_in
