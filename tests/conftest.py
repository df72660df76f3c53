"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from rolegraph.config import Settings
from rolegraph.core.bootstrap import seed_access_model
from rolegraph.core.database import create_engine_and_factory, create_schema, drop_schema
from rolegraph.core.graph import User
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.core.services import Services, build_services
from rolegraph.main import create_app
from rolegraph.modules.users.repos import IdentityStore


TEST_SALT = "rolegraph-test-salt"
TEST_PASSWORD = "correct-horse-battery"


class FakeClock:
    """Settable time source for session expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: in-memory SQLite, in-process sessions, cheap hashing."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        session_backend="memory",
        session_ttl_seconds=3600,
        session_expired_retention_seconds=600,
        password_salt=TEST_SALT,
        password_time_cost=1,
        password_memory_cost=8,
        password_parallelism=1,
        admin_login=None,
        admin_password=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def services(settings: Settings, clock: FakeClock) -> AsyncGenerator[Services, None]:
    """Service container over a fresh in-memory database."""
    engine, session_factory = create_engine_and_factory(settings.database_url)
    await create_schema(engine)

    container = build_services(settings, engine, session_factory, clock=clock)
    yield container

    await drop_schema(engine)
    await container.close()


@pytest.fixture
def graph(services: Services) -> AuthorizationGraph:
    return services.graph


@pytest.fixture
def identity(services: Services) -> IdentityStore:
    return services.identity


@pytest.fixture
async def seeded(services: Services) -> Services:
    """Services with the built-in permissions and the administrator role."""
    await seed_access_model(services)
    return services


@pytest.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    app = create_app(services)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================================
# User Fixtures
# ============================================================


@pytest.fixture
async def admin(seeded: Services) -> User:
    """A user holding the administrator role.

    Returns:
        The persisted administrator
    """
    await seed_access_model(seeded, "admin", TEST_PASSWORD)
    return await seeded.identity.get_by_login("admin")


@pytest.fixture
async def admin_headers(seeded: Services, admin: User) -> dict[str, str]:
    """Authorization headers carrying a live administrator session."""
    issued = await seeded.sessions.create_session(admin.id)
    return {"Authorization": f"Bearer {issued.token}"}


@pytest.fixture
async def nobody(services: Services) -> User:
    """A user without any role."""
    return await services.identity.create_user("nobody", TEST_PASSWORD)


@pytest.fixture
async def nobody_headers(services: Services, nobody: User) -> dict[str, str]:
    """Authorization headers of a session that holds no permissions."""
    issued = await services.sessions.create_session(nobody.id)
    return {"Authorization": f"Bearer {issued.token}"}
