"""Integration tests for the application lifespan and background tasks."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from rolegraph.config import Settings
from rolegraph.core.auth import tasks
from rolegraph.core.constants import ADMINISTRATOR_ROLE
from rolegraph.core.errors import StorageError
from rolegraph.main import create_app


pytestmark = pytest.mark.integration


class TestLifespan:
    """Startup builds, seeds and tears down the service container."""

    async def test_startup_seeds_and_shutdown_closes(self, settings: Settings):
        """Verify startup seeds the admin and shutdown releases the services."""
        settings = settings.model_copy(
            update={"admin_login": "root", "admin_password": "root-password"}
        )
        app = create_app(settings=settings)

        async with app.router.lifespan_context(app):
            services = app.state.services
            admin = await services.identity.verify_credentials("root", "root-password")
            assert await services.graph.effective_roles(admin.id) == [ADMINISTRATOR_ROLE]

        assert app.state.services is None


class TestPurgeTask:
    """Tests for the periodic session purge."""

    async def test_keeps_running_after_storage_errors(self, monkeypatch: pytest.MonkeyPatch):
        """A storage failure during a purge does not stop the loop."""
        monkeypatch.setattr(tasks.asyncio, "sleep", AsyncMock())
        sessions = AsyncMock()
        sessions.purge_expired.side_effect = [StorageError(), 2, asyncio.CancelledError()]

        with pytest.raises(asyncio.CancelledError):
            await tasks.purge_expired_sessions(sessions, interval_seconds=1)

        assert sessions.purge_expired.await_count == 3
