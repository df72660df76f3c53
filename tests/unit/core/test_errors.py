"""Unit tests for the error taxonomy and RFC 7807 handlers."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from rolegraph.core.errors import (
    AccessForbiddenError,
    EntryAlreadyExistsError,
    EntryNotFoundError,
    InvalidCredentialsError,
    InvalidSessionError,
    SessionExpiredError,
    StorageError,
    UserBlockedError,
    register_exception_handlers,
)


pytestmark = pytest.mark.unit


class TestErrorTaxonomy:
    """Status codes and codes of domain errors."""

    @pytest.mark.parametrize(
        ("error", "status_code", "error_code"),
        [
            (InvalidSessionError, 401, "invalid_session"),
            (SessionExpiredError, 401, "session_expired"),
            (InvalidCredentialsError, 401, "invalid_credentials"),
            (AccessForbiddenError, 403, "access_forbidden"),
            (UserBlockedError, 403, "user_blocked"),
            (EntryNotFoundError, 404, "entry_not_found"),
            (EntryAlreadyExistsError, 409, "entry_already_exists"),
            (StorageError, 503, "storage_error"),
        ],
    )
    def test_status_and_code(self, error, status_code: int, error_code: str):
        """Each domain error carries its HTTP status and error code."""
        exc = error()

        assert exc.status_code == status_code
        assert exc.error_code == error_code

    def test_not_found_details(self):
        """NotFound errors expose the resource and its id as details."""
        exc = EntryNotFoundError("Role not found", resource="role", resource_id="editor")

        assert exc.message == "Role not found"
        assert exc.details == {"resource": "role", "resource_id": "editor"}


class TestExceptionHandlers:
    """Problem Details rendering."""

    @pytest.fixture
    async def client(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/forbidden")
        async def forbidden():
            raise AccessForbiddenError(details={"required_permission": "role::write"})

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as client:
            yield client

    async def test_app_exception(self, client: AsyncClient):
        """Verify app errors render as problem details with their extra fields."""
        response = await client.get("/forbidden")

        assert response.status_code == 403
        data = response.json()
        assert data["type"] == "urn:rolegraph:error:access_forbidden"
        assert data["title"] == "Access Forbidden"
        assert data["instance"] == "/forbidden"
        assert data["required_permission"] == "role::write"

    async def test_unhandled_exception_hides_details(self, client: AsyncClient):
        """Unexpected errors return a generic 500 without internals."""
        response = await client.get("/boom")

        assert response.status_code == 500
        data = response.json()
        assert data["type"] == "urn:rolegraph:error:internal_error"
        assert "secret" not in data["detail"]
