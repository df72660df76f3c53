"""End-to-end session scenarios over the real graph and session manager.

A session's cached access must follow changes to the graph: granting,
revoking, deleting roles and deleting users all take effect on the next
check without the user logging in again.
"""

import pytest

from rolegraph.core.auth.sessions import SessionManager
from rolegraph.core.errors import (
    AccessForbiddenError,
    InvalidSessionError,
    SessionExpiredError,
    UserBlockedError,
)
from rolegraph.core.graph import Role, User
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.core.permissions.policy import Operation, Resource
from rolegraph.core.services import Services
from rolegraph.modules.users.repos import IdentityStore


pytestmark = pytest.mark.integration

PASSWORD = "correct-horse-battery"
NEWS = Resource.schema("news", is_public=True)


@pytest.fixture
def sessions(services: Services) -> SessionManager:
    return services.sessions


@pytest.fixture
async def alice(identity: IdentityStore) -> User:
    return await identity.create_user("alice", PASSWORD)


@pytest.fixture
async def editor(graph: AuthorizationGraph) -> Role:
    await graph.ensure_permissions(["content::read", "content::write"])
    role = await graph.create_role("editor", "Editor")
    await graph.grant_permissions(role.id, ["content::write"])
    return role


class TestSessionFollowsGraph:
    """Graph changes reach live sessions."""

    async def test_revoked_permission_is_forbidden(
        self,
        services: Services,
        sessions: SessionManager,
        graph: AuthorizationGraph,
        alice: User,
        editor: Role,
    ):
        """Revoking a permission forbids the next protected write."""
        await graph.assign_role(alice.id, editor.id)
        issued = await sessions.create_session(alice.id)

        assert await sessions.has_permission(issued.token, "content::write") is True
        await services.policy.authorize(issued.token, NEWS, Operation.WRITE)

        permission = await graph.find_permission("content::write")
        await graph.revoke_permission(editor.id, permission.id)

        assert await sessions.has_permission(issued.token, "content::write") is False
        with pytest.raises(AccessForbiddenError):
            await services.policy.authorize(issued.token, NEWS, Operation.WRITE)

    async def test_grant_reaches_open_session(
        self,
        sessions: SessionManager,
        graph: AuthorizationGraph,
        alice: User,
        editor: Role,
    ):
        """A grant is visible to a session opened before it."""
        await graph.assign_role(alice.id, editor.id)
        issued = await sessions.create_session(alice.id)

        await graph.grant_permissions(editor.id, ["content::read"])

        assert await sessions.has_permission(issued.token, "content::read") is True

    async def test_deleted_role_drops_permissions(
        self,
        sessions: SessionManager,
        graph: AuthorizationGraph,
        alice: User,
        editor: Role,
    ):
        """Deleting a role strips its roles and permissions from live sessions."""
        await graph.assign_role(alice.id, editor.id)
        issued = await sessions.create_session(alice.id)

        await graph.delete_role(editor.id)

        context = await sessions.resolve(issued.token)
        assert context.snapshot.roles == frozenset()
        assert context.has_permission("content::write") is False

    async def test_deleted_user_loses_session(
        self,
        sessions: SessionManager,
        graph: AuthorizationGraph,
        alice: User,
    ):
        """A deleted user's session becomes invalid."""
        issued = await sessions.create_session(alice.id)

        await graph.delete_user(alice.id)

        with pytest.raises(InvalidSessionError):
            await sessions.resolve(issued.token)


class TestSessionLifecycle:
    """Login gates and expiry."""

    async def test_blocked_user_cannot_open_session(
        self,
        sessions: SessionManager,
        identity: IdentityStore,
    ):
        """Verify a blocked user is refused a session."""
        user = await identity.create_user("mallory", PASSWORD, blocked=True)

        with pytest.raises(UserBlockedError):
            await sessions.create_session(user.id)

    async def test_session_expires_after_ttl(
        self,
        services: Services,
        sessions: SessionManager,
        alice: User,
        clock,
    ):
        """A session past its TTL reports expiry."""
        issued = await sessions.create_session(alice.id)
        clock.advance(services.settings.session_ttl_seconds + 1)

        with pytest.raises(SessionExpiredError):
            await sessions.resolve(issued.token)

    async def test_blocking_after_login(
        self,
        sessions: SessionManager,
        identity: IdentityStore,
        alice: User,
    ):
        """Blocking a logged-in user fails their next check."""
        issued = await sessions.create_session(alice.id)

        await identity.set_blocked(alice.id, True)
        await sessions.invalidate_all_for_user(alice.id)

        with pytest.raises(UserBlockedError):
            await sessions.resolve(issued.token)
