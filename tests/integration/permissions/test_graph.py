"""Integration tests for the authorization graph.

These tests run against the SQL graph store and verify:
- Edge idempotence and no-op removal
- Effective permission computation
- Transactional permission replacement
- Cascading deletes
- Listener notification
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from rolegraph.core.errors import (
    EntryAlreadyExistsError,
    EntryNotFoundError,
    EntryUpdateError,
    StorageError,
)
from rolegraph.core.graph import EdgeKind, GraphTransaction, Role, User
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.core.services import Services
from rolegraph.modules.users.repos import IdentityStore


pytestmark = pytest.mark.integration

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def alice(identity: IdentityStore) -> User:
    return await identity.create_user("alice", PASSWORD)


@pytest.fixture
async def editor(graph: AuthorizationGraph) -> Role:
    await graph.ensure_permissions(["content::read", "content::write", "news::read"])
    role = await graph.create_role("editor", "Editor")
    await graph.grant_permissions(role.id, ["content::read", "content::write"])
    return role


@pytest.fixture
async def reader(graph: AuthorizationGraph) -> Role:
    await graph.ensure_permissions(["content::read", "news::read"])
    role = await graph.create_role("reader", "Reader")
    await graph.grant_permissions(role.id, ["content::read", "news::read"])
    return role


@pytest.fixture
def notified(graph: AuthorizationGraph) -> list[frozenset[UUID]]:
    """Collects every batch of user ids the graph reports as changed."""
    batches: list[frozenset[UUID]] = []

    async def listener(user_ids: frozenset[UUID]) -> None:
        batches.append(user_ids)

    graph.add_listener(listener)
    return batches


class TestRoleAssignment:
    """Tests for user -> role edges."""

    async def test_assign_is_idempotent(self, graph: AuthorizationGraph, alice: User, editor: Role):
        """Verify re-assigning a role is a no-op."""
        assert await graph.assign_role(alice.id, editor.id) is True
        assert await graph.assign_role(alice.id, editor.id) is False

        assert await graph.effective_roles(alice.id) == ["editor"]

    async def test_unassign_missing_edge_succeeds(
        self, graph: AuthorizationGraph, alice: User, editor: Role
    ):
        """Removing an absent assignment is not an error."""
        assert await graph.unassign_role(alice.id, editor.id) is False

    async def test_assign_unknown_role(self, graph: AuthorizationGraph, alice: User):
        """Assigning an unknown role is a not-found error."""
        with pytest.raises(EntryNotFoundError):
            await graph.assign_role(alice.id, uuid4())

    async def test_assign_unknown_user(self, graph: AuthorizationGraph, editor: Role):
        """Assigning a role to an unknown user is a not-found error."""
        with pytest.raises(EntryNotFoundError):
            await graph.assign_role(uuid4(), editor.id)

    async def test_set_user_roles_replaces_and_skips_unknown(
        self, graph: AuthorizationGraph, alice: User, editor: Role, reader: Role
    ):
        """set_user_roles replaces the assignment set and skips unknown names."""
        await graph.assign_role(alice.id, editor.id)

        roles = await graph.set_user_roles(alice.id, ["reader", "ghost"])

        assert roles == ["reader"]
        assert await graph.effective_roles(alice.id) == ["reader"]


class TestEffectivePermissions:
    """Tests for permission reachability."""

    async def test_union_is_sorted_and_distinct(
        self, graph: AuthorizationGraph, alice: User, editor: Role, reader: Role
    ):
        """Permissions from several roles are merged, sorted and deduplicated."""
        await graph.assign_role(alice.id, editor.id)
        await graph.assign_role(alice.id, reader.id)

        assert await graph.effective_permissions(alice.id) == [
            "content::read",
            "content::write",
            "news::read",
        ]

    async def test_user_without_roles(self, graph: AuthorizationGraph, alice: User):
        """A user without roles has no permissions."""
        assert await graph.effective_permissions(alice.id) == []

    async def test_unknown_user(self, graph: AuthorizationGraph):
        """An unknown user has no permissions rather than an error."""
        assert await graph.effective_permissions(uuid4()) == []

    async def test_effective_access_snapshot(
        self, graph: AuthorizationGraph, alice: User, editor: Role
    ):
        """Verify effective_access collects roles, permissions and groups."""
        group = await graph.create_group("staff", "Staff")
        await graph.assign_role(alice.id, editor.id)
        await graph.join_group(alice.id, group.id)

        snapshot = await graph.effective_access(alice.id)

        assert snapshot.roles == {"editor"}
        assert snapshot.permissions == {"content::read", "content::write"}
        assert snapshot.groups == {"staff"}


class TestPermissionGrants:
    """Tests for role -> permission edges."""

    async def test_grant_revoke(self, graph: AuthorizationGraph, editor: Role):
        """Granting and revoking are both idempotent."""
        permission = await graph.find_permission("news::read")
        assert permission is not None

        assert await graph.grant_permission(editor.id, permission.id) is True
        assert await graph.grant_permission(editor.id, permission.id) is False
        assert await graph.revoke_permission(editor.id, permission.id) is True
        assert await graph.revoke_permission(editor.id, permission.id) is False

    async def test_drop_all_leaves_other_roles_intact(
        self, graph: AuthorizationGraph, alice: User, editor: Role, reader: Role
    ):
        """drop_all_permissions only touches the given role."""
        await graph.assign_role(alice.id, editor.id)
        await graph.assign_role(alice.id, reader.id)

        assert await graph.drop_all_permissions(editor.id) == 2

        assert await graph.role_permissions(editor.id) == []
        assert await graph.effective_permissions(alice.id) == ["content::read", "news::read"]

    async def test_unknown_names_are_skipped(self, graph: AuthorizationGraph, editor: Role):
        """Unknown permission names are skipped, not created."""
        granted = await graph.replace_permissions(editor.id, ["news::read", "ghost::write"])

        assert granted == ["news::read"]
        assert await graph.find_permission("ghost::write") is None

    async def test_replace_is_all_or_nothing(
        self,
        graph: AuthorizationGraph,
        editor: Role,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """A failed re-grant rolls back the drop as well."""
        async def fail(*args, **kwargs):
            raise StorageError("Graph store unavailable")

        monkeypatch.setattr(graph, "_relate_by_field", fail)

        with pytest.raises(StorageError):
            await graph.replace_permissions(editor.id, ["news::read"])

        monkeypatch.undo()
        assert await graph.role_permissions(editor.id) == ["content::read", "content::write"]

    async def test_grant_to_unknown_role(self, graph: AuthorizationGraph):
        """Granting to an unknown role raises EntryNotFoundError."""
        with pytest.raises(EntryNotFoundError):
            await graph.grant_permissions(uuid4(), ["content::read"])


class TestCascadingDeletes:
    """Deleting a vertex removes every edge touching it."""

    async def test_delete_role(self, graph: AuthorizationGraph, alice: User, editor: Role):
        """Verify deleting a role removes its edges but not its permissions."""
        await graph.assign_role(alice.id, editor.id)

        await graph.delete_role(editor.id)

        assert await graph.find_role("editor") is None
        assert await graph.effective_roles(alice.id) == []
        assert await graph.effective_permissions(alice.id) == []
        # Permissions themselves survive
        assert await graph.find_permission("content::write") is not None

    async def test_delete_missing_role(self, graph: AuthorizationGraph):
        """delete_role should raise EntryNotFoundError for an unknown id."""
        with pytest.raises(EntryNotFoundError):
            await graph.delete_role(uuid4())

    async def test_delete_user(
        self, graph: AuthorizationGraph, identity: IdentityStore, alice: User, editor: Role
    ):
        """Deleting a user removes their assignments and keeps the roles."""
        await graph.assign_role(alice.id, editor.id)

        await graph.delete_user(alice.id)

        assert await identity.find(alice.id) is None
        assert await graph.role_holders(editor.id) == []
        assert await graph.find_role("editor") is not None

    async def test_delete_group(self, graph: AuthorizationGraph, alice: User):
        """Deleting a group removes its memberships."""
        group = await graph.create_group("staff", "Staff")
        await graph.join_group(alice.id, group.id)

        await graph.delete_group(group.id)

        assert await graph.effective_groups(alice.id) == []
        assert await graph.find_group("staff") is None


class TestNotifications:
    """Listeners learn which users' access changed."""

    async def test_assign_notifies_user(
        self,
        graph: AuthorizationGraph,
        alice: User,
        editor: Role,
        notified: list[frozenset[UUID]],
    ):
        """Only an assignment that changes the graph notifies."""
        await graph.assign_role(alice.id, editor.id)
        await graph.assign_role(alice.id, editor.id)

        assert notified == [frozenset({alice.id})]

    async def test_grant_notifies_role_holders(
        self,
        graph: AuthorizationGraph,
        alice: User,
        editor: Role,
        notified: list[frozenset[UUID]],
    ):
        """A grant notifies every holder of the role."""
        await graph.assign_role(alice.id, editor.id)
        notified.clear()
        permission = await graph.find_permission("news::read")

        await graph.grant_permission(editor.id, permission.id)

        assert notified == [frozenset({alice.id})]

    async def test_delete_role_notifies_holders(
        self,
        graph: AuthorizationGraph,
        alice: User,
        editor: Role,
        notified: list[frozenset[UUID]],
    ):
        """Deleting a role notifies the users who held it."""
        await graph.assign_role(alice.id, editor.id)
        notified.clear()

        await graph.delete_role(editor.id)

        assert notified == [frozenset({alice.id})]

    async def test_role_without_holders_notifies_nobody(
        self,
        graph: AuthorizationGraph,
        editor: Role,
        notified: list[frozenset[UUID]],
    ):
        """Verify a change to a role nobody holds notifies no one."""
        await graph.drop_all_permissions(editor.id)

        assert notified == []


class TestRolesAndGroups:
    """Tests for role and group records."""

    async def test_duplicate_role_name(self, graph: AuthorizationGraph, editor: Role):
        """Role names are unique."""
        with pytest.raises(EntryAlreadyExistsError):
            await graph.create_role("editor", "Another editor")

    async def test_update_role_title(self, graph: AuthorizationGraph, editor: Role):
        """update_role should record the new title and the acting user."""
        actor = uuid4()

        role = await graph.update_role(editor.id, title="Chief editor", actor=actor)

        assert role.title == "Chief editor"
        assert role.updated_by == actor

    async def test_update_role_without_fields(self, graph: AuthorizationGraph, editor: Role):
        """An update with nothing to change is rejected."""
        with pytest.raises(EntryUpdateError):
            await graph.update_role(editor.id)

    async def test_list_roles_paginates_by_name(self, graph: AuthorizationGraph):
        """Verify roles are paged in name order with a total."""
        for name in ("gamma", "alpha", "beta"):
            await graph.create_role(name, name.title())

        roles, total = await graph.list_roles(page=1, page_size=2)

        assert total == 3
        assert [role.name for role in roles] == ["alpha", "beta"]

    async def test_ensure_permissions_is_idempotent(self, graph: AuthorizationGraph):
        """ensure_permissions returns the same rows on a second call."""
        first = await graph.ensure_permissions(["b::read", "a::read"])
        second = await graph.ensure_permissions(["a::read", "b::read"])

        assert [p.name for p in first] == ["a::read", "b::read"]
        assert [p.id for p in first] == [p.id for p in second]

    async def test_set_user_groups(self, graph: AuthorizationGraph, alice: User):
        """set_user_groups resolves slugs and skips unknown ones."""
        await graph.create_group("staff", "Staff")
        await graph.create_group("ops", "Ops")

        assert await graph.set_user_groups(alice.id, ["staff", "ops", "nope"]) == ["ops", "staff"]

    async def test_create_permission(self, graph: AuthorizationGraph):
        """Verify create_permission adds one permission and refuses a duplicate name."""
        permission = await graph.create_permission("audit::read")

        assert (await graph.find_permission("audit::read")).id == permission.id
        with pytest.raises(EntryAlreadyExistsError):
            await graph.create_permission("audit::read")

    async def test_user_role_ids(
        self, graph: AuthorizationGraph, alice: User, editor: Role, reader: Role
    ):
        """Verify user_role_ids returns the ids of directly assigned roles."""
        assert await graph.user_role_ids(alice.id) == []

        await graph.assign_role(alice.id, editor.id)
        await graph.assign_role(alice.id, reader.id)

        assert set(await graph.user_role_ids(alice.id)) == {editor.id, reader.id}

    async def test_user_group_ids(self, graph: AuthorizationGraph, alice: User):
        """Verify user_group_ids follows joins and leaves."""
        staff = await graph.create_group("staff", "Staff")
        ops = await graph.create_group("ops", "Ops")
        await graph.join_group(alice.id, staff.id)
        await graph.join_group(alice.id, ops.id)
        await graph.leave_group(alice.id, ops.id)

        assert await graph.user_group_ids(alice.id) == [staff.id]


class TestEdgeWrites:
    """Tests for GraphTransaction.relate at the storage level."""

    @staticmethod
    def postgres_transaction(execute: AsyncMock) -> GraphTransaction:
        session = MagicMock()
        session.get_bind.return_value = SimpleNamespace(dialect=SimpleNamespace(name="postgresql"))
        session.execute = execute
        return GraphTransaction(session)

    async def test_duplicate_edge_in_one_transaction(
        self, services: Services, alice: User, editor: Role
    ):
        """Verify relating an existing edge reports False instead of failing the transaction."""
        async with services.graph_store.transaction() as tx:
            assert await tx.relate(EdgeKind.USER_ROLE, alice.id, editor.id) is True
            assert await tx.relate(EdgeKind.USER_ROLE, alice.id, editor.id) is False
            assert await tx.has_edge(EdgeKind.USER_ROLE, alice.id, editor.id) is True

    async def test_postgres_insert_skips_conflicts(self):
        """Verify the PostgreSQL edge insert ignores a concurrent duplicate row."""
        execute = AsyncMock(return_value=SimpleNamespace(rowcount=0))
        tx = self.postgres_transaction(execute)

        assert await tx.relate(EdgeKind.USER_ROLE, uuid4(), uuid4()) is False

        stmt = execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (user_id, role_id) DO NOTHING" in sql

    async def test_vanished_endpoint_is_not_found(self):
        """Verify a foreign-key failure on an edge insert reports the missing endpoint."""
        execute = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("fk violation")))
        tx = self.postgres_transaction(execute)

        with pytest.raises(EntryNotFoundError) as exc_info:
            await tx.relate(EdgeKind.ROLE_PERMISSION, uuid4(), uuid4())

        assert exc_info.value.details == {"edge": "role_permission"}
