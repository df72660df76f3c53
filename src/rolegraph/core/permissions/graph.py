"""Authorization graph.

Owns roles, permissions and groups, and the edges user -> role,
role -> permission and user -> group. A user's effective permissions are
the permissions reachable through user -> role -> permission.

Every public method runs in its own graph-store transaction, so each call
is atomic and a caller always reads its own writes. After a mutation
commits, registered listeners receive the ids of every user whose
effective access may have changed.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any
from uuid import UUID

import structlog

from rolegraph.core.auth.schemas import AccessSnapshot
from rolegraph.core.constants import DEFAULT_PAGE_SIZE
from rolegraph.core.errors import EntryNotFoundError, EntryUpdateError
from rolegraph.core.graph import (
    EdgeKind,
    EntityKind,
    GraphTransaction,
    Group,
    Permission,
    Role,
    SqlGraphStore,
)


logger = structlog.get_logger()

AccessListener = Callable[[frozenset[UUID]], Awaitable[None]]

PERMISSION_PATH = (EdgeKind.USER_ROLE, EdgeKind.ROLE_PERMISSION)


async def _require(tx: GraphTransaction, kind: EntityKind, entity_id: UUID) -> Any:
    entity = await tx.get(kind, entity_id)
    if entity is None:
        raise EntryNotFoundError(
            f"{kind.value.title()} not found",
            resource=kind.value,
            resource_id=str(entity_id),
        )
    return entity


class AuthorizationGraph:
    """Roles, permissions, groups and the edges between them and users.

    Usage:
        graph = AuthorizationGraph(SqlGraphStore(session_factory))
        graph.add_listener(sessions.invalidate_users)
        await graph.assign_role(user.id, role.id)
        await graph.effective_permissions(user.id)
    """

    def __init__(self, store: SqlGraphStore) -> None:
        self.store = store
        self._listeners: list[AccessListener] = []

    def add_listener(self, listener: AccessListener) -> None:
        """Register a callback for users whose access changed."""
        self._listeners.append(listener)

    async def _notify(self, user_ids: Iterable[UUID]) -> None:
        affected = frozenset(user_ids)
        if not affected:
            return
        for listener in self._listeners:
            await listener(affected)

    # ============================================================
    # User -> role edges
    # ============================================================

    async def assign_role(self, user_id: UUID, role_id: UUID) -> bool:
        """Assign a role to a user. Re-assigning is a no-op.

        Args:
            user_id: The user's UUID
            role_id: The role's UUID

        Returns:
            True if the edge was created, False if it already existed

        Raises:
            EntryNotFoundError: If the user or the role does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            await _require(tx, EntityKind.ROLE, role_id)
            created = await tx.relate(EdgeKind.USER_ROLE, user_id, role_id)

        if created:
            logger.info("role_assigned", user_id=str(user_id), role_id=str(role_id))
            await self._notify([user_id])
        return created

    async def unassign_role(self, user_id: UUID, role_id: UUID) -> bool:
        """Remove a role from a user. Removing a missing edge succeeds.

        Returns:
            True if an edge was removed

        Raises:
            EntryNotFoundError: If the user or the role does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            await _require(tx, EntityKind.ROLE, role_id)
            removed = await tx.unrelate(EdgeKind.USER_ROLE, user_id, role_id)

        if removed:
            logger.info("role_unassigned", user_id=str(user_id), role_id=str(role_id))
            await self._notify([user_id])
        return removed

    async def set_user_roles(self, user_id: UUID, names: Iterable[str]) -> list[str]:
        """Replace a user's roles with the roles named in ``names``.

        Unknown names are logged and skipped.

        Returns:
            Sorted names of the roles the user holds afterwards

        Raises:
            EntryNotFoundError: If the user does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            await tx.unrelate_all(EdgeKind.USER_ROLE, source=user_id)
            assigned = await self._relate_by_field(tx, EdgeKind.USER_ROLE, user_id, "name", names)

        logger.info("user_roles_replaced", user_id=str(user_id), roles=assigned)
        await self._notify([user_id])
        return assigned

    # ============================================================
    # Role -> permission edges
    # ============================================================

    async def grant_permission(self, role_id: UUID, permission_id: UUID) -> bool:
        """Grant a permission to a role. Re-granting is a no-op.

        Returns:
            True if the edge was created

        Raises:
            EntryNotFoundError: If the role or the permission does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.ROLE, role_id)
            await _require(tx, EntityKind.PERMISSION, permission_id)
            created = await tx.relate(EdgeKind.ROLE_PERMISSION, role_id, permission_id)
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id)

        if created:
            logger.info(
                "permission_granted", role_id=str(role_id), permission_id=str(permission_id)
            )
            await self._notify(holders)
        return created

    async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
        """Revoke a permission from a role. Revoking a missing edge succeeds.

        Returns:
            True if an edge was removed

        Raises:
            EntryNotFoundError: If the role or the permission does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.ROLE, role_id)
            await _require(tx, EntityKind.PERMISSION, permission_id)
            removed = await tx.unrelate(EdgeKind.ROLE_PERMISSION, role_id, permission_id)
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id)

        if removed:
            logger.info(
                "permission_revoked", role_id=str(role_id), permission_id=str(permission_id)
            )
            await self._notify(holders)
        return removed

    async def drop_all_permissions(self, role_id: UUID) -> int:
        """Remove every permission from a role.

        Returns:
            Number of edges removed

        Raises:
            EntryNotFoundError: If the role does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.ROLE, role_id)
            removed = await tx.unrelate_all(EdgeKind.ROLE_PERMISSION, source=role_id)
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id)

        logger.info("permissions_dropped", role_id=str(role_id), count=removed)
        await self._notify(holders)
        return removed

    async def grant_permissions(self, role_id: UUID, names: Iterable[str]) -> list[str]:
        """Grant permissions to a role by name.

        Unknown names are logged and skipped; the rest are granted.

        Returns:
            Sorted names actually granted (including ones already held)

        Raises:
            EntryNotFoundError: If the role does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.ROLE, role_id)
            granted = await self._relate_by_field(
                tx, EdgeKind.ROLE_PERMISSION, role_id, "name", names
            )
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id)

        await self._notify(holders)
        return granted

    async def replace_permissions(self, role_id: UUID, names: Iterable[str]) -> list[str]:
        """Replace a role's permissions with ``names``.

        Dropping the old grants and granting the new ones share one
        transaction: if anything fails the previous grants stay intact.
        Unknown names are logged and skipped.

        Returns:
            Sorted names the role holds afterwards

        Raises:
            EntryNotFoundError: If the role does not exist
        """
        async with self.store.transaction() as tx:
            role = await _require(tx, EntityKind.ROLE, role_id)
            dropped = await tx.unrelate_all(EdgeKind.ROLE_PERMISSION, source=role_id)
            granted = await self._relate_by_field(
                tx, EdgeKind.ROLE_PERMISSION, role_id, "name", names
            )
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id)

        logger.info(
            "permissions_replaced",
            role=role.name,
            dropped=dropped,
            granted=len(granted),
        )
        await self._notify(holders)
        return granted

    async def _relate_by_field(
        self,
        tx: GraphTransaction,
        edge: EdgeKind,
        source: UUID,
        field: str,
        values: Iterable[str],
    ) -> list[str]:
        """Relate ``source`` to every target whose ``field`` is in ``values``.

        Values with no matching target are logged and skipped.

        Returns:
            Sorted ``field`` values of every target ``source`` is related to
        """
        kind = edge.spec.target
        wanted = list(dict.fromkeys(values))
        found = {getattr(t, field): t for t in await tx.find_all(kind, field, wanted)}
        for value in wanted:
            target = found.get(value)
            if target is None:
                logger.warning(f"{kind.value}_not_found", **{kind.value: value}, source=str(source))
                continue
            await tx.relate(edge, source, target.id)
        return await tx.traverse(source, [edge], field)

    # ============================================================
    # User -> group edges
    # ============================================================

    async def join_group(self, user_id: UUID, group_id: UUID) -> bool:
        """Add a user to a group. Joining twice is a no-op.

        Raises:
            EntryNotFoundError: If the user or the group does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            await _require(tx, EntityKind.GROUP, group_id)
            created = await tx.relate(EdgeKind.USER_GROUP, user_id, group_id)

        if created:
            await self._notify([user_id])
        return created

    async def leave_group(self, user_id: UUID, group_id: UUID) -> bool:
        """Remove a user from a group. Leaving a group one is not in succeeds."""
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            await _require(tx, EntityKind.GROUP, group_id)
            removed = await tx.unrelate(EdgeKind.USER_GROUP, user_id, group_id)

        if removed:
            await self._notify([user_id])
        return removed

    async def set_user_groups(self, user_id: UUID, slugs: Iterable[str]) -> list[str]:
        """Replace a user's groups with the groups in ``slugs``.

        Unknown slugs are logged and skipped.

        Returns:
            Sorted slugs of the groups the user belongs to afterwards

        Raises:
            EntryNotFoundError: If the user does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            await tx.unrelate_all(EdgeKind.USER_GROUP, source=user_id)
            joined = await self._relate_by_field(tx, EdgeKind.USER_GROUP, user_id, "slug", slugs)

        await self._notify([user_id])
        return joined

    # ============================================================
    # Effective access
    # ============================================================

    async def effective_permissions(self, user_id: UUID) -> list[str]:
        """Sorted, distinct permission names reachable from a user.

        Returns an empty list for a user without roles or an unknown id.
        """
        async with self.store.transaction() as tx:
            return await tx.traverse(user_id, PERMISSION_PATH, "name")

    async def effective_roles(self, user_id: UUID) -> list[str]:
        """Sorted names of the roles assigned to a user."""
        async with self.store.transaction() as tx:
            return await tx.traverse(user_id, [EdgeKind.USER_ROLE], "name")

    async def effective_groups(self, user_id: UUID) -> list[str]:
        """Sorted slugs of the groups a user belongs to."""
        async with self.store.transaction() as tx:
            return await tx.traverse(user_id, [EdgeKind.USER_GROUP], "slug")

    async def effective_access(self, user_id: UUID) -> AccessSnapshot:
        """Roles, permissions and groups of a user, read in one transaction."""
        async with self.store.transaction() as tx:
            roles = await tx.traverse(user_id, [EdgeKind.USER_ROLE], "name")
            permissions = await tx.traverse(user_id, PERMISSION_PATH, "name")
            groups = await tx.traverse(user_id, [EdgeKind.USER_GROUP], "slug")
        return AccessSnapshot(
            roles=frozenset(roles),
            permissions=frozenset(permissions),
            groups=frozenset(groups),
        )

    async def role_holders(self, role_id: UUID) -> list[UUID]:
        """IDs of the users holding a role."""
        async with self.store.transaction() as tx:
            return await tx.sources(EdgeKind.USER_ROLE, role_id)

    async def user_role_ids(self, user_id: UUID) -> list[UUID]:
        """IDs of the roles assigned to a user."""
        async with self.store.transaction() as tx:
            return await tx.targets(EdgeKind.USER_ROLE, user_id)

    # ============================================================
    # Cascading deletes
    # ============================================================

    async def delete_role(self, role_id: UUID) -> None:
        """Delete a role together with all its user and permission edges.

        Raises:
            EntryNotFoundError: If the role does not exist
        """
        async with self.store.transaction() as tx:
            role = await _require(tx, EntityKind.ROLE, role_id)
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id)
            unassigned = await tx.unrelate_all(EdgeKind.USER_ROLE, target=role_id)
            revoked = await tx.unrelate_all(EdgeKind.ROLE_PERMISSION, source=role_id)
            await tx.delete(EntityKind.ROLE, role_id)

        logger.info(
            "role_deleted",
            role=role.name,
            unassigned=unassigned,
            permissions=revoked,
        )
        await self._notify(holders)

    async def delete_user(self, user_id: UUID) -> None:
        """Delete a user together with all its role and group edges.

        Raises:
            EntryNotFoundError: If the user does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.USER, user_id)
            roles = await tx.unrelate_all(EdgeKind.USER_ROLE, source=user_id)
            groups = await tx.unrelate_all(EdgeKind.USER_GROUP, source=user_id)
            await tx.delete(EntityKind.USER, user_id)

        logger.info("user_deleted", user_id=str(user_id), roles=roles, groups=groups)
        await self._notify([user_id])

    async def delete_group(self, group_id: UUID) -> None:
        """Delete a group together with its membership edges.

        Raises:
            EntryNotFoundError: If the group does not exist
        """
        async with self.store.transaction() as tx:
            group = await _require(tx, EntityKind.GROUP, group_id)
            members = await tx.sources(EdgeKind.USER_GROUP, group_id)
            await tx.unrelate_all(EdgeKind.USER_GROUP, target=group_id)
            await tx.delete(EntityKind.GROUP, group_id)

        logger.info("group_deleted", group=group.slug, members=len(members))
        await self._notify(members)

    # ============================================================
    # Roles
    # ============================================================

    async def create_role(self, name: str, title: str, actor: UUID | None = None) -> Role:
        """Create a role.

        Raises:
            EntryAlreadyExistsError: If the name is taken
        """
        async with self.store.transaction() as tx:
            role = await tx.create(
                EntityKind.ROLE,
                name=name,
                title=title,
                created_by=actor,
                updated_by=actor,
            )
        logger.info("role_created", role=name)
        return role

    async def update_role(
        self,
        role_id: UUID,
        name: str | None = None,
        title: str | None = None,
        actor: UUID | None = None,
    ) -> Role:
        """Rename or retitle a role.

        Raises:
            EntryNotFoundError: If the role does not exist
            EntryAlreadyExistsError: If the new name is taken
            EntryUpdateError: If nothing would change
        """
        candidates = (("name", name), ("title", title))
        fields = {key: value for key, value in candidates if value is not None}
        if not fields:
            raise EntryUpdateError("Nothing to update", details={"resource": "role"})

        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.ROLE, role_id)
            role = await tx.update(EntityKind.ROLE, role_id, updated_by=actor, **fields)
            holders = await tx.sources(EdgeKind.USER_ROLE, role_id) if name else []

        # Role names are part of every holder's snapshot
        await self._notify(holders)
        return role

    async def get_role(self, role_id: UUID) -> Role:
        """Get a role by ID.

        Raises:
            EntryNotFoundError: If the role does not exist
        """
        async with self.store.transaction() as tx:
            return await _require(tx, EntityKind.ROLE, role_id)

    async def find_role(self, name: str) -> Role | None:
        async with self.store.transaction() as tx:
            return await tx.find_by(EntityKind.ROLE, name=name)

    async def list_roles(
        self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
    ) -> tuple[list[Role], int]:
        """List roles by name with pagination.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page

        Returns:
            Tuple of (roles list, total count)
        """
        async with self.store.transaction() as tx:
            total = await tx.count(EntityKind.ROLE)
            roles = await tx.list_ordered(
                EntityKind.ROLE,
                "name",
                offset=(page - 1) * page_size,
                limit=page_size,
            )
        return roles, total

    async def all_roles(self) -> list[Role]:
        async with self.store.transaction() as tx:
            return await tx.list_ordered(EntityKind.ROLE, "name")

    async def role_permissions(self, role_id: UUID) -> list[str]:
        """Sorted names of the permissions granted to a role.

        Raises:
            EntryNotFoundError: If the role does not exist
        """
        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.ROLE, role_id)
            return await tx.traverse(role_id, [EdgeKind.ROLE_PERMISSION], "name")

    # ============================================================
    # Permissions
    # ============================================================

    async def create_permission(self, name: str) -> Permission:
        """Create a permission.

        Raises:
            EntryAlreadyExistsError: If the name is taken
        """
        async with self.store.transaction() as tx:
            return await tx.create(EntityKind.PERMISSION, name=name)

    async def ensure_permissions(self, names: Iterable[str]) -> list[Permission]:
        """Create whichever of ``names`` do not exist yet.

        Returns:
            All requested permissions, sorted by name
        """
        wanted = list(dict.fromkeys(names))
        async with self.store.transaction() as tx:
            existing = {p.name: p for p in await tx.find_all(EntityKind.PERMISSION, "name", wanted)}
            for name in wanted:
                if name not in existing:
                    existing[name] = await tx.create(EntityKind.PERMISSION, name=name)
                    logger.info("permission_created", permission=name)
        return sorted(existing.values(), key=lambda p: p.name)

    async def find_permission(self, name: str) -> Permission | None:
        async with self.store.transaction() as tx:
            return await tx.find_by(EntityKind.PERMISSION, name=name)

    async def list_permissions(self) -> list[Permission]:
        async with self.store.transaction() as tx:
            return await tx.list_ordered(EntityKind.PERMISSION, "name")

    # ============================================================
    # Groups
    # ============================================================

    async def create_group(self, slug: str, title: str, actor: UUID | None = None) -> Group:
        """Create a group.

        Raises:
            EntryAlreadyExistsError: If the slug is taken
        """
        async with self.store.transaction() as tx:
            group = await tx.create(
                EntityKind.GROUP,
                slug=slug,
                title=title,
                created_by=actor,
                updated_by=actor,
            )
        logger.info("group_created", group=slug)
        return group

    async def update_group(
        self,
        group_id: UUID,
        slug: str | None = None,
        title: str | None = None,
        actor: UUID | None = None,
    ) -> Group:
        """Change a group's slug or title.

        Raises:
            EntryNotFoundError: If the group does not exist
            EntryAlreadyExistsError: If the new slug is taken
            EntryUpdateError: If nothing would change
        """
        candidates = (("slug", slug), ("title", title))
        fields = {key: value for key, value in candidates if value is not None}
        if not fields:
            raise EntryUpdateError("Nothing to update", details={"resource": "group"})

        async with self.store.transaction() as tx:
            await _require(tx, EntityKind.GROUP, group_id)
            group = await tx.update(EntityKind.GROUP, group_id, updated_by=actor, **fields)
            members = await tx.sources(EdgeKind.USER_GROUP, group_id) if slug else []

        await self._notify(members)
        return group

    async def get_group(self, group_id: UUID) -> Group:
        """Get a group by ID.

        Raises:
            EntryNotFoundError: If the group does not exist
        """
        async with self.store.transaction() as tx:
            return await _require(tx, EntityKind.GROUP, group_id)

    async def find_group(self, slug: str) -> Group | None:
        async with self.store.transaction() as tx:
            return await tx.find_by(EntityKind.GROUP, slug=slug)

    async def list_groups(self) -> list[Group]:
        async with self.store.transaction() as tx:
            return await tx.list_ordered(EntityKind.GROUP, "slug")

    async def user_group_ids(self, user_id: UUID) -> list[UUID]:
        """IDs of the groups a user belongs to."""
        async with self.store.transaction() as tx:
            return await tx.targets(EdgeKind.USER_GROUP, user_id)
