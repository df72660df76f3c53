"""Role service for business logic."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.errors import AppException, EntryNotFoundError
from rolegraph.core.graph import Role
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.modules.roles.schemas import RoleCreate, RoleUpdate


logger = structlog.get_logger()


class RoleService:
    """Service for role administration.

    Roles are addressed by their unique name.
    """

    def __init__(self, graph: AuthorizationGraph) -> None:
        self.graph = graph

    async def _find(self, name: str) -> Role:
        role = await self.graph.find_role(name)
        if role is None:
            raise EntryNotFoundError("Role not found", resource="role", resource_id=name)
        return role

    async def list_roles(self, page: int, page_size: int) -> tuple[list[Role], int]:
        return await self.graph.list_roles(page, page_size)

    async def all_roles(self) -> list[Role]:
        return await self.graph.all_roles()

    async def get_role(self, name: str) -> tuple[Role, list[str]]:
        """Get a role with its permission names.

        Raises:
            EntryNotFoundError: If no role has this name
        """
        role = await self._find(name)
        return role, await self.graph.role_permissions(role.id)

    async def create_role(self, data: RoleCreate, actor: UUID) -> tuple[Role, list[str]]:
        """Create a role and grant it the listed permissions.

        Unknown permission names are logged and skipped.

        Raises:
            EntryAlreadyExistsError: If the name is taken
        """
        role = await self.graph.create_role(data.name, data.title, actor=actor)
        permissions: list[str] = []
        if data.permissions:
            permissions = await self.graph.grant_permissions(role.id, data.permissions)
        return role, permissions

    async def update_role(self, name: str, data: RoleUpdate, actor: UUID) -> tuple[Role, list[str]]:
        """Retitle a role and/or replace its permissions.

        Raises:
            EntryNotFoundError: If no role has this name
        """
        role = await self._find(name)
        if data.title is not None:
            role = await self.graph.update_role(role.id, title=data.title, actor=actor)

        if data.permissions is not None:
            permissions = await self.graph.replace_permissions(role.id, data.permissions)
        else:
            permissions = await self.graph.role_permissions(role.id)
        return role, permissions

    async def delete_role(self, name: str) -> None:
        """Delete a role with all its edges.

        Raises:
            EntryNotFoundError: If no role has this name
        """
        role = await self._find(name)
        await self.graph.delete_role(role.id)

    async def delete_roles(self, names: list[str]) -> list[str]:
        """Delete several roles. A failure on one is logged and does not stop the rest.

        Returns:
            Names of the roles actually deleted
        """
        deleted: list[str] = []
        for name in names:
            try:
                await self.delete_role(name)
            except AppException as exc:
                logger.error("role_delete_failed", role=name, error=exc.message)
                continue
            deleted.append(name)
        return deleted

    async def get_permissions(self, name: str) -> list[str]:
        role = await self._find(name)
        return await self.graph.role_permissions(role.id)

    async def set_permissions(self, name: str, permissions: list[str]) -> list[str]:
        """Replace a role's permissions in one transaction.

        Raises:
            EntryNotFoundError: If no role has this name
        """
        role = await self._find(name)
        return await self.graph.replace_permissions(role.id, permissions)


def get_role_service(services: ServicesDep) -> RoleService:
    return RoleService(services.graph)


# Type alias for dependency injection
RoleSvc = Annotated[RoleService, Depends(get_role_service)]
