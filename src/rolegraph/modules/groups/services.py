"""Group service for business logic."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.errors import EntryNotFoundError
from rolegraph.core.graph import Group
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.modules.groups.schemas import GroupCreate, GroupUpdate


class GroupService:
    """Service for group administration. Groups are addressed by slug."""

    def __init__(self, graph: AuthorizationGraph) -> None:
        self.graph = graph

    async def get_group(self, slug: str) -> Group:
        """Get a group by slug.

        Raises:
            EntryNotFoundError: If no group has this slug
        """
        group = await self.graph.find_group(slug)
        if group is None:
            raise EntryNotFoundError("Group not found", resource="group", resource_id=slug)
        return group

    async def list_groups(self) -> list[Group]:
        return await self.graph.list_groups()

    async def create_group(self, data: GroupCreate, actor: UUID) -> Group:
        return await self.graph.create_group(data.slug, data.title, actor=actor)

    async def update_group(self, slug: str, data: GroupUpdate, actor: UUID) -> Group:
        group = await self.get_group(slug)
        return await self.graph.update_group(group.id, title=data.title, actor=actor)

    async def delete_group(self, slug: str) -> None:
        """Delete a group; its members leave it."""
        group = await self.get_group(slug)
        await self.graph.delete_group(group.id)


def get_group_service(services: ServicesDep) -> GroupService:
    return GroupService(services.graph)


# Type alias for dependency injection
GroupSvc = Annotated[GroupService, Depends(get_group_service)]
