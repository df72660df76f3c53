"""User service for business logic."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.auth.sessions import SessionManager
from rolegraph.core.errors import EntryDeleteError, EntryUpdateError
from rolegraph.core.graph import User
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.modules.users.repos import IdentityStore
from rolegraph.modules.users.schemas import UserCreate, UserUpdate


logger = structlog.get_logger()


class UserService:
    """Service for user administration.

    Keeps sessions consistent with account changes: blocking a user,
    changing their password or deleting them revokes their sessions.
    """

    def __init__(
        self,
        identity: IdentityStore,
        graph: AuthorizationGraph,
        sessions: SessionManager,
    ) -> None:
        self.identity = identity
        self.graph = graph
        self.sessions = sessions

    async def create_user(self, data: UserCreate) -> User:
        """Create a new user.

        Raises:
            EntryAlreadyExistsError: If the login is taken
        """
        return await self.identity.create_user(data.login, data.password, blocked=data.blocked)

    async def get_user(self, login: str) -> User:
        """Get a user by login.

        Raises:
            EntryNotFoundError: If no user has this login
        """
        return await self.identity.get_by_login(login)

    async def list_users(self, page: int, page_size: int) -> tuple[list[User], int]:
        """List users.

        Returns:
            Tuple of (users list, total count)
        """
        return await self.identity.list_users(page, page_size)

    async def update_user(self, login: str, data: UserUpdate) -> User:
        """Change a user's login and/or password.

        A password change closes every session of the user.

        Raises:
            EntryNotFoundError: If the user does not exist
            EntryAlreadyExistsError: If the new login is taken
        """
        user = await self.identity.get_by_login(login)

        if data.login and data.login != user.login:
            user = await self.identity.update_login(user.id, data.login)

        if data.password:
            await self.identity.change_password(user.id, data.password)
            await self.sessions.revoke_all_for_user(user.id)

        return user

    async def set_blocked(self, login: str, blocked: bool, actor: UUID) -> User:
        """Block or unblock a user. Blocking closes every session of the user.

        Raises:
            EntryNotFoundError: If the user does not exist
            EntryUpdateError: If a user tries to block themselves
        """
        user = await self.identity.get_by_login(login)
        if blocked and user.id == actor:
            raise EntryUpdateError("Cannot block the current user", details={"login": login})

        user = await self.identity.set_blocked(user.id, blocked)
        if blocked:
            await self.sessions.revoke_all_for_user(user.id)
        return user

    async def delete_user(self, login: str, actor: UUID) -> None:
        """Delete a user with all their edges, then close their sessions.

        Raises:
            EntryNotFoundError: If the user does not exist
            EntryDeleteError: If a user tries to delete themselves
        """
        user = await self.identity.get_by_login(login)
        if user.id == actor:
            raise EntryDeleteError("Cannot delete the current user", details={"login": login})

        await self.graph.delete_user(user.id)
        await self.sessions.revoke_all_for_user(user.id)

    async def get_roles(self, login: str) -> list[str]:
        user = await self.identity.get_by_login(login)
        return await self.graph.effective_roles(user.id)

    async def set_roles(self, login: str, names: list[str]) -> list[str]:
        """Replace a user's roles. Unknown role names are skipped."""
        user = await self.identity.get_by_login(login)
        return await self.graph.set_user_roles(user.id, names)

    async def get_groups(self, login: str) -> list[str]:
        user = await self.identity.get_by_login(login)
        return await self.graph.effective_groups(user.id)

    async def set_groups(self, login: str, slugs: list[str]) -> list[str]:
        """Replace a user's groups. Unknown group slugs are skipped."""
        user = await self.identity.get_by_login(login)
        return await self.graph.set_user_groups(user.id, slugs)

    async def get_permissions(self, login: str) -> list[str]:
        user = await self.identity.get_by_login(login)
        return await self.graph.effective_permissions(user.id)


def get_user_service(services: ServicesDep) -> UserService:
    return UserService(services.identity, services.graph, services.sessions)


# Type alias for dependency injection
UserSvc = Annotated[UserService, Depends(get_user_service)]
