"""Authentication service for login and logout."""

from typing import TYPE_CHECKING, Annotated
from uuid import UUID

from fastapi import Depends

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.auth.schemas import IssuedSession
from rolegraph.core.auth.sessions import SessionManager


if TYPE_CHECKING:
    from rolegraph.core.graph import User
    from rolegraph.modules.users.repos import IdentityStore


class AuthService:
    """Service for authentication operations.

    Handles login, logout, and logout from every session.
    """

    def __init__(self, identity: "IdentityStore", sessions: SessionManager) -> None:
        self.identity = identity
        self.sessions = sessions

    async def login(self, login: str, password: str) -> tuple["User", IssuedSession]:
        """Authenticate a user and open a session.

        Args:
            login: User's login
            password: Plain text password

        Returns:
            Tuple of (user, issued session)

        Raises:
            InvalidCredentialsError: If the login or password is wrong
            UserBlockedError: If the user is blocked
        """
        user = await self.identity.verify_credentials(login, password)
        issued = await self.sessions.create_session(user.id)
        return user, issued

    async def logout(self, token: str) -> None:
        """Close the session behind a token. Unknown tokens are ignored."""
        await self.sessions.revoke(token)

    async def logout_all(self, user_id: UUID) -> int:
        """Close every session of a user.

        Returns:
            Number of sessions closed
        """
        return await self.sessions.revoke_all_for_user(user_id)


def get_auth_service(services: ServicesDep) -> AuthService:
    return AuthService(services.identity, services.sessions)


# Type alias for dependency injection
AuthSvc = Annotated[AuthService, Depends(get_auth_service)]
