"""Identity store: users and their credentials."""

from uuid import UUID

import structlog

from rolegraph.core.auth.passwords import PasswordHasher
from rolegraph.core.constants import DEFAULT_PAGE_SIZE
from rolegraph.core.errors import (
    EntryNotFoundError,
    InvalidCredentialsError,
    UserBlockedError,
)
from rolegraph.core.graph import EntityKind, SqlGraphStore, User


logger = structlog.get_logger()


class IdentityStore:
    """Persists users and checks their credentials.

    Passwords are hashed before they reach the store; the plain text is
    never persisted or logged.
    """

    def __init__(self, store: SqlGraphStore, hasher: PasswordHasher) -> None:
        self.store = store
        self.hasher = hasher

    async def create_user(self, login: str, password: str, blocked: bool = False) -> User:
        """Create a new user.

        Args:
            login: Unique login
            password: Plain text password
            blocked: Whether the user starts blocked

        Returns:
            The created user

        Raises:
            EntryAlreadyExistsError: If the login is taken
            PasswordHashError: If hashing fails
        """
        password_hash = self.hasher.hash(password)
        async with self.store.transaction() as tx:
            user = await tx.create(
                EntityKind.USER,
                login=login,
                password_hash=password_hash,
                blocked=blocked,
            )
        logger.info("user_created", user_id=str(user.id), login=login)
        return user

    async def find(self, user_id: UUID) -> User | None:
        """Get a user by ID, or None."""
        async with self.store.transaction() as tx:
            return await tx.get(EntityKind.USER, user_id)

    async def get(self, user_id: UUID) -> User:
        """Get a user by ID.

        Raises:
            EntryNotFoundError: If the user does not exist
        """
        user = await self.find(user_id)
        if user is None:
            raise EntryNotFoundError("User not found", resource="user", resource_id=str(user_id))
        return user

    async def get_by_login(self, login: str) -> User:
        """Get a user by login.

        Raises:
            EntryNotFoundError: If no user has this login
        """
        async with self.store.transaction() as tx:
            user = await tx.find_by(EntityKind.USER, login=login)
        if user is None:
            raise EntryNotFoundError("User not found", resource="user")
        return user

    async def update_login(self, user_id: UUID, login: str) -> User:
        """Change a user's login.

        Raises:
            EntryNotFoundError: If the user does not exist
            EntryAlreadyExistsError: If the login is taken
        """
        async with self.store.transaction() as tx:
            user = await tx.update(EntityKind.USER, user_id, login=login)
        if user is None:
            raise EntryNotFoundError("User not found", resource="user", resource_id=str(user_id))
        return user

    async def change_password(self, user_id: UUID, password: str) -> None:
        """Replace a user's password.

        Raises:
            EntryNotFoundError: If the user does not exist
            PasswordHashError: If hashing fails
        """
        password_hash = self.hasher.hash(password)
        async with self.store.transaction() as tx:
            user = await tx.update(EntityKind.USER, user_id, password_hash=password_hash)
        if user is None:
            raise EntryNotFoundError("User not found", resource="user", resource_id=str(user_id))
        logger.info("password_changed", user_id=str(user_id))

    async def set_blocked(self, user_id: UUID, blocked: bool) -> User:
        """Block or unblock a user.

        Raises:
            EntryNotFoundError: If the user does not exist
        """
        async with self.store.transaction() as tx:
            user = await tx.update(EntityKind.USER, user_id, blocked=blocked)
        if user is None:
            raise EntryNotFoundError("User not found", resource="user", resource_id=str(user_id))
        logger.info("user_blocked" if blocked else "user_unblocked", user_id=str(user_id))
        return user

    async def list_users(
        self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
    ) -> tuple[list[User], int]:
        """List users by login with pagination.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page

        Returns:
            Tuple of (users list, total count)
        """
        async with self.store.transaction() as tx:
            total = await tx.count(EntityKind.USER)
            users = await tx.list_ordered(
                EntityKind.USER,
                "login",
                offset=(page - 1) * page_size,
                limit=page_size,
            )
        return users, total

    async def verify_credentials(self, login: str, password: str) -> User:
        """Check a login and password.

        An unknown login still pays for one hash so response timing does
        not reveal which logins exist.

        Returns:
            The authenticated user

        Raises:
            InvalidCredentialsError: Unknown login or wrong password
            UserBlockedError: Valid credentials of a blocked user
            PasswordHashError: The stored hash is unusable
        """
        async with self.store.transaction() as tx:
            user = await tx.find_by(EntityKind.USER, login=login)

        if user is None:
            self.hasher.hash(password)
            logger.info("login_failed", reason="unknown_login")
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, user.password_hash):
            logger.info("login_failed", reason="wrong_password", user_id=str(user.id))
            raise InvalidCredentialsError()

        if user.blocked:
            logger.warning("login_refused_blocked_user", user_id=str(user.id))
            raise UserBlockedError()

        return user
