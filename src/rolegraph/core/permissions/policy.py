"""Access policy.

Maps a protected resource and an operation to the permission name that
gates it, and checks a session against that name.

Naming rule:
- a public resource is gated by its category, ``content::<operation>``,
  so one grant covers every public resource
- any other resource is gated by its own slug, ``<slug>::<operation>``
"""

from dataclasses import dataclass
from enum import StrEnum

import structlog

from rolegraph.core.auth.schemas import SessionContext
from rolegraph.core.auth.sessions import SessionManager
from rolegraph.core.constants import PERMISSION_SEPARATOR, PUBLIC_CONTENT_CATEGORY
from rolegraph.core.errors import AccessForbiddenError


logger = structlog.get_logger()


class Operation(StrEnum):
    """What a caller wants to do with a resource."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"


@dataclass(frozen=True)
class Resource:
    """A protected resource.

    Attributes:
        slug: The resource's own permission prefix, e.g. a schema slug or "role"
        is_public: Whether the category permission applies instead of the slug
        category: Prefix used for public resources
    """

    slug: str
    is_public: bool = False
    category: str = PUBLIC_CONTENT_CATEGORY

    @classmethod
    def schema(cls, slug: str, is_public: bool) -> "Resource":
        """A dynamic-content schema."""
        return cls(slug=slug, is_public=is_public)

    @classmethod
    def area(cls, name: str) -> "Resource":
        """An admin area such as "role", "user" or "group"."""
        return cls(slug=name)


def permission_name(prefix: str, operation: Operation) -> str:
    """Join a prefix and an operation into a permission name."""
    return f"{prefix}{PERMISSION_SEPARATOR}{operation.value}"


class AccessPolicy:
    """The single check every protected operation runs before side effects.

    Session errors from SessionManager pass through unchanged; a live
    session without the required permission gets AccessForbiddenError.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions

    @staticmethod
    def required_permission(resource: Resource, operation: Operation) -> str:
        """Permission name required to perform ``operation`` on ``resource``.

        Example:
            >>> AccessPolicy.required_permission(Resource.schema("news", True), Operation.WRITE)
            'content::write'
            >>> AccessPolicy.required_permission(Resource.schema("news", False), Operation.WRITE)
            'news::write'
        """
        prefix = resource.category if resource.is_public else resource.slug
        return permission_name(prefix, operation)

    async def authorize(
        self,
        token: str | None,
        resource: Resource,
        operation: Operation,
    ) -> SessionContext:
        """Resolve the session and require the resource's permission.

        Args:
            token: The raw session token
            resource: What is being accessed
            operation: What is being done to it

        Returns:
            The resolved session, for use by the protected operation

        Raises:
            InvalidSessionError: Unknown or revoked token
            SessionExpiredError: The session outlived its TTL
            UserBlockedError: The user was blocked
            AccessForbiddenError: The session lacks the permission
        """
        return await self.authorize_permission(token, self.required_permission(resource, operation))

    async def authorize_permission(self, token: str | None, name: str) -> SessionContext:
        """Resolve the session and require a literal permission name."""
        context = await self.sessions.resolve(token)
        self.check(context, name)
        return context

    @staticmethod
    def check(context: SessionContext, name: str) -> None:
        """Require ``name`` of an already resolved session.

        Raises:
            AccessForbiddenError: The session lacks the permission
        """
        if context.has_permission(name):
            return
        logger.warning(
            "access_denied",
            user_id=str(context.user_id),
            required_permission=name,
        )
        raise AccessForbiddenError(details={"required_permission": name})
