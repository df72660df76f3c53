"""FastAPI dependencies for authentication and authorization.

This module provides FastAPI dependency injection functions for:
- Extracting the session token from the Authorization header or cookie
- Resolving the current session
- Requiring a permission before a route handler runs
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.auth.schemas import SessionContext
from rolegraph.core.permissions.policy import Operation, Resource


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    services: ServicesDep,
) -> str | None:
    """Extract the session token.

    A bearer token wins over the session cookie.

    Returns:
        The raw token, or None when the request carries neither
    """
    if credentials:
        return credentials.credentials
    return request.cookies.get(services.settings.session_cookie_name)


SessionToken = Annotated[str | None, Depends(get_session_token)]


def _bind_session(request: Request, context: SessionContext) -> None:
    request.state.user_id = context.user_id
    structlog.contextvars.bind_contextvars(user_id=str(context.user_id))


async def get_current_session(
    request: Request,
    token: SessionToken,
    services: ServicesDep,
) -> SessionContext:
    """Resolve the current session.

    Raises:
        InvalidSessionError: If the token is missing, unknown or revoked
        SessionExpiredError: If the session outlived its TTL
        UserBlockedError: If the user was blocked
    """
    context = await services.sessions.resolve(token)
    _bind_session(request, context)
    return context


CurrentSession = Annotated[SessionContext, Depends(get_current_session)]


def require_permission(
    resource: Resource,
    operation: Operation,
) -> Callable[..., Awaitable[SessionContext]]:
    """Dependency factory that authorizes a route before its handler runs.

    Usage:
        RoleWriter = Annotated[
            SessionContext,
            Depends(require_permission(Resource.area("role"), Operation.WRITE)),
        ]

        @router.post("/roles/{name}")
        async def create_role(name: str, session: RoleWriter): ...

    Args:
        resource: The protected resource
        operation: What the route does to it

    Returns:
        A dependency yielding the authorized session
    """

    async def authorize(
        request: Request,
        token: SessionToken,
        services: ServicesDep,
    ) -> SessionContext:
        context = await services.policy.authorize(token, resource, operation)
        _bind_session(request, context)
        return context

    return authorize
