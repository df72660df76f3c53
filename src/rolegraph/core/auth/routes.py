"""Authentication API routes.

Provides endpoints for:
- Login (session token in the body and in a cookie)
- Logout and logout from every session
- The caller's own session and effective access
"""

from fastapi import APIRouter, Response, status

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.auth.dependencies import CurrentSession, SessionToken
from rolegraph.core.auth.schemas import LoginRequest, MeResponse, SessionResponse
from rolegraph.core.auth.service import AuthSvc
from rolegraph.core.errors import InvalidSessionError


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Login with login and password",
    description="Authenticate and open a session. The token is returned and also set as a cookie.",
)
async def login(
    data: LoginRequest,
    service: AuthSvc,
    services: ServicesDep,
    response: Response,
) -> SessionResponse:
    """Login with login and password."""
    _user, issued = await service.login(login=data.login, password=data.password)
    settings = services.settings

    response.set_cookie(
        key=settings.session_cookie_name,
        value=issued.token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return SessionResponse(
        token=issued.token,
        expires_at=issued.expires_at,
        expires_in=settings.session_ttl_seconds,
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout",
    description="Revoke the current session.",
)
async def logout(
    token: SessionToken,
    service: AuthSvc,
    services: ServicesDep,
    response: Response,
) -> None:
    """Logout by revoking the session token."""
    if not token:
        raise InvalidSessionError()
    await service.logout(token)
    response.delete_cookie(services.settings.session_cookie_name)


@router.post(
    "/logout-all",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout from all devices",
    description="Revoke every session of the current user.",
)
async def logout_all(
    session: CurrentSession,
    service: AuthSvc,
    services: ServicesDep,
    response: Response,
) -> None:
    """Logout from all devices."""
    await service.logout_all(session.user_id)
    response.delete_cookie(services.settings.session_cookie_name)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current session",
    description="The caller's login with the roles, permissions and groups cached in the session.",
)
async def me(session: CurrentSession) -> MeResponse:
    """Describe the current session."""
    return MeResponse.from_context(session)
