"""User administration routes.

Every route authorizes against the ``user`` area before touching state.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from rolegraph.api.dependencies import ServicesDep
from rolegraph.api.schemas import NameList
from rolegraph.core.auth.dependencies import require_permission
from rolegraph.core.auth.schemas import SessionContext
from rolegraph.core.constants import MAX_PAGE_SIZE
from rolegraph.core.permissions.policy import Operation, Resource
from rolegraph.modules.users.schemas import (
    UserBlockRequest,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from rolegraph.modules.users.services import UserSvc


USERS = Resource.area("user")

UserReader = Annotated[SessionContext, Depends(require_permission(USERS, Operation.READ))]
UserWriter = Annotated[SessionContext, Depends(require_permission(USERS, Operation.WRITE))]
UserDeleter = Annotated[SessionContext, Depends(require_permission(USERS, Operation.DELETE))]

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse, summary="List users")
async def list_users(
    _session: UserReader,
    service: UserSvc,
    services: ServicesDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
) -> UserListResponse:
    """List users ordered by login."""
    size = page_size or services.settings.rows_per_page
    users, total = await service.list_users(page, size)
    return UserListResponse(
        items=[UserResponse.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=size,
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
)
async def create_user(data: UserCreate, _session: UserWriter, service: UserSvc) -> UserResponse:
    """Create a user."""
    user = await service.create_user(data)
    return UserResponse.model_validate(user)


@router.get("/{login}", response_model=UserResponse, summary="Get user")
async def get_user(login: str, _session: UserReader, service: UserSvc) -> UserResponse:
    """Get a user by login."""
    return UserResponse.model_validate(await service.get_user(login))


@router.patch("/{login}", response_model=UserResponse, summary="Update user")
async def update_user(
    login: str,
    data: UserUpdate,
    _session: UserWriter,
    service: UserSvc,
) -> UserResponse:
    """Change a user's login or password."""
    return UserResponse.model_validate(await service.update_user(login, data))


@router.post("/{login}/block", response_model=UserResponse, summary="Block or unblock user")
async def block_user(
    login: str,
    data: UserBlockRequest,
    session: UserWriter,
    service: UserSvc,
) -> UserResponse:
    """Block or unblock a user."""
    user = await service.set_blocked(login, data.blocked, actor=session.user_id)
    return UserResponse.model_validate(user)


@router.delete("/{login}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user")
async def delete_user(login: str, session: UserDeleter, service: UserSvc) -> None:
    """Delete a user and every edge touching them."""
    await service.delete_user(login, actor=session.user_id)


@router.get("/{login}/roles", response_model=NameList, summary="Get user roles")
async def get_user_roles(login: str, _session: UserReader, service: UserSvc) -> NameList:
    """Names of the roles assigned to a user."""
    return NameList(items=await service.get_roles(login))


@router.put("/{login}/roles", response_model=NameList, summary="Set user roles")
async def set_user_roles(
    login: str,
    data: NameList,
    _session: UserWriter,
    service: UserSvc,
) -> NameList:
    """Replace a user's roles. Unknown role names are ignored."""
    return NameList(items=await service.set_roles(login, data.items))


@router.get("/{login}/groups", response_model=NameList, summary="Get user groups")
async def get_user_groups(login: str, _session: UserReader, service: UserSvc) -> NameList:
    """Slugs of the groups a user belongs to."""
    return NameList(items=await service.get_groups(login))


@router.put("/{login}/groups", response_model=NameList, summary="Set user groups")
async def set_user_groups(
    login: str,
    data: NameList,
    _session: UserWriter,
    service: UserSvc,
) -> NameList:
    """Replace a user's groups. Unknown group slugs are ignored."""
    return NameList(items=await service.set_groups(login, data.items))


@router.get("/{login}/permissions", response_model=NameList, summary="Get user permissions")
async def get_user_permissions(login: str, _session: UserReader, service: UserSvc) -> NameList:
    """Effective permissions of a user."""
    return NameList(items=await service.get_permissions(login))
