"""Role administration routes.

Every route authorizes against the ``role`` area before touching state.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from rolegraph.api.dependencies import ServicesDep
from rolegraph.api.schemas import NameList, Record, RecordList
from rolegraph.core.auth.dependencies import require_permission
from rolegraph.core.auth.schemas import SessionContext
from rolegraph.core.constants import MAX_PAGE_SIZE
from rolegraph.core.graph import Role
from rolegraph.core.permissions.policy import Operation, Resource
from rolegraph.modules.roles.schemas import (
    RoleCreate,
    RoleListResponse,
    RoleResponse,
    RoleUpdate,
)
from rolegraph.modules.roles.services import RoleSvc


ROLES = Resource.area("role")

RoleReader = Annotated[SessionContext, Depends(require_permission(ROLES, Operation.READ))]
RoleWriter = Annotated[SessionContext, Depends(require_permission(ROLES, Operation.WRITE))]
RoleDeleter = Annotated[SessionContext, Depends(require_permission(ROLES, Operation.DELETE))]

router = APIRouter(prefix="/roles", tags=["roles"])


def _response(role: Role, permissions: list[str] | None = None) -> RoleResponse:
    response = RoleResponse.model_validate(role)
    if permissions:
        response.permissions = permissions
    return response


@router.get("", response_model=RoleListResponse, summary="List roles")
async def list_roles(
    _session: RoleReader,
    service: RoleSvc,
    services: ServicesDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
) -> RoleListResponse:
    """List roles ordered by name."""
    size = page_size or services.settings.rows_per_page
    roles, total = await service.list_roles(page, size)
    return RoleListResponse(
        items=[_response(role) for role in roles],
        total=total,
        page=page,
        page_size=size,
    )


@router.get("/all", response_model=RecordList, summary="All roles")
async def all_roles(_session: RoleReader, service: RoleSvc) -> RecordList:
    """Every role as a name/title pair, for selection lists."""
    roles = await service.all_roles()
    return RecordList(items=[Record(name=role.name, title=role.title) for role in roles])


@router.post("/delete", response_model=NameList, summary="Delete several roles")
async def delete_roles(data: NameList, _session: RoleDeleter, service: RoleSvc) -> NameList:
    """Delete the listed roles; returns the names actually deleted."""
    return NameList(items=await service.delete_roles(data.items))


@router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create role",
)
async def create_role(data: RoleCreate, session: RoleWriter, service: RoleSvc) -> RoleResponse:
    """Create a role. Unknown permission names are ignored."""
    role, permissions = await service.create_role(data, actor=session.user_id)
    return _response(role, permissions)


@router.get("/{name}", response_model=RoleResponse, summary="Get role")
async def get_role(name: str, _session: RoleReader, service: RoleSvc) -> RoleResponse:
    """Get a role with its permissions."""
    role, permissions = await service.get_role(name)
    return _response(role, permissions)


@router.patch("/{name}", response_model=RoleResponse, summary="Update role")
async def update_role(
    name: str,
    data: RoleUpdate,
    session: RoleWriter,
    service: RoleSvc,
) -> RoleResponse:
    """Retitle a role and/or replace its permissions."""
    role, permissions = await service.update_role(name, data, actor=session.user_id)
    return _response(role, permissions)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete role")
async def delete_role(name: str, _session: RoleDeleter, service: RoleSvc) -> None:
    """Delete a role; it is removed from every user holding it."""
    await service.delete_role(name)


@router.get("/{name}/permissions", response_model=NameList, summary="Get role permissions")
async def get_role_permissions(name: str, _session: RoleReader, service: RoleSvc) -> NameList:
    """Names of the permissions granted to a role."""
    return NameList(items=await service.get_permissions(name))


@router.put("/{name}/permissions", response_model=NameList, summary="Set role permissions")
async def set_role_permissions(
    name: str,
    data: NameList,
    _session: RoleWriter,
    service: RoleSvc,
) -> NameList:
    """Replace a role's permissions. Unknown permission names are ignored."""
    return NameList(items=await service.set_permissions(name, data.items))
