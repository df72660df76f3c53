"""Group administration routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from rolegraph.api.schemas import Record, RecordList
from rolegraph.core.auth.dependencies import require_permission
from rolegraph.core.auth.schemas import SessionContext
from rolegraph.core.permissions.policy import Operation, Resource
from rolegraph.modules.groups.schemas import GroupCreate, GroupResponse, GroupUpdate
from rolegraph.modules.groups.services import GroupSvc


GROUPS = Resource.area("group")

GroupReader = Annotated[SessionContext, Depends(require_permission(GROUPS, Operation.READ))]
GroupWriter = Annotated[SessionContext, Depends(require_permission(GROUPS, Operation.WRITE))]
GroupDeleter = Annotated[SessionContext, Depends(require_permission(GROUPS, Operation.DELETE))]

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("", response_model=RecordList, summary="List groups")
async def list_groups(_session: GroupReader, service: GroupSvc) -> RecordList:
    """Every group as a slug/title pair."""
    groups = await service.list_groups()
    return RecordList(items=[Record(name=group.slug, title=group.title) for group in groups])


@router.post(
    "",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create group",
)
async def create_group(data: GroupCreate, session: GroupWriter, service: GroupSvc) -> GroupResponse:
    """Create a group."""
    return GroupResponse.model_validate(await service.create_group(data, actor=session.user_id))


@router.get("/{slug}", response_model=GroupResponse, summary="Get group")
async def get_group(slug: str, _session: GroupReader, service: GroupSvc) -> GroupResponse:
    """Get a group by slug."""
    return GroupResponse.model_validate(await service.get_group(slug))


@router.patch("/{slug}", response_model=GroupResponse, summary="Update group")
async def update_group(
    slug: str,
    data: GroupUpdate,
    session: GroupWriter,
    service: GroupSvc,
) -> GroupResponse:
    """Retitle a group."""
    group = await service.update_group(slug, data, actor=session.user_id)
    return GroupResponse.model_validate(group)


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete group")
async def delete_group(slug: str, _session: GroupDeleter, service: GroupSvc) -> None:
    """Delete a group."""
    await service.delete_group(slug)
