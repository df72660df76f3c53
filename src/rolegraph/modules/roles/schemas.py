"""Pydantic schemas for role operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rolegraph.core.constants import MAX_NAME_LENGTH, MAX_TITLE_LENGTH


NAME_PATTERN = r"^[a-z0-9_-]+$"


class RoleCreate(BaseModel):
    """Schema for creating a role, optionally with its permissions."""

    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH, pattern=NAME_PATTERN)
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    permissions: list[str] | None = None


class RoleUpdate(BaseModel):
    """Schema for updating a role.

    ``permissions``, when given, replaces the role's permissions as a
    whole; when omitted the grants stay as they are.
    """

    title: str | None = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    permissions: list[str] | None = None


class RoleResponse(BaseModel):
    """Schema for role response data."""

    id: UUID
    name: str
    title: str
    created_at: datetime
    updated_at: datetime
    created_by: UUID | None = None
    updated_by: UUID | None = None
    permissions: list[str] | None = None

    model_config = ConfigDict(from_attributes=True)


class RoleListResponse(BaseModel):
    """Schema for listing roles."""

    items: list[RoleResponse]
    total: int
    page: int
    page_size: int
