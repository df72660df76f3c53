"""Pydantic schemas for group operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rolegraph.core.constants import MAX_SLUG_LENGTH, MAX_TITLE_LENGTH


SLUG_PATTERN = r"^[a-z0-9_-]+$"


class GroupCreate(BaseModel):
    """Schema for creating a group."""

    slug: str = Field(..., min_length=1, max_length=MAX_SLUG_LENGTH, pattern=SLUG_PATTERN)
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)


class GroupUpdate(BaseModel):
    """Schema for updating a group."""

    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)


class GroupResponse(BaseModel):
    """Schema for group response data."""

    id: UUID
    slug: str
    title: str
    created_at: datetime
    updated_at: datetime
    created_by: UUID | None = None
    updated_by: UUID | None = None

    model_config = ConfigDict(from_attributes=True)
