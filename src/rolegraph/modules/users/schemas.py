"""Pydantic schemas for user operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rolegraph.core.constants import MAX_LOGIN_LENGTH, MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH


LOGIN_PATTERN = r"^[A-Za-z0-9_.@-]+$"


class UserCreate(BaseModel):
    """Schema for creating a new user with password."""

    login: str = Field(..., min_length=1, max_length=MAX_LOGIN_LENGTH, pattern=LOGIN_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)
    blocked: bool = False


class UserUpdate(BaseModel):
    """Schema for updating user data. Omitted fields stay unchanged."""

    login: str | None = Field(
        None, min_length=1, max_length=MAX_LOGIN_LENGTH, pattern=LOGIN_PATTERN
    )
    password: str | None = Field(
        None, min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH
    )


class UserBlockRequest(BaseModel):
    """Schema for blocking or unblocking a user."""

    blocked: bool


class UserResponse(BaseModel):
    """Schema for user response data."""

    id: UUID
    login: str
    blocked: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    """Schema for listing users."""

    items: list[UserResponse]
    total: int
    page: int
    page_size: int
