"""Session schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rolegraph.core.constants import MAX_LOGIN_LENGTH, MAX_PASSWORD_LENGTH


class AccessSnapshot(BaseModel):
    """A principal's roles, permissions and groups at one point in time.

    Attributes:
        roles: Names of directly assigned roles
        permissions: Names reachable through user -> role -> permission
        groups: Slugs of groups the user belongs to
    """

    model_config = ConfigDict(frozen=True)

    roles: frozenset[str] = frozenset()
    permissions: frozenset[str] = frozenset()
    groups: frozenset[str] = frozenset()


class SessionRecord(BaseModel):
    """What the session store keeps for one token.

    Attributes:
        token_hash: SHA-256 of the session token; the storage key
        user_id: The session's user
        login: The user's login when the session was opened
        created_at: When the session was opened
        expires_at: When the session stops being valid
    """

    model_config = ConfigDict(frozen=True)

    token_hash: str
    user_id: UUID
    login: str
    created_at: datetime
    expires_at: datetime


class SessionContext(BaseModel):
    """A resolved, live session handed to protected operations."""

    model_config = ConfigDict(frozen=True)

    token_hash: str
    user_id: UUID
    login: str
    created_at: datetime
    expires_at: datetime
    snapshot: AccessSnapshot = Field(default_factory=AccessSnapshot)

    def has_permission(self, name: str) -> bool:
        """Exact-match membership test against the cached permission set."""
        return name in self.snapshot.permissions


class IssuedSession(BaseModel):
    """A freshly created session: the raw token is only ever shown here."""

    token: str
    expires_at: datetime
    user_id: UUID


# ============================================================
# Request/response schemas
# ============================================================


class LoginRequest(BaseModel):
    """Schema for login/password sign-in."""

    login: str = Field(..., min_length=1, max_length=MAX_LOGIN_LENGTH)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class SessionResponse(BaseModel):
    """Schema for a newly opened session."""

    token: str
    token_type: str = "bearer"
    expires_at: datetime
    expires_in: int = Field(..., description="Session lifetime in seconds")


class MeResponse(BaseModel):
    """Schema describing the caller's session and effective access."""

    user_id: UUID
    login: str
    expires_at: datetime
    roles: list[str]
    permissions: list[str]
    groups: list[str]

    @classmethod
    def from_context(cls, context: SessionContext) -> "MeResponse":
        snapshot = context.snapshot
        return cls(
            user_id=context.user_id,
            login=context.login,
            expires_at=context.expires_at,
            roles=sorted(snapshot.roles),
            permissions=sorted(snapshot.permissions),
            groups=sorted(snapshot.groups),
        )
