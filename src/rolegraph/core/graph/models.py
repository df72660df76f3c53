"""Graph entity and edge models.

Entities:
- User: a principal that can log in
- Role: a named bundle of permissions
- Permission: a free-form name such as "role::write" or "news::delete"
- Group: an organisational label; carries no permissions itself

Edges are junction tables with a composite primary key on
(source, target), so a duplicate edge cannot exist.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rolegraph.core.constants import (
    MAX_LOGIN_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PERMISSION_NAME_LENGTH,
    MAX_SLUG_LENGTH,
    MAX_TITLE_LENGTH,
)
from rolegraph.core.database.base import ActorMixin, Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """User model representing a console principal.

    Attributes:
        login: Unique login name
        password_hash: argon2id hash of the password
        blocked: Whether the user is barred from opening sessions
    """

    __tablename__ = "users"

    login: Mapped[str] = mapped_column(
        String(MAX_LOGIN_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    blocked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, login={self.login}, blocked={self.blocked})>"


class Role(Base, UUIDMixin, TimestampMixin, ActorMixin):
    """Role model: a unique name and a display title."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(MAX_TITLE_LENGTH),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"


class Permission(Base, UUIDMixin, TimestampMixin):
    """Permission model. Names are matched exactly; there are no wildcards."""

    __tablename__ = "permissions"

    name: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_NAME_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Permission({self.name})>"


class Group(Base, UUIDMixin, TimestampMixin, ActorMixin):
    """Group model used for organisational scoping."""

    __tablename__ = "groups"

    slug: Mapped[str] = mapped_column(
        String(MAX_SLUG_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(MAX_TITLE_LENGTH),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, slug={self.slug})>"


class UserRole(Base, TimestampMixin):
    """Edge user -> role."""

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"


class RolePermission(Base, TimestampMixin):
    """Edge role -> permission."""

    __tablename__ = "role_permissions"

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission_id={self.permission_id})>"


class UserGroup(Base, TimestampMixin):
    """Edge user -> group."""

    __tablename__ = "user_groups"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    group_id: Mapped[UUID] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<UserGroup(user_id={self.user_id}, group_id={self.group_id})>"
