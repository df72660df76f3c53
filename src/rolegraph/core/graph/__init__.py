"""Graph storage: entity/edge models and the SQLAlchemy-backed store."""

from rolegraph.core.graph.models import (
    Group,
    Permission,
    Role,
    RolePermission,
    User,
    UserGroup,
    UserRole,
)
from rolegraph.core.graph.store import (
    EdgeKind,
    EntityKind,
    GraphTransaction,
    SqlGraphStore,
)


__all__ = [
    "EdgeKind",
    "EntityKind",
    "GraphTransaction",
    "Group",
    "Permission",
    "Role",
    "RolePermission",
    "SqlGraphStore",
    "User",
    "UserGroup",
    "UserRole",
]
