"""Authorization module.

Provides:
- AuthorizationGraph: roles, permissions, groups and their edges
- AccessPolicy: permission-name derivation and the authorize check
"""

from rolegraph.core.permissions.graph import AccessListener, AuthorizationGraph
from rolegraph.core.permissions.policy import AccessPolicy, Operation, Resource, permission_name


__all__ = [
    "AccessListener",
    "AccessPolicy",
    "AuthorizationGraph",
    "Operation",
    "Resource",
    "permission_name",
]
