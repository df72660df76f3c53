"""Roles module: role administration and role permission assignment."""

from rolegraph.modules.roles.routes import router


__all__ = ["router"]
