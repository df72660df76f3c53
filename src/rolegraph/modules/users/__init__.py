"""Users module: identity store, administration service and routes."""

from rolegraph.modules.users.routes import router


__all__ = ["router"]
