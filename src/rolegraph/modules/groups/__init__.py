"""Groups module: organisational groups users can belong to."""

from rolegraph.modules.groups.routes import router


__all__ = ["router"]
