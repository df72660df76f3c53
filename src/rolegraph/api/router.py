"""Top-level router: health checks, application info and the versioned admin API."""

from typing import Literal

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from rolegraph.api.dependencies import ServicesDep
from rolegraph.core.auth.routes import router as auth_router
from rolegraph.core.errors import StorageError
from rolegraph.modules.groups import router as groups_router
from rolegraph.modules.roles import router as roles_router
from rolegraph.modules.users import router as users_router


class Liveness(BaseModel):
    status: Literal["alive"] = "alive"


class Readiness(BaseModel):
    status: Literal["ready", "degraded"]
    checks: dict[str, str]


class AppInfo(BaseModel):
    app: str
    environment: str
    session_backend: str


health = APIRouter(tags=["health"])


@health.get("/health/live", response_model=Liveness, summary="Liveness check")
async def liveness() -> Liveness:
    return Liveness()


@health.get("/health/ready", response_model=Readiness, summary="Readiness check")
async def readiness(services: ServicesDep, response: Response) -> Readiness:
    """Report whether the graph store answers queries.

    Responds 503 with ``status="degraded"`` while the database is unreachable.
    """
    try:
        await services.graph_store.ping()
    except StorageError as exc:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return Readiness(status="degraded", checks={"database": exc.message})
    return Readiness(status="ready", checks={"database": "ok"})


@health.get("/info", response_model=AppInfo, summary="Application info")
async def info(services: ServicesDep) -> AppInfo:
    settings = services.settings
    return AppInfo(
        app=settings.app_name,
        environment=settings.environment,
        session_backend=settings.session_backend,
    )


def build_api_router() -> APIRouter:
    """Assemble the health routes and everything under ``/api/v1``."""
    v1 = APIRouter(prefix="/api/v1")
    for router in (auth_router, roles_router, users_router, groups_router):
        v1.include_router(router)

    root = APIRouter()
    root.include_router(health)
    root.include_router(v1)
    return root
