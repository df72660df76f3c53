"""Service container.

One place builds every long-lived component and wires them together.
The container is created by the application lifespan (or by a test) and
handed to request handlers through ``app.state``; nothing here is a
process-wide singleton.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import redis.asyncio as redis
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from rolegraph.config import Settings
from rolegraph.core.auth.passwords import PasswordHasher
from rolegraph.core.auth.sessions import SessionManager
from rolegraph.core.auth.store import MemorySessionStore, RedisSessionStore, SessionStore
from rolegraph.core.cache import RedisCache, create_redis_client
from rolegraph.core.database import create_engine_and_factory, utc_now
from rolegraph.core.graph import SqlGraphStore
from rolegraph.core.permissions.graph import AuthorizationGraph
from rolegraph.core.permissions.policy import AccessPolicy


if TYPE_CHECKING:
    from rolegraph.modules.users.repos import IdentityStore


logger = structlog.get_logger()

SESSION_KEY_PREFIX = "rolegraph:session:"


@dataclass
class Services:
    """Every component a request handler may need."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    graph_store: SqlGraphStore
    hasher: PasswordHasher
    identity: "IdentityStore"
    graph: AuthorizationGraph
    sessions: SessionManager
    policy: AccessPolicy
    redis_client: redis.Redis | None = None  # type: ignore[type-arg]

    async def close(self) -> None:
        """Release the connection pools."""
        if self.redis_client is not None:
            await self.redis_client.aclose()
        await self.engine.dispose()
        logger.info("services_closed")


def build_services(
    settings: Settings,
    engine: AsyncEngine | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    session_store: SessionStore | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    """Build and wire the service container.

    Args:
        settings: Application settings
        engine: Existing engine; built from ``settings.database_url`` if omitted
        session_factory: Session factory matching ``engine``
        session_store: Existing session store; chosen by ``settings.session_backend`` if omitted
        clock: Current-time source for session expiry

    Returns:
        The wired container
    """
    from rolegraph.modules.users.repos import IdentityStore  # noqa: PLC0415

    if engine is None or session_factory is None:
        engine, session_factory = create_engine_and_factory(
            settings.database_url,
            echo=settings.database_echo,
        )

    redis_client = None
    if session_store is None:
        if settings.session_backend == "redis":
            redis_client = create_redis_client(str(settings.redis_url))
            session_store = RedisSessionStore(RedisCache(redis_client, prefix=SESSION_KEY_PREFIX))
        else:
            session_store = MemorySessionStore(stripes=settings.session_cache_stripes)

    graph_store = SqlGraphStore(session_factory)
    hasher = PasswordHasher(
        salt=settings.password_salt,
        time_cost=settings.password_time_cost,
        memory_cost=settings.password_memory_cost,
        parallelism=settings.password_parallelism,
    )
    identity = IdentityStore(graph_store, hasher)
    graph = AuthorizationGraph(graph_store)
    sessions = SessionManager(
        store=session_store,
        graph=graph,
        identity=identity,
        ttl_seconds=settings.session_ttl_seconds,
        expired_retention_seconds=settings.session_expired_retention_seconds,
        clock=clock,
    )
    # Access changes evict the affected users' cached snapshots
    graph.add_listener(sessions.invalidate_users)

    logger.info(
        "services_built",
        session_backend=type(session_store).__name__,
        session_ttl_seconds=settings.session_ttl_seconds,
    )
    return Services(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        graph_store=graph_store,
        hasher=hasher,
        identity=identity,
        graph=graph,
        sessions=sessions,
        policy=AccessPolicy(sessions),
        redis_client=redis_client,
    )
