"""Async database engine and session factory construction.

Nothing here is created at import time: the composing service builds the
engine, owns its lifecycle, and hands the session factory to the stores.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from rolegraph.core.database.base import Base


def create_engine_and_factory(
    url: str,
    echo: bool = False,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an async engine and a matching session factory.

    In-memory SQLite URLs get a static pool so every session sees the
    same database.

    Args:
        url: Async SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Tuple of (engine, session_factory)
    """
    if url.startswith("sqlite") and (":memory:" in url or url.endswith("://")):
        engine = create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,  # Verify connections before use
        )

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, session_factory


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables registered on the declarative base."""
    # Model modules must be imported so their tables are registered
    import rolegraph.core.graph.models  # noqa: F401, PLC0415

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_schema(engine: AsyncEngine) -> None:
    """Drop all tables registered on the declarative base."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
