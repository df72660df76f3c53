"""Graph store over SQLAlchemy.

The rest of the application treats the database as a graph: entities
addressed by kind and id, and directed edges that can be related,
unrelated and traversed. Every statement is built with the SQLAlchemy
expression language, so all values travel as bound parameters.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from rolegraph.core.database.base import Base
from rolegraph.core.errors import EntryAlreadyExistsError, EntryNotFoundError, StorageError
from rolegraph.core.graph.models import (
    Group,
    Permission,
    Role,
    RolePermission,
    User,
    UserGroup,
    UserRole,
)


logger = structlog.get_logger()


class EntityKind(StrEnum):
    """Kinds of graph vertices."""

    USER = "user"
    ROLE = "role"
    PERMISSION = "permission"
    GROUP = "group"

    @property
    def model(self) -> type[Any]:
        return _ENTITY_MODELS[self]


@dataclass(frozen=True)
class EdgeSpec:
    """Where an edge kind lives and which columns hold its endpoints."""

    model: type[Base]
    source_column: str
    target_column: str
    source: EntityKind
    target: EntityKind


class EdgeKind(StrEnum):
    """Kinds of directed edges."""

    USER_ROLE = "user_role"
    ROLE_PERMISSION = "role_permission"
    USER_GROUP = "user_group"

    @property
    def spec(self) -> EdgeSpec:
        return _EDGE_SPECS[self]


_ENTITY_MODELS: dict[EntityKind, type[Any]] = {
    EntityKind.USER: User,
    EntityKind.ROLE: Role,
    EntityKind.PERMISSION: Permission,
    EntityKind.GROUP: Group,
}

_EDGE_SPECS: dict[EdgeKind, EdgeSpec] = {
    EdgeKind.USER_ROLE: EdgeSpec(UserRole, "user_id", "role_id", EntityKind.USER, EntityKind.ROLE),
    EdgeKind.ROLE_PERMISSION: EdgeSpec(
        RolePermission, "role_id", "permission_id", EntityKind.ROLE, EntityKind.PERMISSION
    ),
    EdgeKind.USER_GROUP: EdgeSpec(
        UserGroup, "user_id", "group_id", EntityKind.USER, EntityKind.GROUP
    ),
}

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
_CONFLICT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class GraphTransaction:
    """Graph operations bound to one database transaction.

    Obtain one through SqlGraphStore.transaction(); it must not outlive
    the ``async with`` block that produced it.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ============================================================
    # Entities
    # ============================================================

    async def get(self, kind: EntityKind, entity_id: UUID) -> Any | None:
        """Get an entity by ID.

        Args:
            kind: Entity kind
            entity_id: The entity's UUID

        Returns:
            The entity if found, None otherwise
        """
        return await self.session.get(kind.model, entity_id)

    async def find_by(self, kind: EntityKind, **criteria: Any) -> Any | None:
        """Get a single entity by unique field values.

        Args:
            kind: Entity kind
            **criteria: Column equality filters, e.g. ``login="alice"``

        Returns:
            The entity if found, None otherwise
        """
        stmt = select(kind.model).filter_by(**criteria)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all(self, kind: EntityKind, field: str, values: Sequence[Any]) -> list[Any]:
        """Get every entity whose ``field`` is one of ``values``."""
        if not values:
            return []
        column = getattr(kind.model, field)
        result = await self.session.execute(select(kind.model).where(column.in_(list(values))))
        return list(result.scalars().all())

    async def list_ordered(
        self,
        kind: EntityKind,
        order_by: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Any]:
        """List entities of a kind ordered by a column."""
        stmt = select(kind.model).order_by(getattr(kind.model, order_by)).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, kind: EntityKind) -> int:
        """Count entities of a kind."""
        result = await self.session.execute(select(func.count()).select_from(kind.model))
        return result.scalar_one()

    async def create(self, kind: EntityKind, **fields: Any) -> Any:
        """Create an entity.

        Args:
            kind: Entity kind
            **fields: Column values

        Returns:
            The created entity with ID populated

        Raises:
            EntryAlreadyExistsError: If a unique field collides
        """
        entity = kind.model(**fields)
        self.session.add(entity)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise EntryAlreadyExistsError(
                f"{kind.value.title()} already exists",
                details={"kind": kind.value},
            ) from exc
        return entity

    async def update(self, kind: EntityKind, entity_id: UUID, **fields: Any) -> Any | None:
        """Update an entity's fields.

        Returns:
            The updated entity, or None if it does not exist

        Raises:
            EntryAlreadyExistsError: If the update collides with a unique field
        """
        entity = await self.get(kind, entity_id)
        if entity is None:
            return None
        for name, value in fields.items():
            setattr(entity, name, value)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise EntryAlreadyExistsError(
                f"{kind.value.title()} already exists",
                details={"kind": kind.value},
            ) from exc
        return entity

    async def delete(self, kind: EntityKind, entity_id: UUID) -> bool:
        """Delete an entity row. Edges are the caller's responsibility.

        Returns:
            True if a row was deleted
        """
        model = kind.model
        result = await self.session.execute(delete(model).where(model.id == entity_id))
        return result.rowcount > 0

    # ============================================================
    # Edges
    # ============================================================

    async def has_edge(self, edge: EdgeKind, source: UUID, target: UUID) -> bool:
        """Check whether an edge exists."""
        spec = edge.spec
        stmt = select(func.count()).select_from(spec.model).where(
            getattr(spec.model, spec.source_column) == source,
            getattr(spec.model, spec.target_column) == target,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def relate(self, edge: EdgeKind, source: UUID, target: UUID) -> bool:
        """Create an edge if it does not already exist.

        The insert skips an existing (source, target) row in the database,
        so concurrent identical writes both succeed.

        Returns:
            True if the edge was created, False if it already existed

        Raises:
            EntryNotFoundError: If an endpoint was deleted concurrently
        """
        spec = edge.spec
        insert = _CONFLICT_INSERTS[self.session.get_bind().dialect.name]
        stmt = (
            insert(spec.model)
            .values({spec.source_column: source, spec.target_column: target})
            .on_conflict_do_nothing(index_elements=[spec.source_column, spec.target_column])
        )
        try:
            result = await self.session.execute(stmt)
        except IntegrityError as exc:
            raise EntryNotFoundError(
                "Edge endpoint no longer exists",
                details={"edge": edge.value},
            ) from exc
        return result.rowcount > 0

    async def unrelate(self, edge: EdgeKind, source: UUID, target: UUID) -> bool:
        """Remove an edge.

        Returns:
            True if an edge was removed
        """
        spec = edge.spec
        stmt = delete(spec.model).where(
            getattr(spec.model, spec.source_column) == source,
            getattr(spec.model, spec.target_column) == target,
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def unrelate_all(
        self,
        edge: EdgeKind,
        source: UUID | None = None,
        target: UUID | None = None,
    ) -> int:
        """Remove every edge of a kind touching the given endpoint(s).

        Returns:
            Number of edges removed
        """
        if source is None and target is None:
            raise ValueError("unrelate_all needs a source or a target")
        spec = edge.spec
        stmt = delete(spec.model)
        if source is not None:
            stmt = stmt.where(getattr(spec.model, spec.source_column) == source)
        if target is not None:
            stmt = stmt.where(getattr(spec.model, spec.target_column) == target)
        result = await self.session.execute(stmt)
        return result.rowcount

    async def sources(self, edge: EdgeKind, target: UUID) -> list[UUID]:
        """IDs of every vertex with an edge of this kind into ``target``."""
        spec = edge.spec
        column = getattr(spec.model, spec.source_column)
        stmt = select(column).where(getattr(spec.model, spec.target_column) == target)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def targets(self, edge: EdgeKind, source: UUID) -> list[UUID]:
        """IDs of every vertex reached from ``source`` by one edge of this kind."""
        spec = edge.spec
        column = getattr(spec.model, spec.target_column)
        stmt = select(column).where(getattr(spec.model, spec.source_column) == source)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def traverse(self, start: UUID, path: Sequence[EdgeKind], field: str) -> list[str]:
        """Follow a chain of edges from ``start`` and collect a field of the end vertices.

        Example:
            await tx.traverse(user_id, [EdgeKind.USER_ROLE, EdgeKind.ROLE_PERMISSION], "name")

        Args:
            start: ID of the first vertex
            path: Edge kinds to follow in order; each hop's target kind must
                be the next hop's source kind
            field: Column of the final vertex kind to return

        Returns:
            Distinct values, sorted. Empty when nothing is reachable.
        """
        if not path:
            raise ValueError("traverse needs at least one edge")
        specs = [edge.spec for edge in path]
        for prev, nxt in zip(specs, specs[1:], strict=False):
            if prev.target is not nxt.source:
                raise ValueError(f"edge path breaks between {prev.target} and {nxt.source}")

        hops = [aliased(spec.model) for spec in specs]
        target_model = aliased(specs[-1].target.model)
        column = getattr(target_model, field)

        stmt = (
            select(column)
            .distinct()
            .select_from(hops[0])
            .where(getattr(hops[0], specs[0].source_column) == start)
        )
        for i in range(1, len(hops)):
            stmt = stmt.join(
                hops[i],
                getattr(hops[i], specs[i].source_column)
                == getattr(hops[i - 1], specs[i - 1].target_column),
            )
        stmt = stmt.join(
            target_model,
            target_model.id == getattr(hops[-1], specs[-1].target_column),
        ).order_by(column)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class SqlGraphStore:
    """Graph store backed by an async SQLAlchemy session factory.

    Each ``transaction()`` block is one database transaction: it commits
    when the block exits normally and rolls back on any exception.

    Usage:
        store = SqlGraphStore(session_factory)
        async with store.transaction() as tx:
            await tx.relate(EdgeKind.USER_ROLE, user_id, role_id)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[GraphTransaction]:
        """Open a transaction.

        Raises:
            EntryAlreadyExistsError: If the commit hits a uniqueness violation
            StorageError: On any other database or connection failure
        """
        try:
            async with self.session_factory() as session, session.begin():
                yield GraphTransaction(session)
        except IntegrityError as exc:
            raise EntryAlreadyExistsError() from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("graph_store_error", error_type=type(exc).__name__, error=str(exc))
            raise StorageError("Graph store unavailable") from exc

    async def ping(self) -> None:
        """Run a trivial query; raises StorageError if the database is unreachable."""
        async with self.transaction() as tx:
            await tx.session.execute(select(1))
