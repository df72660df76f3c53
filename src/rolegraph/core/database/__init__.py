"""Database layer - engine construction, base models, and mixins."""

from rolegraph.core.database.base import ActorMixin, Base, TimestampMixin, UUIDMixin, utc_now
from rolegraph.core.database.session import (
    create_engine_and_factory,
    create_schema,
    drop_schema,
)


__all__ = [
    "ActorMixin",
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "create_engine_and_factory",
    "create_schema",
    "drop_schema",
    "utc_now",
]
