"""Authentication module: password hashing and session management.

Route handlers and FastAPI dependencies live in ``rolegraph.core.auth.routes``
and ``rolegraph.core.auth.dependencies``; they are not re-exported here so
that importing the session core never pulls in the HTTP layer.
"""

from rolegraph.core.auth.passwords import PasswordHasher
from rolegraph.core.auth.schemas import (
    AccessSnapshot,
    IssuedSession,
    SessionContext,
    SessionRecord,
)
from rolegraph.core.auth.sessions import SessionManager, generate_token, hash_token
from rolegraph.core.auth.store import MemorySessionStore, RedisSessionStore, SessionStore


__all__ = [
    "AccessSnapshot",
    "IssuedSession",
    "MemorySessionStore",
    "PasswordHasher",
    "RedisSessionStore",
    "SessionContext",
    "SessionManager",
    "SessionRecord",
    "SessionStore",
    "generate_token",
    "hash_token",
]
