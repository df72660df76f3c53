"""Session management.

Sessions are opaque random tokens. The store only ever sees the SHA-256
of a token, so a leaked store dump cannot be replayed.

Lifecycle:
- Active: within TTL; the access snapshot is cached and reused
- Expired: TTL elapsed; detected lazily on the next resolve
- Revoked: removed by logout, blocking or an administrator

Cache contract: resolve() recomputes the snapshot only when none is
cached for the token or its stamp (user generation plus token epoch,
read before the snapshot was computed) is no longer current.
invalidate() bumps one token's epoch; invalidate_all_for_user() bumps
the user's generation, so every live session of that user recomputes on
its next check. Stamps are always read before the user and the graph,
so a block or grant that lands mid-computation leaves the snapshot
stale instead of current.
"""

import hashlib
import secrets
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from rolegraph.core.auth.schemas import AccessSnapshot, IssuedSession, SessionContext, SessionRecord
from rolegraph.core.auth.store import SessionStore
from rolegraph.core.constants import (
    DEFAULT_EXPIRED_RETENTION_SECONDS,
    DEFAULT_SESSION_TTL_SECONDS,
    SESSION_TOKEN_BYTES,
)
from rolegraph.core.database.base import utc_now
from rolegraph.core.errors import (
    InvalidCredentialsError,
    InvalidSessionError,
    SessionExpiredError,
    UserBlockedError,
)


if TYPE_CHECKING:
    from rolegraph.core.permissions.graph import AuthorizationGraph
    from rolegraph.modules.users.repos import IdentityStore


logger = structlog.get_logger()


def generate_token() -> str:
    """Generate an unguessable session token."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a token for storage.

    Args:
        token: The raw session token

    Returns:
        SHA-256 hex digest of the token
    """
    return hashlib.sha256(token.encode()).hexdigest()


class SessionManager:
    """Issues, resolves, caches and revokes sessions.

    Args:
        store: Where session records and snapshots live
        graph: Computes access snapshots on cache miss
        identity: Re-reads the user on cache refill
        ttl_seconds: Session lifetime
        expired_retention_seconds: How long an expired record is kept so it
            reports SessionExpired instead of InvalidSession
        clock: Current-time source, injectable for tests
    """

    def __init__(
        self,
        store: SessionStore,
        graph: "AuthorizationGraph",
        identity: "IdentityStore",
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        expired_retention_seconds: int = DEFAULT_EXPIRED_RETENTION_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.graph = graph
        self.identity = identity
        self.ttl = timedelta(seconds=ttl_seconds)
        self.retention = timedelta(seconds=expired_retention_seconds)
        self.clock = clock

    async def create_session(self, user_id: UUID) -> IssuedSession:
        """Open a session for a user whose credentials were already checked.

        Computes the access snapshot once and caches it with the session.

        Args:
            user_id: The authenticated user's UUID

        Returns:
            The issued session, including the raw token

        Raises:
            InvalidCredentialsError: If the user does not exist
            UserBlockedError: If the user is blocked
        """
        token = generate_token()
        token_hash = hash_token(token)
        stamp = await self._stamp(user_id, token_hash)

        user = await self.identity.find(user_id)
        if user is None:
            raise InvalidCredentialsError()
        if user.blocked:
            logger.warning("session_refused_blocked_user", user_id=str(user_id))
            raise UserBlockedError()

        snapshot = await self.graph.effective_access(user_id)

        now = self.clock()
        record = SessionRecord(
            token_hash=token_hash,
            user_id=user_id,
            login=user.login,
            created_at=now,
            expires_at=now + self.ttl,
        )
        await self.store.save(record, self._retained_seconds())
        await self.store.put_snapshot(
            token_hash, snapshot, stamp, self._seconds_left(record, now)
        )

        logger.info(
            "session_created",
            user_id=str(user_id),
            expires_at=record.expires_at.isoformat(),
            permissions=len(snapshot.permissions),
        )
        return IssuedSession(token=token, expires_at=record.expires_at, user_id=user_id)

    async def resolve(self, token: str | None) -> SessionContext:
        """Validate a token and return its live session.

        Args:
            token: The raw session token

        Returns:
            Session context with the cached access snapshot

        Raises:
            InvalidSessionError: Unknown or revoked token, or the user is gone
            SessionExpiredError: The session outlived its TTL
            UserBlockedError: The user was blocked since the session opened
        """
        if not token:
            raise InvalidSessionError()

        token_hash = hash_token(token)
        record = await self.store.get(token_hash)
        if record is None:
            raise InvalidSessionError()

        now = self.clock()
        if record.expires_at <= now:
            await self.store.drop_snapshot(token_hash)
            logger.info("session_expired", user_id=str(record.user_id))
            raise SessionExpiredError()

        snapshot = await self._current_snapshot(record, now)
        return SessionContext(
            token_hash=record.token_hash,
            user_id=record.user_id,
            login=record.login,
            created_at=record.created_at,
            expires_at=record.expires_at,
            snapshot=snapshot,
        )

    async def has_permission(self, token: str | None, name: str) -> bool:
        """Resolve the session and test one permission name.

        Session errors propagate; a live session without the permission
        yields False.
        """
        context = await self.resolve(token)
        return context.has_permission(name)

    async def invalidate(self, token: str) -> None:
        """Make one session recompute its snapshot on next use."""
        token_hash = hash_token(token)
        await self.store.bump_token_epoch(token_hash, self._retained_seconds())
        await self.store.drop_snapshot(token_hash)

    async def invalidate_all_for_user(self, user_id: UUID) -> None:
        """Make every session of a user recompute its snapshot on next use."""
        await self.store.bump_generation(user_id)
        logger.debug("session_cache_invalidated", user_id=str(user_id))

    async def invalidate_users(self, user_ids: Iterable[UUID]) -> None:
        """Invalidate several users; registered as an AuthorizationGraph listener."""
        for user_id in set(user_ids):
            await self.invalidate_all_for_user(user_id)

    async def revoke(self, token: str) -> bool:
        """Log out one session.

        Returns:
            True if the session existed
        """
        record = await self.store.delete(hash_token(token))
        if record is None:
            return False
        logger.info("session_revoked", user_id=str(record.user_id))
        return True

    async def revoke_all_for_user(self, user_id: UUID) -> int:
        """Log out every session of a user.

        Returns:
            Number of sessions revoked
        """
        revoked = 0
        for token_hash in await self.store.tokens_for_user(user_id):
            if await self.store.delete(token_hash) is not None:
                revoked += 1
        await self.store.bump_generation(user_id)
        if revoked:
            logger.info("sessions_revoked", user_id=str(user_id), count=revoked)
        return revoked

    async def purge_expired(self) -> int:
        """Forget sessions that expired longer ago than the retention window.

        Returns:
            Number of entries removed
        """
        removed = await self.store.purge(self.clock() - self.retention)
        if removed:
            logger.info("expired_sessions_purged", count=removed)
        return removed

    async def _current_snapshot(self, record: SessionRecord, now: datetime) -> AccessSnapshot:
        stamp = await self._stamp(record.user_id, record.token_hash)
        cached = await self.store.get_snapshot(record.token_hash)
        if cached is not None and cached[1] == stamp:
            return cached[0]

        user = await self.identity.find(record.user_id)
        if user is None:
            await self.store.delete(record.token_hash)
            logger.warning("session_user_missing", user_id=str(record.user_id))
            raise InvalidSessionError()
        if user.blocked:
            await self.store.delete(record.token_hash)
            logger.warning("session_user_blocked", user_id=str(record.user_id))
            raise UserBlockedError()

        snapshot = await self.graph.effective_access(record.user_id)
        await self.store.put_snapshot(
            record.token_hash, snapshot, stamp, self._seconds_left(record, now)
        )
        logger.debug("session_cache_refreshed", user_id=str(record.user_id))
        return snapshot

    async def _stamp(self, user_id: UUID, token_hash: str) -> int:
        return await self.store.generation(user_id) + await self.store.token_epoch(token_hash)

    def _retained_seconds(self) -> int:
        return int((self.ttl + self.retention).total_seconds())

    @staticmethod
    def _seconds_left(record: SessionRecord, now: datetime) -> int:
        return max(1, int((record.expires_at - now).total_seconds()))
