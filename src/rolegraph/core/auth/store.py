"""Session storage backends.

A session store keeps:
- session records keyed by token hash
- cached access snapshots keyed by token hash, each tagged with a stamp
- per-user bookkeeping: the set of that user's token hashes and a
  generation counter bumped whenever the user's access changes
- a per-token epoch bumped when a single session is invalidated

Snapshots are stamped with the user generation plus the token epoch
read before they were computed. Both counters only grow, so a snapshot
whose stamp differs from the current one is stale and must be
recomputed, and a refill that raced with an invalidation can never be
mistaken for fresh data.
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

import structlog

from rolegraph.core.auth.schemas import AccessSnapshot, SessionRecord
from rolegraph.core.cache.redis import RedisCache
from rolegraph.core.cache.striped import StripedDict
from rolegraph.core.constants import DEFAULT_CACHE_STRIPES


logger = structlog.get_logger()


class SessionStore(Protocol):
    """Storage contract used by SessionManager."""

    async def save(self, record: SessionRecord, ttl_seconds: int) -> None: ...

    async def get(self, token_hash: str) -> SessionRecord | None: ...

    async def delete(self, token_hash: str) -> SessionRecord | None: ...

    async def tokens_for_user(self, user_id: UUID) -> set[str]: ...

    async def get_snapshot(self, token_hash: str) -> tuple[AccessSnapshot, int] | None: ...

    async def put_snapshot(
        self,
        token_hash: str,
        snapshot: AccessSnapshot,
        stamp: int,
        ttl_seconds: int,
    ) -> None: ...

    async def drop_snapshot(self, token_hash: str) -> bool: ...

    async def generation(self, user_id: UUID) -> int: ...

    async def bump_generation(self, user_id: UUID) -> int: ...

    async def token_epoch(self, token_hash: str) -> int: ...

    async def bump_token_epoch(self, token_hash: str, ttl_seconds: int) -> int: ...

    async def purge(self, before: datetime) -> int: ...


class MemorySessionStore:
    """In-process session store on lock-striped maps.

    Records are kept until purge() removes them, so an expired session
    can still be told apart from one that never existed.
    """

    def __init__(self, stripes: int = DEFAULT_CACHE_STRIPES) -> None:
        self._records: StripedDict[str, SessionRecord] = StripedDict(stripes)
        self._snapshots: StripedDict[str, tuple[AccessSnapshot, int]] = StripedDict(stripes)
        self._user_tokens: StripedDict[UUID, frozenset[str]] = StripedDict(stripes)
        self._generations: StripedDict[UUID, int] = StripedDict(stripes)
        self._epochs: StripedDict[str, int] = StripedDict(stripes)

    async def save(self, record: SessionRecord, ttl_seconds: int) -> None:  # noqa: ARG002
        self._records.set(record.token_hash, record)
        self._user_tokens.update(
            record.user_id,
            lambda tokens: (tokens or frozenset()) | {record.token_hash},
        )

    async def get(self, token_hash: str) -> SessionRecord | None:
        return self._records.get(token_hash)

    async def delete(self, token_hash: str) -> SessionRecord | None:
        record = self._records.pop(token_hash)
        self._snapshots.pop(token_hash)
        self._epochs.pop(token_hash)
        if record is not None:
            self._user_tokens.update(
                record.user_id,
                lambda tokens: ((tokens - {token_hash}) or None) if tokens else None,
            )
        return record

    async def tokens_for_user(self, user_id: UUID) -> set[str]:
        return set(self._user_tokens.get(user_id) or ())

    async def get_snapshot(self, token_hash: str) -> tuple[AccessSnapshot, int] | None:
        return self._snapshots.get(token_hash)

    async def put_snapshot(
        self,
        token_hash: str,
        snapshot: AccessSnapshot,
        stamp: int,
        ttl_seconds: int,  # noqa: ARG002
    ) -> None:
        # Skip snapshots for sessions revoked while they were being computed
        if token_hash in self._records:
            self._snapshots.set(token_hash, (snapshot, stamp))

    async def drop_snapshot(self, token_hash: str) -> bool:
        return self._snapshots.pop(token_hash) is not None

    async def generation(self, user_id: UUID) -> int:
        return self._generations.get(user_id) or 0

    async def bump_generation(self, user_id: UUID) -> int:
        return self._generations.update(user_id, lambda current: (current or 0) + 1) or 0

    async def token_epoch(self, token_hash: str) -> int:
        return self._epochs.get(token_hash) or 0

    async def bump_token_epoch(self, token_hash: str, ttl_seconds: int) -> int:  # noqa: ARG002
        return self._epochs.update(token_hash, lambda current: (current or 0) + 1) or 0

    async def purge(self, before: datetime) -> int:
        """Delete records whose expiry is earlier than ``before``."""
        removed = 0
        for token_hash, record in self._records.items():
            if record.expires_at < before:
                await self.delete(token_hash)
                removed += 1
        return removed


class RedisSessionStore:
    """Session store in Redis, for deployments with several worker processes.

    Keys (under the configured prefix):
        record:<hash>     serialized SessionRecord, expires with the session
        snapshot:<hash>   serialized [snapshot, stamp]
        user:<user_id>    set of the user's token hashes
        gen:<user_id>     the user's cache generation
        epoch:<hash>      the session's invalidation epoch
    """

    def __init__(self, cache: RedisCache) -> None:
        self.cache = cache

    async def save(self, record: SessionRecord, ttl_seconds: int) -> None:
        await self.cache.set_value(f"record:{record.token_hash}", record.model_dump(), ttl_seconds)
        await self.cache.add_member(f"user:{record.user_id}", record.token_hash, ttl_seconds)

    async def get(self, token_hash: str) -> SessionRecord | None:
        data = await self.cache.get_value(f"record:{token_hash}")
        if data is None:
            return None
        return SessionRecord.model_validate(data)

    async def delete(self, token_hash: str) -> SessionRecord | None:
        record = await self.get(token_hash)
        await self.cache.delete(
            f"record:{token_hash}", f"snapshot:{token_hash}", f"epoch:{token_hash}"
        )
        if record is not None:
            await self.cache.remove_member(f"user:{record.user_id}", token_hash)
        return record

    async def tokens_for_user(self, user_id: UUID) -> set[str]:
        return await self.cache.members(f"user:{user_id}")

    async def get_snapshot(self, token_hash: str) -> tuple[AccessSnapshot, int] | None:
        data = await self.cache.get_value(f"snapshot:{token_hash}")
        if data is None:
            return None
        snapshot, stamp = data
        return AccessSnapshot.model_validate(snapshot), int(stamp)

    async def put_snapshot(
        self,
        token_hash: str,
        snapshot: AccessSnapshot,
        stamp: int,
        ttl_seconds: int,
    ) -> None:
        await self.cache.set_value(
            f"snapshot:{token_hash}",
            [snapshot.model_dump(), stamp],
            ttl_seconds,
        )

    async def drop_snapshot(self, token_hash: str) -> bool:
        return await self.cache.delete(f"snapshot:{token_hash}") > 0

    async def generation(self, user_id: UUID) -> int:
        value = await self.cache.get_value(f"gen:{user_id}")
        return int(value) if value is not None else 0

    async def bump_generation(self, user_id: UUID) -> int:
        return await self.cache.increment(f"gen:{user_id}")

    async def token_epoch(self, token_hash: str) -> int:
        value = await self.cache.get_value(f"epoch:{token_hash}")
        return int(value) if value is not None else 0

    async def bump_token_epoch(self, token_hash: str, ttl_seconds: int) -> int:
        return await self.cache.increment(f"epoch:{token_hash}", ttl_seconds)

    async def purge(self, before: datetime) -> int:  # noqa: ARG002
        """Drop index entries whose records Redis has already expired.

        Records and snapshots expire through key TTLs; only the per-user
        index sets need sweeping.
        """
        removed = 0
        for key in await self.cache.keys("user:*"):
            for token_hash in await self.cache.members(key):
                if await self.cache.get_value(f"record:{token_hash}") is None:
                    await self.cache.remove_member(key, token_hash)
                    removed += 1
        if removed:
            logger.info("session_index_swept", removed=removed)
        return removed
