"""Redis client construction and a small typed cache wrapper.

The client is created by the composing service and passed in; nothing
here holds a process-wide connection.
"""

from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from rolegraph.core.cache.serializers import deserialize, serialize
from rolegraph.core.errors import StorageError


def create_redis_client(
    url: str, max_connections: int = 50
) -> redis.Redis:  # type: ignore[type-arg]
    """Create a Redis client with its own connection pool.

    Args:
        url: Redis URL
        max_connections: Pool size

    Returns:
        Redis client; close it with ``await client.aclose()``
    """
    pool = redis.ConnectionPool.from_url(
        url,
        max_connections=max_connections,
        decode_responses=True,
    )
    return redis.Redis(connection_pool=pool)


class RedisCache:
    """High-level Redis cache interface.

    Provides typed methods for common caching operations. Redis failures
    surface as StorageError.
    """

    def __init__(self, client: redis.Redis, prefix: str = "") -> None:  # type: ignore[type-arg]
        """Initialize cache with a client and an optional key prefix.

        Args:
            client: Redis client
            prefix: Prefix for all keys (e.g., "session:")
        """
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        """Generate prefixed key."""
        return f"{self.prefix}{key}" if self.prefix else key

    async def get_value(self, key: str) -> Any | None:
        """Get and deserialize a value.

        Args:
            key: Cache key

        Returns:
            Deserialized value or None if not found
        """
        try:
            data = await self.client.get(self._key(key))
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc
        if data is None:
            return None
        return deserialize(data)

    async def set_value(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Serialize and store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl_seconds: Optional TTL in seconds
        """
        try:
            if ttl_seconds:
                await self.client.setex(self._key(key), ttl_seconds, serialize(value))
            else:
                await self.client.set(self._key(key), serialize(value))
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc

    async def delete(self, *keys: str) -> int:
        """Delete keys.

        Returns:
            Number of keys that existed
        """
        if not keys:
            return 0
        try:
            return await self.client.delete(*(self._key(key) for key in keys))
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc

    async def increment(self, key: str, ttl_seconds: int | None = None) -> int:
        """Atomically increment an integer counter, creating it at 0."""
        try:
            value = int(await self.client.incr(self._key(key)))
            if ttl_seconds:
                await self.client.expire(self._key(key), ttl_seconds)
            return value
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc

    async def add_member(self, key: str, member: str, ttl_seconds: int | None = None) -> None:
        """Add a member to a set, optionally pushing out its expiry."""
        try:
            await self.client.sadd(self._key(key), member)
            if ttl_seconds:
                await self.client.expire(self._key(key), ttl_seconds)
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc

    async def remove_member(self, key: str, member: str) -> None:
        """Remove a member from a set."""
        try:
            await self.client.srem(self._key(key), member)
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc

    async def members(self, key: str) -> set[str]:
        """All members of a set."""
        try:
            return set(await self.client.smembers(self._key(key)))
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc

    async def keys(self, pattern: str) -> list[str]:
        """Keys matching ``pattern`` (relative to the prefix), prefix stripped."""
        try:
            found = [key async for key in self.client.scan_iter(match=self._key(pattern))]
        except RedisError as exc:
            raise StorageError("Session cache unavailable") from exc
        return [key[len(self.prefix) :] for key in found]
