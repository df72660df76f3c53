"""Cache module.

Provides:
- A lock-striped in-process dictionary
- Redis client construction and a typed cache wrapper
- Serialization utilities for cache values
"""

from rolegraph.core.cache.redis import RedisCache, create_redis_client
from rolegraph.core.cache.serializers import deserialize, serialize
from rolegraph.core.cache.striped import StripedDict


__all__ = [
    "RedisCache",
    "StripedDict",
    "create_redis_client",
    "deserialize",
    "serialize",
]
