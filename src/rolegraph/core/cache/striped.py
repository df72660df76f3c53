"""Lock-striped dictionary.

Keys are spread over a fixed number of stripes, each a plain dict guarded
by its own lock. Readers and writers of unrelated keys rarely contend,
and no operation ever holds more than one stripe lock at a time.
"""

import threading
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class StripedDict(Generic[K, V]):
    """Thread-safe mapping partitioned into independently locked stripes.

    Usage:
        table: StripedDict[str, int] = StripedDict(stripes=16)
        table.set("a", 1)
        table.update("a", lambda v: (v or 0) + 1)
    """

    def __init__(self, stripes: int = 16) -> None:
        if stripes <= 0:
            raise ValueError("stripes must be positive")
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._maps: list[dict[K, V]] = [{} for _ in range(stripes)]

    def _stripe(self, key: K) -> int:
        return hash(key) % len(self._locks)

    def get(self, key: K, default: V | None = None) -> V | None:
        i = self._stripe(key)
        with self._locks[i]:
            return self._maps[i].get(key, default)

    def set(self, key: K, value: V) -> None:
        i = self._stripe(key)
        with self._locks[i]:
            self._maps[i][key] = value

    def pop(self, key: K, default: V | None = None) -> V | None:
        i = self._stripe(key)
        with self._locks[i]:
            return self._maps[i].pop(key, default)

    def update(self, key: K, fn: Callable[[V | None], V | None]) -> V | None:
        """Atomically replace the value for ``key`` with ``fn(current)``.

        ``fn`` runs under the stripe lock and must not touch this map.
        Returning None removes the key.

        Returns:
            The new value, or None if the key was removed
        """
        i = self._stripe(key)
        with self._locks[i]:
            value = fn(self._maps[i].get(key))
            if value is None:
                self._maps[i].pop(key, None)
            else:
                self._maps[i][key] = value
            return value

    def items(self) -> list[tuple[K, V]]:
        """Copy of all entries, gathered one stripe at a time."""
        entries: list[tuple[K, V]] = []
        for lock, stripe in zip(self._locks, self._maps, strict=True):
            with lock:
                entries.extend(stripe.items())
        return entries

    def __contains__(self, key: object) -> bool:
        i = hash(key) % len(self._locks)
        with self._locks[i]:
            return key in self._maps[i]

    def __len__(self) -> int:
        total = 0
        for lock, stripe in zip(self._locks, self._maps, strict=True):
            with lock:
                total += len(stripe)
        return total
