"""TTL cache for advisory query results.

Advisory databases change continuously, so answers are only reused for a
bounded period. Within that period the same (ecosystem, package, version)
query is typically repeated once per candidate module path and once per
dependency that shares a path, which is what this cache absorbs.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from typing import Any

from ..constants import ADVISORY_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS

# (ecosystem, package name, version or "")
CacheKey = tuple[str, str, str]


def advisory_cache_key(package_name: str, version: str | None, ecosystem: str) -> CacheKey:
    """Key for one advisory query. Names keep their case; Go paths are case-sensitive."""
    return (ecosystem, package_name, version or "")


class AdvisoryCache:
    """Thread-safe, size-bounded cache of advisory lists with TTL expiry.

    An empty advisory list is a valid cached answer, so ``get`` returns
    ``None`` for a miss. When full, expired entries go first, then the
    least recently used one.
    """

    def __init__(
        self,
        maxsize: int = ADVISORY_CACHE_MAX_SIZE,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[tuple[Any, ...], float]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, package_name: str, version: str | None, ecosystem: str) -> list[Any] | None:
        """Return a copy of the cached advisories, or ``None`` on a miss."""
        key = advisory_cache_key(package_name, version, ecosystem)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                advisories, expires_at = entry
                if self._clock() < expires_at:
                    self._entries.move_to_end(key)
                    self._hits += 1
                    return list(advisories)
                del self._entries[key]

            self._misses += 1
            return None

    def put(
        self,
        package_name: str,
        version: str | None,
        ecosystem: str,
        advisories: Sequence[Any],
    ) -> None:
        key = advisory_cache_key(package_name, version, ecosystem)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.maxsize:
                self._drop_expired()
                while len(self._entries) >= self.maxsize:
                    self._entries.popitem(last=False)

            self._entries[key] = (tuple(advisories), self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)

    def _drop_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate(self, package_name: str | None = None, ecosystem: str | None = None) -> int:
        """Drop entries for a package and/or ecosystem (all entries when both are None).

        Returns:
            Number of entries removed.
        """
        with self._lock:
            doomed = [
                key
                for key in self._entries
                if (ecosystem is None or key[0] == ecosystem)
                and (package_name is None or key[1] == package_name)
            ]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, int | float]:
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._entries),
                "maxsize": self.maxsize,
                "ttl_seconds": self.ttl_seconds,
                "hit_rate_percent": round(hit_rate, 2),
            }
