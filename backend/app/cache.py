"""Thread-safe in-memory TTL cache.

Backs the per-user Schengen status responses. Entries are keyed by plain
strings; related keys share a prefix (``schengen:<user_id>:``) so a trip
mutation can drop everything it affects in one call.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class TTLCache(Generic[T]):
    """In-memory cache with per-entry expiry.

    Attributes:
        default_ttl_seconds: Lifetime applied when ``set`` gets no ttl
        max_size: Maximum number of entries (None = unlimited)
        name: Cache name for logging
    """

    default_ttl_seconds: float = 300.0
    max_size: Optional[int] = None
    name: str = "cache"

    _store: Dict[str, Tuple[Any, float]] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    _hits: int = field(default=0, repr=False)
    _misses: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None

            value, expiry = entry
            if time.monotonic() > expiry:
                del self._store[key]
                self._misses += 1
                return None

            self._hits += 1
            return value

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if time.monotonic() > entry[1]:
                del self._store[key]
                return False
            return True

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        with self._lock:
            if self.max_size is not None and len(self._store) >= self.max_size and key not in self._store:
                # FIFO eviction, dicts keep insertion order
                oldest_key = next(iter(self._store))
                del self._store[oldest_key]
                self._logger.debug(f"Evicted {oldest_key} (max_size={self.max_size})")

            effective_ttl = ttl if ttl is not None else self.default_ttl_seconds
            self._store[key] = (value, time.monotonic() + effective_ttl)

    def get_or_compute(self, key: str, compute_fn: Callable[[], T], ttl: Optional[float] = None) -> T:
        """Cache-aside lookup: compute and store the value on a miss."""
        value = self.get(key)
        if value is not None:
            return value

        computed = compute_fn()
        self.set(key, computed, ttl)
        return computed

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``. Returns the number removed."""
        with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for k in doomed:
                del self._store[k]
            return len(doomed)

    def cleanup(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = time.monotonic()
        with self._lock:
            expired = [k for k, (_, expiry) in self._store.items() if now > expiry]
            for k in expired:
                del self._store[k]
        if expired:
            self._logger.debug(f"Removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> int:
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._logger.info(f"Cache cleared ({count} entries)")
            return count

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0.0
            return {
                "size": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(hit_rate, 1),
            }


_response_cache: Optional[TTLCache] = None


def get_response_cache() -> TTLCache:
    global _response_cache
    if _response_cache is None:
        from app.config import get_settings
        _response_cache = TTLCache(
            default_ttl_seconds=get_settings().cache_ttl_seconds,
            max_size=10_000,
            name="responses",
        )
    return _response_cache
