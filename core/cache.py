"""
Bounded insight cache with per-entry TTL and LRU eviction.

Instances are created by the application and injected where needed; there
is no module-level cache.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional, TypeVar

from cachetools import TTLCache

T = TypeVar("T")

_MISSING = object()


@dataclass
class CacheMetrics:
    hits: int
    misses: int
    evictions: int
    size: int
    max_size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class InsightCache:
    """Thread-safe TTL + LRU cache for analysis results."""

    def __init__(
        self,
        max_size: int = 50,
        ttl_seconds: float = 1200.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self._cache: TTLCache = TTLCache(maxsize=max_size, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(namespace: str, payload: Any) -> str:
        """Stable key from a namespace and any JSON-serialisable payload."""
        encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
        return f"{namespace}:{hashlib.sha256(encoded).hexdigest()}"

    def get(self, key: Hashable, default: Optional[Any] = None) -> Optional[Any]:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._cache.expire()
            if key not in self._cache and len(self._cache) >= self._cache.maxsize:
                self._evictions += 1
            self._cache[key] = value

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        """Return the cached value or compute, store and return it."""
        cached = self._lookup(key)
        if cached is not _MISSING:
            return cached
        value = compute()
        self.set(key, value)
        return value

    def expire(self) -> int:
        """Drop expired entries. Returns the number removed."""
        with self._lock:
            before = self._cache.currsize
            self._cache.expire()
            return int(before - self._cache.currsize)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = self._misses = self._evictions = 0

    def metrics(self) -> CacheMetrics:
        with self._lock:
            return CacheMetrics(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._cache),
                max_size=int(self._cache.maxsize),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _lookup(self, key: Hashable) -> Any:
        with self._lock:
            value = self._cache.get(key, _MISSING)
            if value is _MISSING:
                self._misses += 1
            else:
                self._hits += 1
            return value
