"""In-memory TTL cache.

Entries expire lazily: a read that finds an entry past its TTL evicts it and
reports a miss. ``get_or_compute`` does not de-duplicate concurrent misses on
the same key; both callers compute and the last writer wins.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, TypeVar

from coinfolio.services.shared.clock import Clock, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Miss marker for ``get``; cached payloads may legitimately be None
MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    created_at: datetime
    ttl: timedelta

    def is_expired(self, now: datetime) -> bool:
        if self.ttl <= timedelta(0):
            return True
        return now > self.created_at + self.ttl


class TTLCache:
    """Thread-safe key/value cache with per-entry TTL and an injectable clock."""

    def __init__(self, clock: Clock = utc_now, default_ttl: float = 300) -> None:
        self._clock = clock
        self._default_ttl = default_ttl
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached payload, or ``default`` if absent or expired.

        Pass ``MISSING`` as ``default`` to tell a miss from a cached ``None``.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug(f"Cache expired: {key}")
                return default
            return entry.payload

    def set(self, key: str, payload: Any, ttl: float | None = None) -> None:
        """Store ``payload`` for ``ttl`` seconds (default TTL when None)."""
        seconds = self._default_ttl if ttl is None else ttl
        entry = CacheEntry(payload=payload, created_at=self._clock(), ttl=timedelta(seconds=seconds))
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_compute(self, key: str, compute_fn: Callable[[], T], ttl: float | None = None) -> T:
        """Return the cached value for ``key`` or compute, store and return it.

        Exceptions raised by ``compute_fn`` propagate and nothing is stored.
        """
        cached = self.get(key, MISSING)
        if cached is not MISSING:
            logger.debug(f"Cache hit: {key}")
            return cached

        logger.debug(f"Cache miss: {key}")
        value = compute_fn()
        self.set(key, value, ttl)
        return value

    def __contains__(self, key: str) -> bool:
        return self.get(key, MISSING) is not MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
