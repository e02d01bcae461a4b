"""
In-process time-boxed cache.

One lock guards the entry map. Values are computed outside the lock and
then swapped in, so callers racing on the same stale key may duplicate
work but never observe a partial entry. A computation that raises leaves
the cache unchanged.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    """Cached value with its write time and time-to-live (seconds)."""

    data: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class TTLCache:
    """
    Thread-safe key/value cache with per-entry TTL.

    Parameters
    ----------
    clock : callable, optional
        Returns the current time in seconds. Defaults to
        :func:`time.monotonic`; tests pass a fake clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _fresh_entry(self, key: str) -> Optional[CacheEntry]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_fresh(now):
                del self._entries[key]
                logger.debug(f"Cache expired: {key}")
                return None
            return entry

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        entry = self._fresh_entry(key)
        return entry.data if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        entry = CacheEntry(value, self._clock(), ttl)
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: str) -> bool:
        """Drop one key. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_compute(
        self,
        key: str,
        ttl: float,
        compute: Callable[[], T],
        accept: Callable[[T], bool] | None = None,
    ) -> T:
        """
        Return the fresh cached value or compute, store and return a new one.

        Parameters
        ----------
        key : str
            Cache key.
        ttl : float
            Time-to-live (seconds) for a newly computed value.
        compute : callable
            Produces the value on a miss. Runs without holding the lock; if
            it raises, nothing is stored and the exception propagates.
        accept : callable, optional
            Predicate on a fresh cached value. A rejected value is treated
            as a miss and replaced.

        Returns
        -------
        object
            The cached or newly computed value (``None`` is cached too).
        """
        entry = self._fresh_entry(key)
        if entry is not None and (accept is None or accept(entry.data)):
            logger.debug(f"Cache hit: {key}")
            return entry.data

        logger.debug(f"Cache miss: {key}")
        value = compute()
        self.set(key, value, ttl)
        return value

    def __contains__(self, key: str) -> bool:
        return self._fresh_entry(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
