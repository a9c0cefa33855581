"""In-memory key/value store implementation.

This is an INFRASTRUCTURE detail. The domain layer (IKeyValueStore interface)
defines WHAT we need (TTL key/value storage), while this implementation
defines HOW we do it (using a Python dictionary).

This implementation:
1. Lives inside one process (suitable for development and tests)
2. Is replaced by RedisKeyValueStore whenever REDIS_URL is set
3. Is safe for concurrent coroutines using an asyncio lock
4. Expires entries lazily on read, and sweeps expired entries from the
   write path at most once per cleanup interval
"""

import asyncio
import copy
import logging
import math
import time
from collections.abc import Callable
from typing import Any

from sessionguard.domain.repositories.key_value_store import IKeyValueStore

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, expires_at: float | None):
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class InMemoryKeyValueStore(IKeyValueStore):
    """
    In-memory implementation of the key/value store.

    Suitable for:
    - Development and testing
    - Single-process deployments

    Limitations:
    - Data lost on restart
    - Revocations are invisible to other processes, so a multi-instance
      deployment must use Redis
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval_seconds: int = 60,
    ) -> None:
        """
        Initialize in-memory storage.

        Args:
            clock: Monotonic seconds source; injectable so tests can move time
            cleanup_interval_seconds: Minimum time between two sweeps of
                expired entries triggered by writes
        """
        self._entries: dict[str, _Entry] = {}
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cleanup_interval = cleanup_interval_seconds
        self._last_cleanup = clock()

    def _expiry(self, ttl_seconds: int | None) -> float | None:
        if ttl_seconds is None or ttl_seconds <= 0:
            return None
        return self._clock() + ttl_seconds

    def _live(self, key: str) -> _Entry | None:
        """Return the entry for key, dropping it if it has expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    def _drop_expired(self, now: float) -> int:
        """Delete every expired entry. Caller holds the lock."""
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._last_cleanup = now
        return len(expired)

    def _sweep_if_due(self) -> None:
        """Drop expired entries if the cleanup interval has passed. Caller holds the lock."""
        now = self._clock()
        if now - self._last_cleanup < self._cleanup_interval:
            return
        removed = self._drop_expired(now)
        if removed:
            logger.debug(f"Swept {removed} expired entries from memory")

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        async with self._lock:
            self._sweep_if_due()
            # Copy so later mutation by the caller cannot change what is stored
            self._entries[key] = _Entry(copy.deepcopy(value), self._expiry(ttl_seconds))

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            entry = self._live(key)
            return None if entry is None else copy.deepcopy(entry.value)

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live(key) is not None

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def increment(self, key: str, ttl_seconds: int) -> int:
        async with self._lock:
            self._sweep_if_due()
            entry = self._live(key)
            if entry is None:
                entry = _Entry(0, self._expiry(ttl_seconds))
                self._entries[key] = entry
            entry.value = int(entry.value) + 1
            return entry.value

    async def ttl(self, key: str) -> int:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return -2
            if entry.expires_at is None:
                return -1
            return max(0, math.ceil(entry.expires_at - self._clock()))

    async def update_if(
        self,
        key: str,
        predicate: Callable[[Any | None], bool],
        value: Any,
        ttl_seconds: int | None = None,
    ) -> bool:
        # Holding the lock across read and write makes this trivially atomic
        async with self._lock:
            self._sweep_if_due()
            entry = self._live(key)
            current = None if entry is None else copy.deepcopy(entry.value)
            if not predicate(current):
                return False
            self._entries[key] = _Entry(copy.deepcopy(value), self._expiry(ttl_seconds))
            return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def cleanup_expired(self) -> int:
        """
        Remove expired entries from memory.

        Reads already skip expired entries, and writes sweep periodically;
        this forces a sweep now.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            return self._drop_expired(self._clock())

    async def get_stats(self) -> dict[str, int]:
        """
        Get store statistics (useful for monitoring).

        Returns:
            Dictionary with entry counts per key namespace
        """
        async with self._lock:
            now = self._clock()
            live = [key for key, entry in self._entries.items() if not entry.is_expired(now)]
            return {
                "total_entries": len(live),
                "expired_entries": len(self._entries) - len(live),
                "revoked_tokens": sum(1 for key in live if key.startswith("token:blacklist:")),
                "active_families": sum(1 for key in live if key.startswith("token:family:")),
                "rate_limit_counters": sum(1 for key in live if key.startswith("ratelimit:")),
            }
