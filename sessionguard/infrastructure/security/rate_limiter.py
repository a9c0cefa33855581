"""Fixed-window rate limiter on the shared key/value store.

Counters live at ``ratelimit:<action>:<identifier>`` and expire with their
window, so every server instance sees the same budget. When the store is
unreachable the limiter keeps working from a bounded in-process map: a
store outage must not lock the admin out, so the limiter fails OPEN with
respect to the store (but still limits per process).
"""

import asyncio
import logging
import time
from collections.abc import Callable

from sessionguard.domain.exceptions import StoreUnavailableException
from sessionguard.domain.repositories.key_value_store import IKeyValueStore
from sessionguard.domain.services.rate_limiter import IRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit"


class _Window:
    __slots__ = ("count", "expires_at")

    def __init__(self, count: int, expires_at: float):
        self.count = count
        self.expires_at = expires_at


class StoreRateLimiter(IRateLimiter):
    """
    Rate limiter backed by IKeyValueStore with an in-memory fallback.

    The fallback map is the only shared mutable state in the process. It is
    guarded by an asyncio lock, swept of expired windows at most once per
    ``cleanup_interval_seconds``, and capped at ``fallback_max_entries`` by
    evicting the oldest windows first.
    """

    def __init__(
        self,
        store: IKeyValueStore,
        fallback_max_entries: int = 10000,
        cleanup_interval_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._fallback_max_entries = fallback_max_entries
        self._cleanup_interval = cleanup_interval_seconds
        self._clock = clock

        # Insertion ordered: the first key is always the oldest window
        self._fallback: dict[str, _Window] = {}
        self._last_cleanup = clock()
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(action: str, identifier: str) -> str:
        return f"{RATE_LIMIT_PREFIX}:{action}:{identifier}"

    async def try_acquire(
        self,
        action: str,
        identifier: str,
        window_seconds: int,
        max_attempts: int = 1,
    ) -> RateLimitResult:
        key = self._key(action, identifier)

        try:
            count = await self._store.increment(key, window_seconds)
            if count <= max_attempts:
                return RateLimitResult(allowed=True, remaining=max_attempts - count)

            remaining_ttl = await self._store.ttl(key)
        except StoreUnavailableException as e:
            logger.warning(f"Rate limit store unavailable, using in-memory fallback for {key}: {e.message}")
            return await self._try_acquire_fallback(key, window_seconds, max_attempts)

        retry_after = remaining_ttl if remaining_ttl > 0 else window_seconds
        logger.info(f"Rate limit exceeded for {key} ({count}/{max_attempts})")
        return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

    async def reset(self, action: str, identifier: str) -> None:
        key = self._key(action, identifier)

        async with self._lock:
            self._fallback.pop(key, None)

        try:
            await self._store.delete(key)
        except StoreUnavailableException as e:
            logger.warning(f"Could not reset rate limit {key}: {e.message}")

    async def fallback_size(self) -> int:
        """Number of windows currently held in memory."""
        async with self._lock:
            return len(self._fallback)

    async def _try_acquire_fallback(
        self, key: str, window_seconds: int, max_attempts: int
    ) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            self._sweep_if_due(now)

            window = self._fallback.get(key)
            if window is not None and window.expires_at <= now:
                del self._fallback[key]
                window = None

            if window is None:
                self._evict_oldest(self._fallback_max_entries - 1)
                window = _Window(count=0, expires_at=now + window_seconds)
                self._fallback[key] = window

            window.count += 1
            if window.count <= max_attempts:
                return RateLimitResult(allowed=True, remaining=max_attempts - window.count)

            retry_after = max(1, int(window.expires_at - now))
            return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

    def _sweep_if_due(self, now: float) -> None:
        """Drop expired windows. Caller holds the lock."""
        if now - self._last_cleanup < self._cleanup_interval:
            return

        expired = [key for key, window in self._fallback.items() if window.expires_at <= now]
        for key in expired:
            del self._fallback[key]
        self._last_cleanup = now

        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit windows from memory")

    def _evict_oldest(self, limit: int) -> None:
        """Evict oldest windows until at most ``limit`` remain. Caller holds the lock."""
        overflow = len(self._fallback) - limit
        if overflow <= 0:
            return

        for key in list(self._fallback)[:overflow]:
            del self._fallback[key]
        logger.warning(f"Rate limit fallback map full; evicted {overflow} oldest windows")
