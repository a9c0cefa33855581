"""Key/value store interface - domain layer abstraction.

The revocation store, the token family records and the rate limiter all
live in one shared, TTL-capable key/value store. This interface is the
whole contract: it has no notion of tokens, families or attempts. Callers
own the key naming and choose every TTL.

Implementations:
- RedisKeyValueStore: shared across all server instances (production)
- InMemoryKeyValueStore: single process (development and tests)

Every method may raise StoreUnavailableException when the backing store
cannot be reached within its timeout.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class IKeyValueStore(ABC):
    """Interface for a shared key/value store with per-key expiry."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """
        Store a JSON-serialisable value, replacing any previous one.

        Args:
            key: Namespaced key
            value: Value to store (dict, str, int, ...)
            ttl_seconds: Expiry in seconds; None or <= 0 means no expiry

        Example:
            await store.set("token:blacklist:abc", {"blacklisted_at": 1700000000}, 1200)
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent or expired."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if the key is present and not expired."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: int) -> int:
        """
        Atomically increment an integer counter and return the new value.

        The TTL is applied when the counter is created (first increment) and
        is not extended by later increments, so the counter describes a
        fixed window.
        """
        pass

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """
        Return the remaining lifetime of a key in seconds.

        Returns:
            Remaining seconds, -1 if the key has no expiry, -2 if absent
        """
        pass

    @abstractmethod
    async def update_if(
        self,
        key: str,
        predicate: Callable[[Any | None], bool],
        value: Any,
        ttl_seconds: int | None = None,
    ) -> bool:
        """
        Conditionally replace a value (compare-and-swap).

        The current value is read, passed to ``predicate``, and replaced by
        ``value`` only if the predicate returns True and nobody else wrote
        the key in between.

        Returns:
            True if the write happened, False if the predicate rejected the
            current value or a concurrent writer won
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections held by the store."""
        pass
