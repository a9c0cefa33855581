"""Fake key/value store that can be switched into an outage.

Wraps the real InMemoryKeyValueStore. While ``available`` is False every
operation raises StoreUnavailableException, exactly like RedisKeyValueStore
does when Redis cannot be reached. This lets tests prove the fail-open and
fail-closed behaviour of the services on top.
"""

from collections.abc import Callable
from typing import Any

from sessionguard.domain.exceptions import StoreUnavailableException
from sessionguard.domain.repositories.key_value_store import IKeyValueStore
from sessionguard.infrastructure.repositories.in_memory_key_value_store import InMemoryKeyValueStore


class FlakyKeyValueStore(IKeyValueStore):
    """
    Usage in tests:
        store = FlakyKeyValueStore()
        await store.set("k", 1)
        store.available = False
        await store.get("k")  # raises StoreUnavailableException

    ``fail_on`` narrows the outage to specific operations, e.g.
    ``{"update_if"}`` breaks only conditional writes.
    """

    def __init__(self, inner: IKeyValueStore | None = None):
        self.inner = inner or InMemoryKeyValueStore()
        self.available = True
        self.fail_on: set[str] | None = None
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.available:
            return
        if self.fail_on is None or operation in self.fail_on:
            raise StoreUnavailableException(f"Simulated outage during {operation}")

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        self._check("set")
        await self.inner.set(key, value, ttl_seconds)

    async def get(self, key: str) -> Any | None:
        self._check("get")
        return await self.inner.get(key)

    async def exists(self, key: str) -> bool:
        self._check("exists")
        return await self.inner.exists(key)

    async def delete(self, key: str) -> None:
        self._check("delete")
        await self.inner.delete(key)

    async def increment(self, key: str, ttl_seconds: int) -> int:
        self._check("increment")
        return await self.inner.increment(key, ttl_seconds)

    async def ttl(self, key: str) -> int:
        self._check("ttl")
        return await self.inner.ttl(key)

    async def update_if(
        self,
        key: str,
        predicate: Callable[[Any | None], bool],
        value: Any,
        ttl_seconds: int | None = None,
    ) -> bool:
        self._check("update_if")
        return await self.inner.update_if(key, predicate, value, ttl_seconds)

    async def ping(self) -> bool:
        return self.available

    async def close(self) -> None:
        await self.inner.close()
