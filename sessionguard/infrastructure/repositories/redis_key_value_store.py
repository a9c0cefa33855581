"""Redis key/value store implementation.

This is an INFRASTRUCTURE detail. The domain layer (IKeyValueStore interface)
defines WHAT we need (TTL key/value storage shared by every server instance),
while this implementation defines HOW we do it (using redis.asyncio).

Dependency flow:
    TokenRotationService (application) → ITokenRepository (domain)
        → IKeyValueStore (domain) ← RedisKeyValueStore (infrastructure)

Values are stored as JSON strings so dicts survive the round trip. Every
redis error (connection refused, timeout, protocol error) is converted into
StoreUnavailableException; callers decide whether that fails open or closed.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from sessionguard.domain.exceptions import StoreUnavailableException
from sessionguard.domain.repositories.key_value_store import IKeyValueStore

logger = logging.getLogger(__name__)


class RedisKeyValueStore(IKeyValueStore):
    """
    Shared key/value store backed by Redis.

    Expiry is delegated to Redis (SET EX / EXPIRE), so nothing ever needs
    sweeping on the application side.
    """

    def __init__(self, client: Redis):
        """
        Initialize the store.

        Args:
            client: redis.asyncio client created with decode_responses=True
        """
        self._client = client

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        payload = json.dumps(value)
        try:
            if ttl_seconds is not None and ttl_seconds > 0:
                await self._client.set(key, payload, ex=ttl_seconds)
            else:
                await self._client.set(key, payload)
        except RedisError as e:
            raise self._unavailable("set", key, e) from e

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            raise self._unavailable("get", key, e) from e

        if raw is None:
            return None
        return self._decode(key, raw)

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._client.exists(key))
        except RedisError as e:
            raise self._unavailable("exists", key, e) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise self._unavailable("delete", key, e) from e

    async def increment(self, key: str, ttl_seconds: int) -> int:
        """
        INCR the counter; the window starts with the first increment.

        SET NX EX creates the counter with its expiry only if it does not
        exist yet, and INCR runs in the same MULTI/EXEC, so a counter can
        never be left behind without an expiry. Works on Redis 6.
        """
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, ex=ttl_seconds, nx=True)
                pipe.incr(key)
                _, count = await pipe.execute()
            return int(count)
        except RedisError as e:
            raise self._unavailable("increment", key, e) from e

    async def ttl(self, key: str) -> int:
        try:
            return int(await self._client.ttl(key))
        except RedisError as e:
            raise self._unavailable("ttl", key, e) from e

    async def update_if(
        self,
        key: str,
        predicate: Callable[[Any | None], bool],
        value: Any,
        ttl_seconds: int | None = None,
    ) -> bool:
        """
        Compare-and-swap using WATCH/MULTI/EXEC (optimistic locking).

        A WatchError means another writer touched the key between our read
        and our write. That writer won; we report False instead of retrying,
        because the caller's predicate was evaluated against a stale value.
        """
        payload = json.dumps(value)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.get(key)
                current = None if raw is None else self._decode(key, raw)

                if not predicate(current):
                    await pipe.unwatch()
                    return False

                pipe.multi()
                if ttl_seconds is not None and ttl_seconds > 0:
                    pipe.set(key, payload, ex=ttl_seconds)
                else:
                    pipe.set(key, payload)
                await pipe.execute()
                return True
        except WatchError:
            logger.info(f"Concurrent write on {key}; conditional update rejected")
            return False
        except RedisError as e:
            raise self._unavailable("update_if", key, e) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _decode(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            # Written by something other than this store (e.g. a raw INCR counter)
            logger.debug(f"Non-JSON value at {key}; returning raw string")
            return raw

    @staticmethod
    def _unavailable(operation: str, key: str, error: Exception) -> StoreUnavailableException:
        logger.error(f"Redis {operation} failed for {key}: {error}")
        return StoreUnavailableException(f"Shared store unavailable during {operation}")
