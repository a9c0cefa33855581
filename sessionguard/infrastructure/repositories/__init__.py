"""Store and repository implementations."""

from sessionguard.infrastructure.repositories.in_memory_key_value_store import InMemoryKeyValueStore
from sessionguard.infrastructure.repositories.redis_key_value_store import RedisKeyValueStore
from sessionguard.infrastructure.repositories.token_repository_impl import KeyValueTokenRepository

__all__ = ["InMemoryKeyValueStore", "RedisKeyValueStore", "KeyValueTokenRepository"]
