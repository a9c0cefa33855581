"""Repository interfaces - define contracts for token state storage."""

from sessionguard.domain.repositories.key_value_store import IKeyValueStore
from sessionguard.domain.repositories.token_repository import ITokenRepository, TokenFamily

__all__ = ["IKeyValueStore", "ITokenRepository", "TokenFamily"]
