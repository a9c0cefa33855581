"""Key/value backed token repository implementation.

This is an INFRASTRUCTURE detail. The domain layer (ITokenRepository
interface) defines WHAT we need (revocation entries and family records),
while this implementation defines HOW they are laid out in the shared
key/value store.

Dependency flow:
    TokenRotationService (application) → ITokenRepository (domain) ← KeyValueTokenRepository (infrastructure)

Key layout:
    token:blacklist:<token_id> → {"blacklisted_at": <unix seconds>}
    token:family:<family_id>   → {"current_token_id", "user_id", "created_at", "updated_at"}

Timestamps inside family records are unix milliseconds.
"""

from datetime import UTC, datetime
from typing import Any

from sessionguard.domain.repositories.key_value_store import IKeyValueStore
from sessionguard.domain.repositories.token_repository import ITokenRepository, TokenFamily

BLACKLIST_PREFIX = "token:blacklist:"
FAMILY_PREFIX = "token:family:"


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


class KeyValueTokenRepository(ITokenRepository):
    """
    Token repository on top of any IKeyValueStore.

    Holds no state of its own; StoreUnavailableException from the store
    propagates unchanged.
    """

    def __init__(self, store: IKeyValueStore):
        self._store = store

    @staticmethod
    def _blacklist_key(token_id: str) -> str:
        return f"{BLACKLIST_PREFIX}{token_id}"

    @staticmethod
    def _family_key(family_id: str) -> str:
        return f"{FAMILY_PREFIX}{family_id}"

    @staticmethod
    def _serialize(family: TokenFamily) -> dict[str, Any]:
        return {
            "current_token_id": family.current_token_id,
            "user_id": family.user_id,
            "created_at": _to_millis(family.created_at),
            "updated_at": _to_millis(family.updated_at),
        }

    async def revoke_token(self, token_id: str, ttl_seconds: int) -> None:
        entry = {"blacklisted_at": int(datetime.now(UTC).timestamp())}
        await self._store.set(self._blacklist_key(token_id), entry, ttl_seconds)

    async def is_token_revoked(self, token_id: str) -> bool:
        return await self._store.exists(self._blacklist_key(token_id))

    async def save_family(self, family: TokenFamily, ttl_seconds: int) -> None:
        await self._store.set(self._family_key(family.family_id), self._serialize(family), ttl_seconds)

    async def replace_family_if_current(
        self, family: TokenFamily, expected_token_id: str, ttl_seconds: int
    ) -> bool:
        def still_current(stored: Any | None) -> bool:
            return isinstance(stored, dict) and stored.get("current_token_id") == expected_token_id

        return await self._store.update_if(
            self._family_key(family.family_id),
            still_current,
            self._serialize(family),
            ttl_seconds,
        )

    async def get_family(self, family_id: str) -> TokenFamily | None:
        stored = await self._store.get(self._family_key(family_id))
        if not isinstance(stored, dict):
            return None

        try:
            return TokenFamily(
                family_id=family_id,
                current_token_id=stored["current_token_id"],
                user_id=stored["user_id"],
                created_at=_from_millis(stored["created_at"]),
                updated_at=_from_millis(stored["updated_at"]),
            )
        except (KeyError, TypeError, ValueError):
            # A record we cannot read cannot vouch for any token
            return None

    async def delete_family(self, family_id: str) -> None:
        await self._store.delete(self._family_key(family_id))
