"""Token repository interface - domain layer abstraction.

This interface defines the contract for storing the two kinds of token
state the rotation engine needs:

1. Revocation entries (blacklist) - token ids that must never be honored
   again, even while their signature and expiry still look valid
2. Token family records - one per login, naming the single refresh token
   in the rotation chain that has not been used yet

Why this belongs in the domain:
- Single-use refresh tokens and reuse detection are SECURITY REQUIREMENTS
- The domain cares about the lifecycle of a family, not about key layouts
- The domain does NOT care about storage mechanism (Redis, memory, etc.)
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TokenFamily:
    """
    Domain representation of a token family record.

    A family groups every refresh token descended from one login. Only
    ``current_token_id`` may still be exchanged; any other refresh token
    presenting this family id is proof of reuse.
    """

    def __init__(
        self,
        family_id: str,
        current_token_id: str,
        user_id: str,
        created_at: datetime,
        updated_at: datetime,
    ):
        self.family_id = family_id
        self.current_token_id = current_token_id
        self.user_id = user_id
        self.created_at = created_at
        self.updated_at = updated_at

    def is_current(self, token_id: str) -> bool:
        """Check whether ``token_id`` is the unused token of this chain."""
        return self.current_token_id == token_id

    def advance(self, new_token_id: str, now: datetime) -> "TokenFamily":
        """
        Return the record after a successful rotation.

        The family keeps its identity and creation time; only the current
        token and the update timestamp change.
        """
        return TokenFamily(
            family_id=self.family_id,
            current_token_id=new_token_id,
            user_id=self.user_id,
            created_at=self.created_at,
            updated_at=now,
        )


class ITokenRepository(ABC):
    """
    Interface for token revocation and family tracking.

    The repository never chooses lifetimes: every write takes the TTL the
    caller computed from the token it concerns.
    """

    @abstractmethod
    async def revoke_token(self, token_id: str, ttl_seconds: int) -> None:
        """
        Revoke a token by its id.

        Args:
            token_id: Unique identifier (jti) of the token to revoke
            ttl_seconds: How long the entry must live; must be at least the
                remaining lifetime of the token it blocks

        Example:
            await token_repo.revoke_token("abc123", ttl_seconds=1200)
        """
        pass

    @abstractmethod
    async def is_token_revoked(self, token_id: str) -> bool:
        """
        Check if a token has been revoked.

        Returns:
            True if a revocation entry exists, False otherwise
        """
        pass

    @abstractmethod
    async def save_family(self, family: TokenFamily, ttl_seconds: int) -> None:
        """
        Create or overwrite a family record.

        Args:
            family: The record to store
            ttl_seconds: Record lifetime (refresh token lifetime + buffer)
        """
        pass

    @abstractmethod
    async def replace_family_if_current(
        self, family: TokenFamily, expected_token_id: str, ttl_seconds: int
    ) -> bool:
        """
        Overwrite a family record only if it still names ``expected_token_id``.

        This is the compare-and-swap variant of save_family, used when
        rotation is configured to close the concurrent-refresh race instead
        of detecting it afterwards.

        Returns:
            True if the record was replaced, False if it was missing or had
            already moved on
        """
        pass

    @abstractmethod
    async def get_family(self, family_id: str) -> TokenFamily | None:
        """
        Retrieve a family record.

        Returns:
            TokenFamily if present, None if it never existed, expired, or
            was deleted by logout or reuse detection
        """
        pass

    @abstractmethod
    async def delete_family(self, family_id: str) -> None:
        """
        Delete a family record, ending the whole rotation chain.

        Example:
            # Reuse detected: no token of this family may rotate again
            await token_repo.delete_family("family-xyz")
        """
        pass
