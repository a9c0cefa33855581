"""Token service interface - domain layer abstraction.

This interface belongs in the domain layer because the rotation engine
depends on a few facts about every signed token, not on how it is signed:

1. Each token carries a unique id (used as the revocation key)
2. Each token carries a signed expiry (used to size revocation TTLs)
3. Refresh tokens carry the family id of their rotation chain

The domain does NOT care:
- What token format is used (JWT, opaque tokens, etc.)
- Which library implements it (PyJWT, jose, etc.)
- How tokens are encoded/signed (HS256, HS512, RS256, etc.)
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime

from sessionguard.domain.entities.principal import Principal


class AccessTokenClaims:
    """
    Decoded access token.

    This is a pure domain object with no framework dependencies.
    """

    def __init__(
        self,
        user_id: str,
        email: str,
        role: str,
        token_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.token_id = token_id
        self.issued_at = issued_at
        self.expires_at = expires_at

    @property
    def is_expired(self) -> bool:
        """Check if token is expired."""
        return datetime.now(UTC) > self.expires_at

    def to_principal(self) -> Principal:
        return Principal(user_id=self.user_id, email=self.email, role=self.role)


class RefreshTokenClaims:
    """Decoded refresh token."""

    def __init__(
        self,
        user_id: str,
        token_id: str,
        family_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ):
        self.user_id = user_id
        self.token_id = token_id
        self.family_id = family_id  # Rotation chain this token belongs to
        self.issued_at = issued_at
        self.expires_at = expires_at

    @property
    def is_expired(self) -> bool:
        """Check if token is expired."""
        return datetime.now(UTC) > self.expires_at


class ITokenService(ABC):
    """
    Interface for signing and verifying access and refresh tokens.

    Verification methods return None rather than raising: callers only need
    to know whether a token can be trusted, never why it cannot.
    """

    @abstractmethod
    def generate_access_token(self, principal: Principal) -> str:
        """
        Sign a short-lived access token for a principal.

        Example:
            token = token_service.generate_access_token(
                Principal(user_id="admin-1", email="admin@example.com")
            )
            # Returns: "eyJhbGciOiJIUzUxMiIsInR5cCI6IkpXVCJ9..."
        """
        pass

    @abstractmethod
    def generate_refresh_token(self, user_id: str, family_id: str | None = None) -> str:
        """
        Sign a long-lived refresh token.

        Args:
            user_id: Owner of the token
            family_id: Rotation chain to continue; a new family is started
                when omitted

        Returns:
            Encoded refresh token string
        """
        pass

    @abstractmethod
    def verify_access_token(self, token: str) -> AccessTokenClaims | None:
        """
        Verify signature, expiry and type of an access token.

        Does NOT consult the revocation store - that is the rotation
        engine's job.

        Returns:
            AccessTokenClaims if valid, None otherwise
        """
        pass

    @abstractmethod
    def verify_refresh_token(self, token: str) -> RefreshTokenClaims | None:
        """
        Verify signature, expiry and type of a refresh token.

        Returns:
            RefreshTokenClaims if valid, None otherwise
        """
        pass

    @abstractmethod
    def extract_token_id(self, token: str) -> str | None:
        """
        Read the token id without verifying the signature.

        Must work on tokens that fail full verification (expired, wrong
        audience) as long as they are structurally parseable, so that such
        tokens can still be blacklisted.

        Returns:
            The token id, or None if the token cannot be parsed
        """
        pass
