"""JWT token service implementation using PyJWT.

This is an INFRASTRUCTURE detail. The domain layer (ITokenService interface)
defines WHAT we need (token generation/validation), while this implementation
defines HOW we do it (using JWT via PyJWT library).

Dependency flow:
    TokenRotationService (application) → ITokenService (domain) ← JWTTokenService (infrastructure)

This design allows us to:
1. Test the rotation engine with a FakeTokenService (no real JWT in unit tests)
2. Swap token implementations (opaque tokens, asymmetric keys) without changing application code
3. Keep the domain layer pure and framework-agnostic
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from jwt.exceptions import InvalidTokenError

from sessionguard.domain.entities.principal import Principal
from sessionguard.domain.services.token_service import (
    AccessTokenClaims,
    ITokenService,
    RefreshTokenClaims,
)

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_ACCESS_REQUIRED_CLAIMS = ["sub", "email", "role", "jti", "iat", "exp", "iss", "aud"]
_REFRESH_REQUIRED_CLAIMS = ["sub", "jti", "fid", "iat", "exp", "iss", "aud"]


class JWTTokenService(ITokenService):
    """
    Production token service using JWT (JSON Web Tokens) via PyJWT.

    JWT Structure:
    - Header: Algorithm and token type (e.g., {"alg": "HS512", "typ": "JWT"})
    - Payload: Claims (sub, exp, iat, jti, iss, aud, type, ...)
    - Signature: HMAC signature using the secret for that token type

    Token Types:
    - Access Token: Short-lived (default: 15 minutes), carries the principal
    - Refresh Token: Long-lived (default: 7 days), carries the family id

    Security Considerations:
    - Access and refresh tokens are signed with DIFFERENT secrets, so one
      can never be accepted as the other even if the type claim is forged
    - Issuer and audience are verified on every decode
    - The type claim is checked as a second line of defence
    - Every token gets a random jti (the revocation key)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS512",
        issuer: str = "sessionguard",
        audience: str = "sessionguard-admin",
        access_token_lifetime: timedelta = timedelta(minutes=15),
        refresh_token_lifetime: timedelta = timedelta(days=7),
    ):
        """
        Initialize JWT token service.

        Args:
            access_secret: Secret for signing access tokens (min 32 characters)
            refresh_secret: Secret for signing refresh tokens (min 32 characters)
            algorithm: JWT signing algorithm (default: HS512)
            issuer: Value of the iss claim
            audience: Value of the aud claim
            access_token_lifetime: Access token lifetime
            refresh_token_lifetime: Refresh token lifetime

        Raises:
            ValueError: If a secret is too short
        """
        if len(access_secret) < 32 or len(refresh_secret) < 32:
            raise ValueError("Signing secrets must be at least 32 characters long")

        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self._access_token_lifetime = access_token_lifetime
        self._refresh_token_lifetime = refresh_token_lifetime

    def generate_access_token(self, principal: Principal) -> str:
        """
        Generate a JWT access token.

        The token payload contains:
        - sub (subject): User ID
        - email, role: The principal
        - exp (expiration), iat (issued at)
        - jti (JWT ID): Unique token identifier
        - iss, aud: Issuer and audience
        - type: "access" (to distinguish from refresh tokens)
        """
        now = datetime.now(UTC)

        payload = {
            "sub": principal.user_id,
            "email": principal.email,
            "role": principal.role,
            "exp": now + self._access_token_lifetime,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "iss": self._issuer,
            "aud": self._audience,
            "type": ACCESS_TOKEN_TYPE,
        }

        return jwt.encode(payload, self._access_secret, algorithm=self._algorithm)

    def generate_refresh_token(self, user_id: str, family_id: str | None = None) -> str:
        """
        Generate a JWT refresh token.

        For token rotation, a family_id groups every token descended from one
        login. When token reuse is detected, the whole family is ended.

        Args:
            user_id: Owner of the token
            family_id: Rotation chain to continue; a new family is started
                when omitted

        Returns:
            Encoded JWT refresh token
        """
        now = datetime.now(UTC)

        # If no family_id provided, create a new family
        if family_id is None:
            family_id = str(uuid.uuid4())

        payload = {
            "sub": user_id,
            "exp": now + self._refresh_token_lifetime,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "fid": family_id,  # Family ID for token rotation
            "iss": self._issuer,
            "aud": self._audience,
            "type": REFRESH_TOKEN_TYPE,
        }

        return jwt.encode(payload, self._refresh_secret, algorithm=self._algorithm)

    def verify_access_token(self, token: str) -> AccessTokenClaims | None:
        """
        Verify and decode a JWT access token.

        This method:
        1. Verifies the signature using the access secret
        2. Checks expiry, issuer and audience
        3. Validates the token type is "access"

        Returns:
            AccessTokenClaims if valid, None if invalid/expired/wrong type
        """
        payload = self._decode(token, self._access_secret, _ACCESS_REQUIRED_CLAIMS)
        if payload is None or payload.get("type") != ACCESS_TOKEN_TYPE:
            return None

        return AccessTokenClaims(
            user_id=str(payload["sub"]),
            email=payload["email"],
            role=payload["role"],
            token_id=payload["jti"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )

    def verify_refresh_token(self, token: str) -> RefreshTokenClaims | None:
        """
        Verify and decode a JWT refresh token.

        Does NOT check revocation or the family record - the rotation engine
        does that so reuse can be told apart from garbage.

        Returns:
            RefreshTokenClaims if valid JWT, None if invalid/expired/wrong type
        """
        payload = self._decode(token, self._refresh_secret, _REFRESH_REQUIRED_CLAIMS)
        if payload is None or payload.get("type") != REFRESH_TOKEN_TYPE:
            return None

        return RefreshTokenClaims(
            user_id=str(payload["sub"]),
            token_id=payload["jti"],
            family_id=payload["fid"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )

    def extract_token_id(self, token: str) -> str | None:
        """
        Read the jti claim without verifying signature, expiry or audience.

        Used at logout so that an expired access token can still be
        blacklisted for the remainder of its revocation TTL.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except InvalidTokenError:
            return None

        token_id = payload.get("jti")
        return token_id if isinstance(token_id, str) and token_id else None

    def _decode(self, token: str, secret: str, required: list[str]) -> dict | None:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                options={"require": required},
            )
        except InvalidTokenError as e:
            # Token is invalid, expired, or malformed
            logger.debug(f"Token rejected: {e}")
            return None
