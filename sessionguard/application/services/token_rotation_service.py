"""Token rotation service - the session token lifecycle.

This service owns every state change a token pair goes through:
1. Issue a new pair and start a token family (login)
2. Rotate a refresh token into a new pair, detecting reuse
3. Revoke tokens (logout)
4. Answer whether a token id has been revoked

A refresh token is usable at most once. The family record names the single
refresh token of the chain that has not been used yet; presenting any other
token of the family ends the family for everyone holding it.

DEPENDENCY INVERSION in action:
- Depends on ITokenService, ITokenRepository, ISecurityAuditLog (abstractions)
- No dependencies on PyJWT or redis
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from sessionguard.application.dtos.auth_dto import TokenDTO
from sessionguard.application.exceptions.exceptions import (
    REFRESH_TOKEN_ERROR_MESSAGE,
    InvalidTokenError,
    TokenReuseDetectedError,
)
from sessionguard.application.services.audit_dispatcher import AuditDispatcher
from sessionguard.domain.entities.principal import Principal
from sessionguard.domain.exceptions import StoreUnavailableException
from sessionguard.domain.repositories.token_repository import ITokenRepository, TokenFamily
from sessionguard.domain.services.security_audit_log import AuditEventType
from sessionguard.domain.services.token_service import ITokenService
from sessionguard.domain.value_objects.duration import Duration

logger = logging.getLogger(__name__)


class TokenRotationService:
    """
    Issues, rotates and revokes access/refresh token pairs.

    Concurrency: two concurrent rotations of the same refresh token may both
    read the family before either writes it (race-then-detect). Both succeed,
    the later write wins, and whichever pair lost is detected as reuse on its
    next rotation. With ``compare_and_swap=True`` the family write is
    conditional instead and the loser of the race is rejected immediately.

    Testing:
    - Unit tests use FakeTokenService with a real KeyValueTokenRepository
      over InMemoryKeyValueStore
    """

    def __init__(
        self,
        token_service: ITokenService,
        token_repository: ITokenRepository,
        audit: AuditDispatcher,
        principal_resolver: Callable[[str], Principal | None],
        access_token_lifetime: Duration,
        refresh_token_lifetime: Duration,
        ttl_buffer_seconds: int = 300,
        compare_and_swap: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize rotation service with dependencies.

        Args:
            token_service: Token signing/verification (abstraction)
            token_repository: Revocation entries and family records
            audit: Fire-and-forget security audit channel
            principal_resolver: Maps a refresh token's user id back to the
                principal its new access token speaks for; None if that
                user no longer exists
            access_token_lifetime: Access token lifetime
            refresh_token_lifetime: Refresh token lifetime
            ttl_buffer_seconds: Added to every revocation and family TTL
            compare_and_swap: Make the family update a conditional write
            clock: Source of "now" for family timestamps
        """
        self._token_service = token_service
        self._token_repository = token_repository
        self._audit = audit
        self._principal_resolver = principal_resolver
        self._access_token_lifetime = access_token_lifetime
        self._refresh_token_lifetime = refresh_token_lifetime
        self._ttl_buffer_seconds = ttl_buffer_seconds
        self._compare_and_swap = compare_and_swap
        self._clock = clock

    @property
    def access_revocation_ttl(self) -> int:
        """Revocation TTL for an access token id: never shorter than the token."""
        return self._access_token_lifetime.seconds + self._ttl_buffer_seconds

    @property
    def refresh_revocation_ttl(self) -> int:
        """Revocation TTL for a refresh token id, also the family record TTL."""
        return self._refresh_token_lifetime.seconds + self._ttl_buffer_seconds

    async def issue(self, principal: Principal) -> TokenDTO:
        """
        Sign a new pair and start a new token family.

        Reads no prior state, so concurrent logins each get their own family.

        Raises:
            StoreUnavailableException: If the family record cannot be written;
                a pair whose family does not exist could never be rotated
        """
        family_id = str(uuid.uuid4())
        access_token = self._token_service.generate_access_token(principal)
        refresh_token = self._token_service.generate_refresh_token(principal.user_id, family_id)

        now = self._clock()
        family = TokenFamily(
            family_id=family_id,
            current_token_id=self._require_token_id(refresh_token),
            user_id=principal.user_id,
            created_at=now,
            updated_at=now,
        )
        await self._token_repository.save_family(family, self.refresh_revocation_ttl)

        logger.info(f"Issued token pair for user {principal.user_id} in family {family_id}")
        return self._pair(access_token, refresh_token)

    async def rotate(self, refresh_token: str, client_ip: str | None = None) -> TokenDTO:
        """
        Exchange a refresh token for a new pair in the same family.

        Steps:
        1. Verify the refresh token (signature, expiry, type)
        2. Read the family record:
           a. Missing → the family was ended (logout, reuse, expiry);
              recorded as suspicious activity
           b. Names a different token → REUSE: end the family, revoke the
              presented token, emit an audit event
           c. Names this token → continue
        3. Sign the new pair with the same family id
        4. Point the family record at the new refresh token
        5. Revoke the presented refresh token

        Args:
            refresh_token: Encoded refresh token
            client_ip: Caller address, recorded with reuse events

        Returns:
            New TokenDTO with fresh access and refresh tokens

        Raises:
            TokenReuseDetectedError: If the token was already rotated
            InvalidTokenError: If the token is invalid, its family is gone,
                or the store cannot be reached (fails closed)
        """
        claims = self._token_service.verify_refresh_token(refresh_token)
        if claims is None:
            self._audit.emit(
                AuditEventType.SUSPICIOUS_ACTIVITY,
                {"reason": "Invalid refresh token presented", "client_ip": client_ip},
            )
            raise InvalidTokenError(REFRESH_TOKEN_ERROR_MESSAGE)

        try:
            family = await self._token_repository.get_family(claims.family_id)

            if family is None:
                logger.warning(f"Token family {claims.family_id} not found; token {claims.token_id} rejected")
                self._audit.emit(
                    AuditEventType.SUSPICIOUS_ACTIVITY,
                    {
                        "reason": "Refresh token without a token family presented",
                        "family_id": claims.family_id,
                        "token_id": claims.token_id,
                        "client_ip": client_ip,
                    },
                )
                raise InvalidTokenError(REFRESH_TOKEN_ERROR_MESSAGE)

            if not family.is_current(claims.token_id):
                await self._end_family_on_reuse(
                    claims.family_id, claims.token_id, family.current_token_id, client_ip
                )

            principal = self._principal_resolver(claims.user_id)
            if principal is None:
                logger.warning(f"User {claims.user_id} no longer exists; family {claims.family_id} rejected")
                raise InvalidTokenError(REFRESH_TOKEN_ERROR_MESSAGE)

            access_token = self._token_service.generate_access_token(principal)
            new_refresh_token = self._token_service.generate_refresh_token(claims.user_id, claims.family_id)
            advanced = family.advance(self._require_token_id(new_refresh_token), self._clock())

            if self._compare_and_swap:
                replaced = await self._token_repository.replace_family_if_current(
                    advanced, claims.token_id, self.refresh_revocation_ttl
                )
                if not replaced:
                    if await self._token_repository.get_family(claims.family_id) is None:
                        # Family ended by a logout between the read and the write
                        logger.info(
                            f"Token family {claims.family_id} ended during rotation; "
                            f"token {claims.token_id} rejected"
                        )
                        raise InvalidTokenError(REFRESH_TOKEN_ERROR_MESSAGE)
                    # Another rotation of the same token committed first
                    await self._end_family_on_reuse(
                        claims.family_id, claims.token_id, None, client_ip
                    )
            else:
                await self._token_repository.save_family(advanced, self.refresh_revocation_ttl)

            await self._token_repository.revoke_token(claims.token_id, self.refresh_revocation_ttl)

        except StoreUnavailableException as e:
            logger.error(f"Token refresh failed for family {claims.family_id}: {e.message}")
            raise InvalidTokenError(REFRESH_TOKEN_ERROR_MESSAGE) from e

        logger.debug(
            f"Rotated family {claims.family_id}: {claims.token_id} -> {advanced.current_token_id}"
        )
        return self._pair(access_token, new_refresh_token)

    async def revoke(self, access_token_id: str | None, refresh_token: str | None = None) -> None:
        """
        Revoke an access token id and, optionally, a refresh token's family.

        Never raises: each step is attempted independently, and failures
        are logged and swallowed so logout always completes.

        Args:
            access_token_id: Id of the access token to revoke (None to skip)
            refresh_token: Encoded refresh token whose family should end;
                ignored if it no longer verifies
        """
        if access_token_id:
            try:
                await self._token_repository.revoke_token(access_token_id, self.access_revocation_ttl)
            except Exception as e:
                logger.error(f"Failed to revoke access token {access_token_id}: {e!r}")

        if not refresh_token:
            return

        claims = self._token_service.verify_refresh_token(refresh_token)
        if claims is None:
            logger.debug("Refresh token presented at logout did not verify; family left to expire")
            return

        try:
            await self._token_repository.delete_family(claims.family_id)
        except Exception as e:
            logger.error(f"Failed to delete token family {claims.family_id}: {e!r}")

        try:
            await self._token_repository.revoke_token(claims.token_id, self.refresh_revocation_ttl)
        except Exception as e:
            logger.error(f"Failed to revoke refresh token {claims.token_id}: {e!r}")

    async def is_revoked(self, token_id: str) -> bool:
        """
        Check whether a token id has been revoked.

        Fails CLOSED: if the store cannot answer, the token is treated as
        revoked.
        """
        try:
            return await self._token_repository.is_token_revoked(token_id)
        except StoreUnavailableException as e:
            logger.error(f"Revocation check failed for {token_id}, treating as revoked: {e.message}")
            return True

    async def _end_family_on_reuse(
        self,
        family_id: str,
        presented_token_id: str,
        expected_token_id: str | None,
        client_ip: str | None,
    ) -> None:
        logger.warning(
            f"Refresh token reuse detected - possible replay attack. "
            f"Family {family_id}, presented {presented_token_id}, expected {expected_token_id}"
        )

        await self._token_repository.delete_family(family_id)
        await self._token_repository.revoke_token(presented_token_id, self.refresh_revocation_ttl)

        self._audit.emit(
            AuditEventType.REFRESH_TOKEN_REUSE,
            {"family_id": family_id, "token_id": presented_token_id, "client_ip": client_ip},
        )
        raise TokenReuseDetectedError(family_id)

    def _require_token_id(self, token: str) -> str:
        token_id = self._token_service.extract_token_id(token)
        if token_id is None:
            raise RuntimeError("Token service produced a token without an id")
        return token_id

    def _pair(self, access_token: str, refresh_token: str) -> TokenDTO:
        return TokenDTO(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=self._access_token_lifetime.seconds,
        )
