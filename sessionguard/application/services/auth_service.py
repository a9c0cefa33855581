"""Authentication service - application layer business logic.

This service is the credential verification gate in front of the token
lifecycle. It orchestrates the authentication use cases:
1. Admin login (rate limit + credential validation + token issuance)
2. Token refresh (rate limit + rotation)
3. Logout (revocation, always succeeds)
4. Get current principal (verify access token + revocation check)

DEPENDENCY INVERSION in action:
- AuthService depends on IRateLimiter, IPasswordHasher, ITokenService (abstractions)
- AuthService delegates every token state change to TokenRotationService
- No dependencies on PyJWT, pwdlib or redis
"""

import hashlib
import hmac
import logging
from typing import NoReturn

from sessionguard.application.dtos.auth_dto import (
    LoginDTO,
    LogoutDTO,
    LogoutResultDTO,
    PrincipalDTO,
    RefreshTokenDTO,
    TokenDTO,
)
from sessionguard.application.exceptions.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    RateLimitExceededError,
)
from sessionguard.application.services.audit_dispatcher import AuditDispatcher
from sessionguard.application.services.token_rotation_service import TokenRotationService
from sessionguard.domain.entities.admin_identity import AdminIdentity
from sessionguard.domain.exceptions import InvalidEntityStateException
from sessionguard.domain.services.password_hasher import IPasswordHasher
from sessionguard.domain.services.rate_limiter import IRateLimiter
from sessionguard.domain.services.security_audit_log import AuditEventType
from sessionguard.domain.services.token_service import ITokenService
from sessionguard.domain.value_objects.duration import Duration

logger = logging.getLogger(__name__)

LOGIN_ACTION = "login"
REFRESH_ACTION = "refresh"


def _email_digest(email: str) -> bytes:
    return hashlib.sha256(email.strip().lower().encode("utf-8")).digest()


class AuthService:
    """
    Authentication service encapsulating auth-related use cases.

    This service:
    1. Depends on abstractions (IRateLimiter, IPasswordHasher, ITokenService)
    2. Never reveals which credential was wrong
    3. Returns DTOs to the presentation layer
    4. Raises application exceptions (converted to HTTP by presentation)

    Testing:
    - Unit tests use FakePasswordHasher, FakeTokenService and the in-memory store
    """

    def __init__(
        self,
        rotation_service: TokenRotationService,
        token_service: ITokenService,
        rate_limiter: IRateLimiter,
        password_hasher: IPasswordHasher,
        audit: AuditDispatcher,
        admin: AdminIdentity,
        login_rate_limit_window: Duration,
        login_rate_limit_max_attempts: int = 5,
        refresh_rate_limit_window: Duration = Duration(seconds=900),
        refresh_rate_limit_max_attempts: int = 100,
    ):
        """
        Initialize auth service with dependencies.

        Args:
            rotation_service: Token lifecycle (issue/rotate/revoke/is_revoked)
            token_service: Token verification (abstraction)
            rate_limiter: Per-(action, client) attempt limiting (abstraction)
            password_hasher: One-way secret verification (abstraction)
            audit: Fire-and-forget security audit channel
            admin: The configured admin identity
            login_rate_limit_window: Login window length
            login_rate_limit_max_attempts: Login attempts per window
            refresh_rate_limit_window: Refresh window length
            refresh_rate_limit_max_attempts: Refreshes per window
        """
        self._rotation_service = rotation_service
        self._token_service = token_service
        self._rate_limiter = rate_limiter
        self._password_hasher = password_hasher
        self._audit = audit
        self._admin = admin
        self._login_window = login_rate_limit_window
        self._login_max_attempts = login_rate_limit_max_attempts
        self._refresh_window = refresh_rate_limit_window
        self._refresh_max_attempts = refresh_rate_limit_max_attempts

        if not admin.password_hash:
            logger.warning("ADMIN_PASSWORD_HASH is not configured; every login will be rejected")

    async def login(self, dto: LoginDTO, client_ip: str) -> TokenDTO:
        """
        Authenticate the admin and issue a token pair.

        Business logic:
        1. Rate limit (login, client_ip) BEFORE looking at credentials
        2. Compare the email in constant time
        3. Verify the password against the configured hash
        4. On success, reset the login limit and issue a new token family

        Args:
            dto: Structurally valid credentials (email + password)
            client_ip: Caller address, the rate limit identity

        Returns:
            TokenDTO with access_token and refresh_token

        Raises:
            RateLimitExceededError: If the client exhausted its login budget
            InvalidCredentialsError: If email or password is incorrect
            StoreUnavailableException: If the new token family cannot be stored

        Example:
            token_dto = await auth_service.login(
                LoginDTO(email="admin@example.com", password="secret123"),
                client_ip="203.0.113.7",
            )
        """
        limit = await self._rate_limiter.try_acquire(
            LOGIN_ACTION, client_ip, self._login_window.seconds, self._login_max_attempts
        )
        if not limit.allowed:
            logger.warning(f"Login rate limited for {client_ip}")
            self._audit.emit(
                AuditEventType.RATE_LIMIT_EXCEEDED,
                {"action": LOGIN_ACTION, "client_ip": client_ip, "retry_after": limit.retry_after},
            )
            raise RateLimitExceededError(retry_after=limit.retry_after)

        if not self._email_matches(dto.email):
            self._reject_login(dto.email, client_ip, "Invalid email")

        if not self._admin.password_hash or not self._password_hasher.verify(
            dto.password, self._admin.password_hash
        ):
            self._reject_login(dto.email, client_ip, "Invalid password")

        await self._rate_limiter.reset(LOGIN_ACTION, client_ip)

        principal = self._admin.principal()
        tokens = await self._rotation_service.issue(principal)

        self._audit.emit(
            AuditEventType.LOGIN_SUCCESS,
            {"user_id": principal.user_id, "client_ip": client_ip},
        )
        logger.info(f"User {principal.user_id} logged in from {client_ip}")
        return tokens

    async def refresh(self, dto: RefreshTokenDTO, client_ip: str) -> TokenDTO:
        """
        Exchange a refresh token for a new pair.

        Raises:
            RateLimitExceededError: If the client exhausted its refresh budget
            InvalidTokenError: If the token is invalid, revoked, or reused
        """
        limit = await self._rate_limiter.try_acquire(
            REFRESH_ACTION, client_ip, self._refresh_window.seconds, self._refresh_max_attempts
        )
        if not limit.allowed:
            logger.warning(f"Refresh rate limited for {client_ip}")
            self._audit.emit(
                AuditEventType.RATE_LIMIT_EXCEEDED,
                {"action": REFRESH_ACTION, "client_ip": client_ip, "retry_after": limit.retry_after},
            )
            raise RateLimitExceededError(retry_after=limit.retry_after)

        return await self._rotation_service.rotate(dto.refresh_token, client_ip=client_ip)

    async def logout(self, dto: LogoutDTO, client_ip: str) -> LogoutResultDTO:
        """
        Revoke the presented tokens.

        Always succeeds, even for garbage or already-revoked tokens, so the
        client can always clear its session. The access token id is read
        without verifying the signature so expired tokens are revoked too.
        """
        access_token_id = self._token_service.extract_token_id(dto.access_token)
        await self._rotation_service.revoke(access_token_id, dto.refresh_token)

        claims = self._token_service.verify_access_token(dto.access_token)
        self._audit.emit(
            AuditEventType.LOGOUT,
            {"user_id": claims.user_id if claims else None, "client_ip": client_ip},
        )
        return LogoutResultDTO(success=True)

    async def get_current_principal(self, access_token: str, client_ip: str | None = None) -> PrincipalDTO:
        """
        Get the principal an access token speaks for.

        Used by the FastAPI dependency guarding protected routes. The token
        must verify AND must not be revoked; the revocation check fails
        closed.

        Raises:
            InvalidTokenError: If token is invalid, expired, or revoked
        """
        claims = self._token_service.verify_access_token(access_token)
        if claims is None:
            self._audit.emit(
                AuditEventType.SUSPICIOUS_ACTIVITY,
                {"reason": "Invalid access token presented", "client_ip": client_ip},
            )
            raise InvalidTokenError("Invalid or expired access token")

        if await self._rotation_service.is_revoked(claims.token_id):
            logger.warning(f"Revoked access token {claims.token_id} presented by user {claims.user_id}")
            self._audit.emit(
                AuditEventType.BLACKLISTED_TOKEN_USED,
                {"token_id": claims.token_id, "user_id": claims.user_id, "client_ip": client_ip},
            )
            raise InvalidTokenError("Invalid or expired access token")

        try:
            principal = claims.to_principal()
        except InvalidEntityStateException as e:
            logger.warning(f"Access token {claims.token_id} carries an invalid principal: {e.message}")
            raise InvalidTokenError("Invalid or expired access token") from e

        return PrincipalDTO.from_entity(principal)

    def _email_matches(self, email: str) -> bool:
        if not self._admin.email:
            return False
        return hmac.compare_digest(_email_digest(email), _email_digest(self._admin.email))

    def _reject_login(self, email: str, client_ip: str, reason: str) -> NoReturn:
        # The reason is for the audit trail only; callers always see the same error
        logger.warning(f"Login failed for {client_ip}: {reason}")
        self._audit.emit(
            AuditEventType.LOGIN_FAILED,
            {"email": email, "client_ip": client_ip, "reason": reason},
        )
        raise InvalidCredentialsError()
