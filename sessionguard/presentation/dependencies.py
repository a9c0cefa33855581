"""FastAPI dependency injection setup.

This module is the COMPOSITION ROOT - where we wire up dependencies.

In Clean Architecture, the composition root:
1. Lives in the outermost layer (presentation/infrastructure)
2. Creates concrete implementations
3. Injects them into abstractions
4. Never imported by inner layers

This is where we decide:
- Use RedisKeyValueStore when REDIS_URL is set, InMemoryKeyValueStore otherwise
- Use PwdlibPasswordHasher (Argon2, bcrypt accepted)
- Use JWTTokenService (HS512, separate access/refresh secrets)
- Use Settings from environment (not hardcoded config)

Everything is built once by build_container() during application startup
and kept on app.state; request dependencies only read it from there.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sessionguard.application.dtos.auth_dto import PrincipalDTO
from sessionguard.application.exceptions.exceptions import UnauthorizedError
from sessionguard.application.services.audit_dispatcher import AuditDispatcher
from sessionguard.application.services.auth_service import AuthService
from sessionguard.application.services.token_rotation_service import TokenRotationService
from sessionguard.domain.entities.admin_identity import AdminIdentity
from sessionguard.domain.repositories.key_value_store import IKeyValueStore
from sessionguard.domain.services.password_hasher import IPasswordHasher
from sessionguard.domain.services.security_audit_log import ISecurityAuditLog
from sessionguard.domain.services.token_service import ITokenService
from sessionguard.infrastructure.config.settings import Settings
from sessionguard.infrastructure.persistence.redis_client import create_redis_client
from sessionguard.infrastructure.repositories.in_memory_key_value_store import InMemoryKeyValueStore
from sessionguard.infrastructure.repositories.redis_key_value_store import RedisKeyValueStore
from sessionguard.infrastructure.repositories.token_repository_impl import KeyValueTokenRepository
from sessionguard.infrastructure.security.audit_log import LoggingSecurityAuditLog
from sessionguard.infrastructure.security.jwt_token_service import JWTTokenService
from sessionguard.infrastructure.security.password_hasher import PwdlibPasswordHasher
from sessionguard.infrastructure.security.rate_limiter import StoreRateLimiter

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Every long-lived object the application needs, built once at startup."""

    settings: Settings
    store: IKeyValueStore
    token_service: ITokenService
    password_hasher: IPasswordHasher
    audit: AuditDispatcher
    rotation_service: TokenRotationService
    auth_service: AuthService

    async def aclose(self) -> None:
        """Flush pending audit events and release store connections."""
        await self.audit.drain()
        await self.store.close()


def create_store(settings: Settings) -> IKeyValueStore:
    """Pick the key/value store for these settings."""
    if settings.redis_url:
        return RedisKeyValueStore(create_redis_client(settings))

    if settings.is_production:
        logger.warning(
            "REDIS_URL is not set; using the in-process store. Revocations will not "
            "be shared between instances and are lost on restart."
        )
    return InMemoryKeyValueStore(cleanup_interval_seconds=settings.rate_limit_cleanup_interval.seconds)


def build_container(
    settings: Settings,
    store: IKeyValueStore | None = None,
    password_hasher: IPasswordHasher | None = None,
    audit_log: ISecurityAuditLog | None = None,
) -> ServiceContainer:
    """
    Wire up the application.

    Args:
        settings: Application settings
        store: Key/value store override (tests pass fakes or fakeredis)
        password_hasher: Hasher override
        audit_log: Audit sink override

    Returns:
        ServiceContainer with all dependencies injected

    Dependency Graph:
        AuthService
            → TokenRotationService
                → JWTTokenService → Settings
                → KeyValueTokenRepository → IKeyValueStore
                → AuditDispatcher → LoggingSecurityAuditLog
            → StoreRateLimiter → IKeyValueStore
            → PwdlibPasswordHasher
    """
    store = store or create_store(settings)
    password_hasher = password_hasher or PwdlibPasswordHasher()
    audit = AuditDispatcher(audit_log or LoggingSecurityAuditLog())
    admin = AdminIdentity(email=settings.admin_email, password_hash=settings.admin_password_hash)

    token_service = JWTTokenService(
        access_secret=settings.jwt_secret,
        refresh_secret=settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        access_token_lifetime=settings.access_token_expires_in.as_timedelta(),
        refresh_token_lifetime=settings.refresh_token_expires_in.as_timedelta(),
    )

    rotation_service = TokenRotationService(
        token_service=token_service,
        token_repository=KeyValueTokenRepository(store),
        audit=audit,
        principal_resolver=admin.resolve,
        access_token_lifetime=settings.access_token_expires_in,
        refresh_token_lifetime=settings.refresh_token_expires_in,
        ttl_buffer_seconds=settings.token_ttl_buffer_seconds,
        compare_and_swap=settings.rotation_compare_and_swap,
    )

    rate_limiter = StoreRateLimiter(
        store,
        fallback_max_entries=settings.rate_limit_fallback_max_entries,
        cleanup_interval_seconds=settings.rate_limit_cleanup_interval.seconds,
    )

    auth_service = AuthService(
        rotation_service=rotation_service,
        token_service=token_service,
        rate_limiter=rate_limiter,
        password_hasher=password_hasher,
        audit=audit,
        admin=admin,
        login_rate_limit_window=settings.login_rate_limit_window,
        login_rate_limit_max_attempts=settings.login_rate_limit_max_attempts,
        refresh_rate_limit_window=settings.refresh_rate_limit_window,
        refresh_rate_limit_max_attempts=settings.refresh_rate_limit_max_attempts,
    )

    return ServiceContainer(
        settings=settings,
        store=store,
        token_service=token_service,
        password_hasher=password_hasher,
        audit=audit,
        rotation_service=rotation_service,
        auth_service=auth_service,
    )


def get_container(request: Request) -> ServiceContainer:
    """Dependency that provides the container built at startup."""
    return request.app.state.container


def get_auth_service(container: ServiceContainer = Depends(get_container)) -> AuthService:
    """
    Dependency that provides AuthService.

    Note:
        In tests, override it like any other dependency:

        app.dependency_overrides[get_auth_service] = lambda: fake_auth_service
    """
    return container.auth_service


def get_store(container: ServiceContainer = Depends(get_container)) -> IKeyValueStore:
    """Dependency that provides the shared key/value store."""
    return container.store


def get_client_ip(request: Request) -> str:
    """
    Client address used as the rate limit identity.

    The first X-Forwarded-For entry wins when present (the service is
    expected to run behind a reverse proxy that sets it).
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client is not None:
        return request.client.host
    return "unknown"


# Create security scheme for JWT Bearer tokens
# auto_error=False allows us to return 401 instead of 403 when credentials are missing
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip),
) -> PrincipalDTO:
    """
    Dependency that extracts and validates the current principal from JWT.

    This dependency:
    1. Extracts the Bearer token from Authorization header
    2. Verifies it and checks it has not been revoked (via AuthService)
    3. Returns the authenticated principal
    4. Raises exceptions if token is invalid (converted to 401 by exception handler)

    Usage in endpoints:
        @router.get("/me")
        async def get_me(principal: PrincipalDTO = Depends(get_current_principal)):
            return principal
    """
    if credentials is None:
        raise UnauthorizedError("Missing authorization credentials")

    return await auth_service.get_current_principal(credentials.credentials, client_ip=client_ip)
