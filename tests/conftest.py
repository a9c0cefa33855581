"""Pytest configuration and fixtures.

This file contains shared fixtures that can be used across all tests.

These fixtures follow the Dependency Inversion Principle:
- Use fake implementations (FakePasswordHasher, FakeTokenService)
- Use the real in-memory store (fast, no Redis needed)
- Tests are isolated (each test gets fresh instances)
"""

import pytest

from sessionguard.application.services.audit_dispatcher import AuditDispatcher
from sessionguard.application.services.auth_service import AuthService
from sessionguard.application.services.token_rotation_service import TokenRotationService
from sessionguard.domain.entities.admin_identity import AdminIdentity
from sessionguard.domain.value_objects.duration import Duration
from sessionguard.infrastructure.repositories.token_repository_impl import KeyValueTokenRepository
from sessionguard.infrastructure.security.rate_limiter import StoreRateLimiter
from tests.fakes.audit_log_fake import RecordingAuditLog
from tests.fakes.constants import ACCESS_LIFETIME, ADMIN_EMAIL, ADMIN_PASSWORD, REFRESH_LIFETIME, TTL_BUFFER
from tests.fakes.key_value_store_fake import FlakyKeyValueStore
from tests.fakes.password_hasher_fake import FakePasswordHasher
from tests.fakes.token_service_fake import FakeTokenService


@pytest.fixture
def fake_password_hasher() -> FakePasswordHasher:
    """
    Provide a FakePasswordHasher for tests.

    This fake hasher is fast and predictable, making tests easier to write.
    """
    return FakePasswordHasher()


@pytest.fixture
def fake_token_service() -> FakeTokenService:
    """
    Provide a FakeTokenService for tests.

    This fake token service generates predictable tokens and
    stores their claims in memory for fast testing.
    """
    return FakeTokenService(
        access_token_lifetime=ACCESS_LIFETIME.as_timedelta(),
        refresh_token_lifetime=REFRESH_LIFETIME.as_timedelta(),
    )


@pytest.fixture
def store() -> FlakyKeyValueStore:
    """In-memory store that tests can switch into an outage."""
    return FlakyKeyValueStore()


@pytest.fixture
def token_repository(store) -> KeyValueTokenRepository:
    return KeyValueTokenRepository(store)


@pytest.fixture
def audit_log() -> RecordingAuditLog:
    return RecordingAuditLog()


@pytest.fixture
def audit(audit_log) -> AuditDispatcher:
    return AuditDispatcher(audit_log)


@pytest.fixture
def admin(fake_password_hasher) -> AdminIdentity:
    """The configured admin; its hash uses the FakePasswordHasher format."""
    return AdminIdentity(email=ADMIN_EMAIL, password_hash=fake_password_hasher.hash(ADMIN_PASSWORD))


@pytest.fixture
def rotation_service(fake_token_service, token_repository, audit, admin) -> TokenRotationService:
    """
    Provide a TokenRotationService with fake signing and the in-memory store.

    Race-then-detect mode (compare_and_swap off), as in the default settings.
    """
    return TokenRotationService(
        token_service=fake_token_service,
        token_repository=token_repository,
        audit=audit,
        principal_resolver=admin.resolve,
        access_token_lifetime=ACCESS_LIFETIME,
        refresh_token_lifetime=REFRESH_LIFETIME,
        ttl_buffer_seconds=TTL_BUFFER,
    )


@pytest.fixture
def rate_limiter(store) -> StoreRateLimiter:
    return StoreRateLimiter(store, fallback_max_entries=100, cleanup_interval_seconds=60)


@pytest.fixture
def auth_service(
    rotation_service, fake_token_service, rate_limiter, fake_password_hasher, audit, admin
) -> AuthService:
    """
    Provide AuthService with fake dependencies.

    Login budget: 5 attempts per 15 minutes. Refresh budget: 100 per 15 minutes.
    """
    return AuthService(
        rotation_service=rotation_service,
        token_service=fake_token_service,
        rate_limiter=rate_limiter,
        password_hasher=fake_password_hasher,
        audit=audit,
        admin=admin,
        login_rate_limit_window=Duration.parse("15m"),
        login_rate_limit_max_attempts=5,
        refresh_rate_limit_window=Duration.parse("15m"),
        refresh_rate_limit_max_attempts=100,
    )
