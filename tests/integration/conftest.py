"""Integration test fixtures.

Provides the real application (real JWT signing, real rotation engine,
real rate limiter) behind a FastAPI TestClient. The store is the in-memory
one wrapped so tests can simulate an outage, and passwords use the fake
hasher so login stays fast.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from sessionguard.infrastructure.config.settings import Settings
from sessionguard.main import create_app
from sessionguard.presentation.dependencies import ServiceContainer, build_container
from tests.fakes.audit_log_fake import RecordingAuditLog
from tests.fakes.constants import ADMIN_EMAIL, ADMIN_PASSWORD, INTEGRATION_LOGIN_MAX_ATTEMPTS
from tests.fakes.key_value_store_fake import FlakyKeyValueStore
from tests.fakes.password_hasher_fake import FakePasswordHasher


@pytest.fixture
def settings() -> Settings:
    """Test settings; nothing is read from the environment or a .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        jwt_secret="integration-access-secret-0123456789",
        jwt_refresh_secret="integration-refresh-secret-0123456789",
        admin_email=ADMIN_EMAIL,
        admin_password_hash=FakePasswordHasher().hash(ADMIN_PASSWORD),
        login_rate_limit_max_attempts=INTEGRATION_LOGIN_MAX_ATTEMPTS,
        log_level="WARNING",
    )


@pytest.fixture
def kv_store() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


@pytest.fixture
def integration_audit_log() -> RecordingAuditLog:
    return RecordingAuditLog()


@pytest.fixture
def container(settings, kv_store, integration_audit_log) -> ServiceContainer:
    return build_container(
        settings,
        store=kv_store,
        password_hasher=FakePasswordHasher(),
        audit_log=integration_audit_log,
    )


@pytest.fixture
def client(settings, container) -> Generator[TestClient]:
    """
    Create a FastAPI test client around a freshly built application.

    Entering the client runs the lifespan, so the container is installed on
    app.state exactly as in production.
    """
    app = create_app(settings, container=container)

    with TestClient(app) as test_client:
        yield test_client
