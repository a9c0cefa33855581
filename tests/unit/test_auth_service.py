"""Unit tests for AuthService.

Tests the credential verification gate:
1. Login (rate limit first, uniform failures, token issuance)
2. Refresh (rate limit + rotation)
3. Logout (always succeeds)
4. Get current principal (verification + revocation check)
"""

import pytest

from sessionguard.application.dtos.auth_dto import LoginDTO, LogoutDTO, RefreshTokenDTO
from sessionguard.application.exceptions.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    RateLimitExceededError,
    TokenReuseDetectedError,
)
from sessionguard.application.services.auth_service import AuthService
from sessionguard.domain.entities.admin_identity import AdminIdentity
from sessionguard.domain.exceptions import StoreUnavailableException
from sessionguard.domain.services.security_audit_log import AuditEventType
from sessionguard.domain.value_objects.duration import Duration
from tests.fakes.constants import ADMIN_EMAIL, ADMIN_PASSWORD

pytestmark = pytest.mark.unit

CLIENT_IP = "203.0.113.7"


def login_dto(email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD) -> LoginDTO:
    return LoginDTO(email=email, password=password)


# === LOGIN TESTS ===


@pytest.mark.asyncio
async def test_login_success(auth_service, fake_token_service):
    """Test successful login returns a verifiable token pair."""
    # Act
    result = await auth_service.login(login_dto(), CLIENT_IP)

    # Assert
    assert result.access_token.startswith("access_")
    assert result.refresh_token.startswith("refresh_")
    assert result.token_type == "bearer"
    assert result.expires_in == 900

    claims = fake_token_service.verify_access_token(result.access_token)
    assert claims.email == ADMIN_EMAIL
    assert claims.role == "admin"


@pytest.mark.asyncio
async def test_login_email_comparison_ignores_case(auth_service):
    result = await auth_service.login(login_dto(email="Admin@Example.com"), CLIENT_IP)

    assert result.access_token


@pytest.mark.asyncio
async def test_login_wrong_password(auth_service):
    with pytest.raises(InvalidCredentialsError) as exc_info:
        await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)

    assert exc_info.value.message == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email_gives_same_error(auth_service):
    """Unknown email and wrong password are indistinguishable."""
    with pytest.raises(InvalidCredentialsError) as wrong_email:
        await auth_service.login(login_dto(email="intruder@example.com"), CLIENT_IP)
    with pytest.raises(InvalidCredentialsError) as wrong_password:
        await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)

    assert wrong_email.value.message == wrong_password.value.message
    assert wrong_email.value.error_code == wrong_password.value.error_code


@pytest.mark.asyncio
async def test_login_failure_reason_goes_to_audit_only(auth_service, audit, audit_log):
    with pytest.raises(InvalidCredentialsError):
        await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)
    await audit.drain()

    failures = audit_log.of_type(AuditEventType.LOGIN_FAILED)
    assert failures == [{"email": ADMIN_EMAIL, "client_ip": CLIENT_IP, "reason": "Invalid password"}]


@pytest.mark.asyncio
async def test_login_rate_limited_after_budget(auth_service, fake_password_hasher):
    """The sixth attempt in a window is refused before credentials are checked."""
    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)
    verifications = fake_password_hasher.verify_calls

    with pytest.raises(RateLimitExceededError) as exc_info:
        await auth_service.login(login_dto(), CLIENT_IP)

    assert exc_info.value.retry_after > 0
    assert exc_info.value.error_code == "RATE_LIMITED"
    assert fake_password_hasher.verify_calls == verifications


@pytest.mark.asyncio
async def test_login_rate_limit_is_per_client(auth_service):
    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)

    result = await auth_service.login(login_dto(), "198.51.100.20")

    assert result.access_token


@pytest.mark.asyncio
async def test_successful_login_resets_rate_limit(auth_service):
    for _ in range(4):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)

    await auth_service.login(login_dto(), CLIENT_IP)

    # A fresh budget of five
    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)


@pytest.mark.asyncio
async def test_login_still_limited_when_store_down(auth_service, store):
    """The limiter falls back to memory; the gate keeps limiting."""
    store.available = False

    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(login_dto(password="wrong-password"), CLIENT_IP)

    with pytest.raises(RateLimitExceededError):
        await auth_service.login(login_dto(), CLIENT_IP)


@pytest.mark.asyncio
async def test_login_with_store_down_cannot_issue(auth_service, store):
    store.available = False

    with pytest.raises(StoreUnavailableException):
        await auth_service.login(login_dto(), CLIENT_IP)


@pytest.mark.asyncio
async def test_login_rejected_when_admin_hash_not_configured(
    rotation_service, fake_token_service, rate_limiter, fake_password_hasher, audit
):
    service = AuthService(
        rotation_service=rotation_service,
        token_service=fake_token_service,
        rate_limiter=rate_limiter,
        password_hasher=fake_password_hasher,
        audit=audit,
        admin=AdminIdentity(email=ADMIN_EMAIL, password_hash=""),
        login_rate_limit_window=Duration.parse("15m"),
    )

    with pytest.raises(InvalidCredentialsError):
        await service.login(login_dto(), CLIENT_IP)


@pytest.mark.asyncio
async def test_login_success_is_audited(auth_service, audit, audit_log):
    await auth_service.login(login_dto(), CLIENT_IP)
    await audit.drain()

    assert audit_log.of_type(AuditEventType.LOGIN_SUCCESS) == [
        {"user_id": "admin-1", "client_ip": CLIENT_IP}
    ]


# === REFRESH TESTS ===


@pytest.mark.asyncio
async def test_refresh_returns_new_pair(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)

    refreshed = await auth_service.refresh(RefreshTokenDTO(refresh_token=tokens.refresh_token), CLIENT_IP)

    assert refreshed.refresh_token != tokens.refresh_token


@pytest.mark.asyncio
async def test_refresh_replay_is_rejected(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    dto = RefreshTokenDTO(refresh_token=tokens.refresh_token)
    await auth_service.refresh(dto, CLIENT_IP)

    with pytest.raises(TokenReuseDetectedError):
        await auth_service.refresh(dto, CLIENT_IP)


@pytest.mark.asyncio
async def test_refresh_is_rate_limited(
    rotation_service, fake_token_service, rate_limiter, fake_password_hasher, audit, audit_log, admin
):
    service = AuthService(
        rotation_service=rotation_service,
        token_service=fake_token_service,
        rate_limiter=rate_limiter,
        password_hasher=fake_password_hasher,
        audit=audit,
        admin=admin,
        login_rate_limit_window=Duration.parse("15m"),
        refresh_rate_limit_window=Duration.parse("15m"),
        refresh_rate_limit_max_attempts=1,
    )
    tokens = await service.login(login_dto(), CLIENT_IP)
    rotated = await service.refresh(RefreshTokenDTO(refresh_token=tokens.refresh_token), CLIENT_IP)

    with pytest.raises(RateLimitExceededError):
        await service.refresh(RefreshTokenDTO(refresh_token=rotated.refresh_token), CLIENT_IP)
    await audit.drain()

    events = audit_log.of_type(AuditEventType.RATE_LIMIT_EXCEEDED)
    assert len(events) == 1
    assert events[0]["action"] == "refresh"
    assert events[0]["client_ip"] == CLIENT_IP
    assert events[0]["retry_after"] > 0


# === LOGOUT TESTS ===


@pytest.mark.asyncio
async def test_logout_revokes_access_token(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    await auth_service.get_current_principal(tokens.access_token)

    result = await auth_service.logout(LogoutDTO(access_token=tokens.access_token), CLIENT_IP)

    assert result.success is True
    with pytest.raises(InvalidTokenError):
        await auth_service.get_current_principal(tokens.access_token)


@pytest.mark.asyncio
async def test_logout_with_refresh_token_ends_session(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)

    await auth_service.logout(
        LogoutDTO(access_token=tokens.access_token, refresh_token=tokens.refresh_token), CLIENT_IP
    )

    with pytest.raises(InvalidTokenError):
        await auth_service.refresh(RefreshTokenDTO(refresh_token=tokens.refresh_token), CLIENT_IP)


@pytest.mark.asyncio
async def test_logout_twice_succeeds(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    dto = LogoutDTO(access_token=tokens.access_token, refresh_token=tokens.refresh_token)

    first = await auth_service.logout(dto, CLIENT_IP)
    second = await auth_service.logout(dto, CLIENT_IP)

    assert first.success and second.success


@pytest.mark.asyncio
async def test_logout_with_garbage_tokens_succeeds(auth_service):
    result = await auth_service.logout(LogoutDTO(access_token="garbage", refresh_token="junk"), CLIENT_IP)

    assert result.success is True


@pytest.mark.asyncio
async def test_logout_with_store_down_succeeds(auth_service, store):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    store.available = False

    result = await auth_service.logout(LogoutDTO(access_token=tokens.access_token), CLIENT_IP)

    assert result.success is True


@pytest.mark.asyncio
async def test_logout_revokes_expired_access_token(auth_service, fake_token_service, rotation_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    fake_token_service.expire_token(tokens.access_token)

    await auth_service.logout(LogoutDTO(access_token=tokens.access_token), CLIENT_IP)

    assert await rotation_service.is_revoked(fake_token_service.token_id_of(tokens.access_token))


# === CURRENT PRINCIPAL TESTS ===


@pytest.mark.asyncio
async def test_get_current_principal(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)

    principal = await auth_service.get_current_principal(tokens.access_token)

    assert principal.user_id == "admin-1"
    assert principal.email == ADMIN_EMAIL
    assert principal.role == "admin"


@pytest.mark.asyncio
async def test_get_current_principal_rejects_refresh_token(auth_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)

    with pytest.raises(InvalidTokenError):
        await auth_service.get_current_principal(tokens.refresh_token)


@pytest.mark.asyncio
async def test_get_current_principal_rejects_expired_token(auth_service, fake_token_service):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    fake_token_service.expire_token(tokens.access_token)

    with pytest.raises(InvalidTokenError):
        await auth_service.get_current_principal(tokens.access_token)


@pytest.mark.asyncio
async def test_unverifiable_access_token_is_audited(auth_service, audit, audit_log):
    with pytest.raises(InvalidTokenError):
        await auth_service.get_current_principal("forged.access.token", client_ip=CLIENT_IP)
    await audit.drain()

    events = audit_log.of_type(AuditEventType.SUSPICIOUS_ACTIVITY)
    assert len(events) == 1
    assert events[0]["client_ip"] == CLIENT_IP
    assert "forged.access.token" not in str(events[0])


@pytest.mark.asyncio
async def test_get_current_principal_fails_closed_when_store_down(auth_service, store):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    store.available = False

    with pytest.raises(InvalidTokenError):
        await auth_service.get_current_principal(tokens.access_token)


@pytest.mark.asyncio
async def test_revoked_token_use_is_audited(auth_service, audit, audit_log):
    tokens = await auth_service.login(login_dto(), CLIENT_IP)
    await auth_service.logout(LogoutDTO(access_token=tokens.access_token), CLIENT_IP)

    with pytest.raises(InvalidTokenError):
        await auth_service.get_current_principal(tokens.access_token, client_ip=CLIENT_IP)
    await audit.drain()

    assert len(audit_log.of_type(AuditEventType.BLACKLISTED_TOKEN_USED)) == 1
    assert len(audit_log.of_type(AuditEventType.LOGOUT)) == 1
