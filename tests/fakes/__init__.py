"""Fake implementations for testing."""

from tests.fakes.audit_log_fake import RecordingAuditLog
from tests.fakes.key_value_store_fake import FlakyKeyValueStore
from tests.fakes.password_hasher_fake import FakePasswordHasher
from tests.fakes.token_service_fake import FakeTokenService

__all__ = ["FakePasswordHasher", "FakeTokenService", "FlakyKeyValueStore", "RecordingAuditLog"]
