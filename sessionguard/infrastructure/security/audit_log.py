"""Security audit log backed by the standard logging module."""

import logging
from datetime import UTC, datetime
from typing import Any

from sessionguard.domain.services.security_audit_log import AuditEventType, ISecurityAuditLog

AUDIT_LOGGER_NAME = "sessionguard.security.audit"

# Anomalies get WARNING so they surface even at the default level
_WARNING_EVENTS = {
    AuditEventType.LOGIN_FAILED,
    AuditEventType.REFRESH_TOKEN_REUSE,
    AuditEventType.SUSPICIOUS_ACTIVITY,
    AuditEventType.BLACKLISTED_TOKEN_USED,
    AuditEventType.RATE_LIMIT_EXCEEDED,
}


class LoggingSecurityAuditLog(ISecurityAuditLog):
    """
    Writes one log record per security event to a dedicated logger.

    Route ``sessionguard.security.audit`` to its own handler to keep an audit
    trail separate from application logs. Event details travel in ``extra``
    so structured formatters can pick them up.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    async def record(self, event: AuditEventType, details: dict[str, Any]) -> None:
        level = logging.WARNING if event in _WARNING_EVENTS else logging.INFO
        summary = " ".join(f"{key}={value}" for key, value in sorted(details.items()))

        self._logger.log(
            level,
            f"[SECURITY] {event.value} {summary}".rstrip(),
            extra={
                "audit_event": event.value,
                "audit_details": details,
                "audit_timestamp": datetime.now(UTC).isoformat(),
            },
        )
