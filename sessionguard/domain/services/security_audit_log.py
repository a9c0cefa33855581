"""Security audit log interface - domain service abstraction.

Authentication outcomes and anomalies (most importantly refresh token
reuse) are recorded for later review. Recording is a side effect: it must
never change or delay the decision it describes.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class AuditEventType(str, Enum):
    """Kinds of security-relevant events."""

    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    REFRESH_TOKEN_REUSE = "REFRESH_TOKEN_REUSE"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    BLACKLISTED_TOKEN_USED = "BLACKLISTED_TOKEN_USED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class ISecurityAuditLog(ABC):
    """Interface for recording security events."""

    @abstractmethod
    async def record(self, event: AuditEventType, details: dict[str, Any]) -> None:
        """
        Record one event.

        Args:
            event: Event type
            details: Context (ids, client IP, reason); never raw tokens or
                secrets
        """
        pass
