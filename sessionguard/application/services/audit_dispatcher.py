"""Fire-and-forget delivery of security audit events."""

import asyncio
import logging
from typing import Any

from sessionguard.domain.services.security_audit_log import AuditEventType, ISecurityAuditLog

logger = logging.getLogger(__name__)


class AuditDispatcher:
    """
    Schedules audit records without making the caller wait for them.

    A failing audit sink is logged and otherwise ignored; it never changes
    the outcome of the request that produced the event. References to
    pending tasks are held until they finish so they are not garbage
    collected mid-flight.
    """

    def __init__(self, audit_log: ISecurityAuditLog):
        self._audit_log = audit_log
        self._pending: set[asyncio.Task] = set()

    def emit(self, event: AuditEventType, details: dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(self._audit_log.record(event, details))
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Failed to record security audit event: {error!r}")

    async def drain(self) -> None:
        """Wait for every scheduled event (used at shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
