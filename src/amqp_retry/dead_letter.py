"""DeadLetterHandler: best-effort alert and audit when retries are exhausted."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .envelope import Envelope
    from .ports import AlertSender, AuditRecorder

logger = logging.getLogger("amqp_retry.dead_letter")


class LoggingAlertSender:
    """Default AlertSender: writes the alert to the log."""

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self._log = logger_ or logger

    async def send_alert(self, envelope: Envelope, reason: str) -> None:
        self._log.warning(
            "ALERT: message dead-lettered id=%s type=%s reason=%s",
            envelope.id,
            envelope.type,
            reason,
        )


class LoggingAuditRecorder:
    """Default AuditRecorder: writes the failure record to the log."""

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self._log = logger_ or logger

    async def record_failure(
        self, envelope: Envelope, reason: str, attempt_count: int
    ) -> None:
        self._log.warning(
            "AUDIT: failed message id=%s type=%s attempts=%d reason=%s",
            envelope.id,
            envelope.type,
            attempt_count,
            reason,
        )


class DeadLetterHandler:
    """Runs the alert and audit collaborators for a dead-lettered message.

    Both calls are isolated: a failing collaborator is logged and never
    propagates, so the caller can always go on to reject the delivery.
    """

    def __init__(
        self,
        alert_sender: AlertSender | None = None,
        audit_recorder: AuditRecorder | None = None,
    ) -> None:
        """Configure dead-letter side effects.

        Args:
            alert_sender: Notified with (envelope, reason).
                Defaults to LoggingAlertSender.
            audit_recorder: Notified with (envelope, reason, attempt_count).
                Defaults to LoggingAuditRecorder.
        """
        self._alert_sender = alert_sender or LoggingAlertSender()
        self._audit_recorder = audit_recorder or LoggingAuditRecorder()

    async def route(self, envelope: Envelope, reason: str, attempt_count: int) -> bool:
        """Send alert, then record audit. Return True if both succeeded."""
        ok = True
        try:
            await self._alert_sender.send_alert(envelope, reason)
        except Exception:  # noqa: BLE001
            ok = False
            logger.exception("Alert sender failed for message %s", envelope.id)
        try:
            await self._audit_recorder.record_failure(envelope, reason, attempt_count)
        except Exception:  # noqa: BLE001
            ok = False
            logger.exception("Audit recorder failed for message %s", envelope.id)
        return ok
