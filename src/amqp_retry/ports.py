"""Ports for the broker and the side-effect collaborators of the dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .envelope import Envelope


@runtime_checkable
class IncomingDelivery(Protocol):
    """
    One broker delivery awaiting resolution.

    Exactly one of :meth:`ack` or :meth:`reject` is called per delivery.
    Implementations raise ``MessagingTransportError`` when the broker call
    fails.
    """

    @property
    def body(self) -> bytes: ...

    @property
    def headers(self) -> Mapping[str, Any]: ...

    async def ack(self) -> None:
        """Acknowledge the delivery."""
        ...

    async def reject(self) -> None:
        """Reject without requeue, handing the message to the queue's DLX."""
        ...


@runtime_checkable
class DelayPublisher(Protocol):
    """
    Port for the delayed-retry route.

    The broker holds the message for ``expiration_ms`` and then dead-letters
    it back to the main queue.
    """

    async def publish_delayed(self, body: bytes, expiration_ms: int) -> None:
        """
        Publish *body* durably with a per-message expiration.

        Must only return once the broker has confirmed the publish.
        """
        ...


@runtime_checkable
class MessageHandler(Protocol):
    """Business logic. Returning means success; raising means failure."""

    async def __call__(self, envelope: Envelope) -> None: ...


@runtime_checkable
class AlertSender(Protocol):
    """Notifies an operator that a message was dead-lettered."""

    async def send_alert(self, envelope: Envelope, reason: str) -> None: ...


@runtime_checkable
class AuditRecorder(Protocol):
    """Records dead-lettered messages for later investigation."""

    async def record_failure(
        self, envelope: Envelope, reason: str, attempt_count: int
    ) -> None: ...
