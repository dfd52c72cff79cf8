"""Messaging-specific exceptions for amqp-retry."""

from __future__ import annotations


class MessagingError(Exception):
    """Base class for all messaging-related errors."""


class MessagingConnectionError(MessagingError):
    """Raised when connectivity to the message broker fails."""


class MessagingSerializationError(MessagingError):
    """Raised when message serialization or deserialization fails."""


class EnvelopeParseError(MessagingSerializationError):
    """Raised when a delivery body cannot be decoded into an Envelope.

    Never retryable: the message is dead-lettered on first sight.
    """

    def __init__(self, message: str, body: bytes | None = None) -> None:
        self.body = body
        super().__init__(message)


class MessagingTransportError(MessagingError):
    """Raised when an ack, reject or publish against the broker fails."""

    def __init__(self, action: str, message: str) -> None:
        self.action = action
        super().__init__(f"{action} failed: {message}")


class DeliveryAlreadyResolvedError(MessagingError):
    """Raised when a delivery is acknowledged or rejected a second time."""

    def __init__(self, resolution: str) -> None:
        self.resolution = resolution
        super().__init__(f"Delivery already resolved ({resolution})")
