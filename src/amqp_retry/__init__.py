"""Retry-aware RabbitMQ consumer: x-death attempt counting, retry policy, DLX."""

from __future__ import annotations

from .attempts import DeliveryContext, attempt_count
from .dead_letter import DeadLetterHandler, LoggingAlertSender, LoggingAuditRecorder
from .dispatcher import DeliveryState, Dispatcher, DispatchResult, Resolution
from .envelope import Envelope
from .exceptions import (
    DeliveryAlreadyResolvedError,
    EnvelopeParseError,
    MessagingConnectionError,
    MessagingError,
    MessagingSerializationError,
    MessagingTransportError,
)
from .memory import InMemoryDelayPublisher, InMemoryDelivery
from .retry import (
    Accept,
    DeadLetter,
    Failure,
    RetryDelayed,
    RetryImmediate,
    RetryPolicy,
    RetryPolicyConfig,
    RetryStrategy,
    Success,
    decide,
    delay_for_attempt,
)
from .serialization import EnvelopeCodec

__all__ = [
    "Accept",
    "DeadLetter",
    "DeadLetterHandler",
    "DeliveryAlreadyResolvedError",
    "DeliveryContext",
    "DeliveryState",
    "DispatchResult",
    "Dispatcher",
    "Envelope",
    "EnvelopeCodec",
    "EnvelopeParseError",
    "Failure",
    "InMemoryDelayPublisher",
    "InMemoryDelivery",
    "LoggingAlertSender",
    "LoggingAuditRecorder",
    "MessagingConnectionError",
    "MessagingError",
    "MessagingSerializationError",
    "MessagingTransportError",
    "Resolution",
    "RetryDelayed",
    "RetryImmediate",
    "RetryPolicy",
    "RetryPolicyConfig",
    "RetryStrategy",
    "Success",
    "attempt_count",
    "decide",
    "delay_for_attempt",
]
