"""Tests for messaging exceptions."""

from __future__ import annotations

from amqp_retry.exceptions import (
    DeliveryAlreadyResolvedError,
    EnvelopeParseError,
    MessagingConnectionError,
    MessagingError,
    MessagingSerializationError,
    MessagingTransportError,
)


def test_hierarchy() -> None:
    for exc in (
        MessagingConnectionError,
        MessagingSerializationError,
        MessagingTransportError,
        DeliveryAlreadyResolvedError,
    ):
        assert issubclass(exc, MessagingError)
    assert issubclass(EnvelopeParseError, MessagingSerializationError)


def test_transport_error_carries_action() -> None:
    e = MessagingTransportError("reject", "channel closed")
    assert e.action == "reject"
    assert str(e) == "reject failed: channel closed"


def test_parse_error_carries_body() -> None:
    e = EnvelopeParseError("bad", body=b"xx")
    assert e.body == b"xx"
    assert "bad" in str(e)


def test_already_resolved_error() -> None:
    e = DeliveryAlreadyResolvedError("ack")
    assert e.resolution == "ack"
    assert "ack" in str(e)
