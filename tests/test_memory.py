"""Tests for the in-memory broker fakes and the resolution guard."""

from __future__ import annotations

import pytest

from amqp_retry.dispatcher import Resolution, _ResolutionGuard
from amqp_retry.exceptions import DeliveryAlreadyResolvedError, MessagingTransportError
from amqp_retry.memory import InMemoryDelayPublisher, InMemoryDelivery
from amqp_retry.ports import DelayPublisher, IncomingDelivery


def test_fakes_satisfy_ports() -> None:
    assert isinstance(InMemoryDelivery(b""), IncomingDelivery)
    assert isinstance(InMemoryDelayPublisher(), DelayPublisher)


def test_redelivered_builds_x_death() -> None:
    d = InMemoryDelivery.redelivered(b"x", 2, queue="orders")
    assert len(d.headers["x-death"]) == 2
    assert d.headers["x-death"][0]["queue"] == "orders"


@pytest.mark.asyncio
async def test_delivery_records_calls() -> None:
    d = InMemoryDelivery(b"x")
    await d.ack()
    assert d.acked
    assert not d.rejected
    d.assert_resolved_once()


@pytest.mark.asyncio
async def test_delivery_assert_resolved_once_fails_on_double() -> None:
    d = InMemoryDelivery(b"x")
    await d.ack()
    await d.reject()
    with pytest.raises(AssertionError, match="exactly one resolution"):
        d.assert_resolved_once()


@pytest.mark.asyncio
async def test_delivery_simulated_failure_is_recorded() -> None:
    d = InMemoryDelivery(b"x", fail_on="reject")
    with pytest.raises(MessagingTransportError):
        await d.reject()
    assert d.calls == ["reject"]


@pytest.mark.asyncio
async def test_publisher_records_and_fails() -> None:
    p = InMemoryDelayPublisher()
    await p.publish_delayed(b"a", 1000)
    assert p.get_published() == [(b"a", 1000)]
    p.assert_published(1)
    p.clear()
    p.assert_published(0)
    p.fail = True
    with pytest.raises(MessagingTransportError):
        await p.publish_delayed(b"b", 10)
    p.assert_published(0)


@pytest.mark.asyncio
async def test_guard_blocks_second_resolution() -> None:
    d = InMemoryDelivery(b"x")
    guard = _ResolutionGuard(d)
    assert await guard.ack() is Resolution.ACK
    with pytest.raises(DeliveryAlreadyResolvedError):
        await guard.reject()
    with pytest.raises(DeliveryAlreadyResolvedError):
        await guard.ack()
    assert d.calls == ["ack"]


@pytest.mark.asyncio
async def test_guard_claims_even_when_broker_call_fails() -> None:
    d = InMemoryDelivery(b"x", fail_on="reject")
    guard = _ResolutionGuard(d)
    with pytest.raises(MessagingTransportError):
        await guard.reject()
    with pytest.raises(DeliveryAlreadyResolvedError):
        await guard.ack()
    assert d.calls == ["reject"]
