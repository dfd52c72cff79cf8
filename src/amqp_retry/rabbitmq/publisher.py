"""RabbitMQDelayPublisher: persistent publish with per-message expiration."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import aio_pika
from pamqp.commands import Basic

from ..exceptions import MessagingTransportError
from ..retry import MAX_EXPIRATION_MS
from .delivery import TRANSPORT_ERRORS

if TYPE_CHECKING:
    from aio_pika.abc import AbstractExchange

    from .connection import RabbitMQConnectionManager


def build_delayed_message(body: bytes, expiration_ms: int) -> aio_pika.Message:
    """Build the delay-route message: JSON, persistent, expiring after expiration_ms.

    aio_pika renders the expiration on the wire as milliseconds in a decimal
    string, which is what the broker expects for per-message TTL.
    """
    if not 0 <= expiration_ms <= MAX_EXPIRATION_MS:
        raise ValueError(
            f"expiration_ms must be between 0 and {MAX_EXPIRATION_MS}, "
            f"got {expiration_ms}"
        )
    return aio_pika.Message(
        body=body,
        content_type="application/json",
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        expiration=timedelta(milliseconds=expiration_ms),
    )


class RabbitMQDelayPublisher:
    """RabbitMQ adapter implementing DelayPublisher.

    The delay exchange and its queue are declared elsewhere; that queue has
    no consumer and dead-letters expired messages back to the main queue.
    """

    def __init__(
        self,
        connection: RabbitMQConnectionManager,
        *,
        exchange_name: str = "retry.exchange",
        routing_key: str = "retry.key",
    ) -> None:
        """Configure publisher.

        Args:
            connection: Shared connection manager (channel with publisher confirms).
            exchange_name: Existing delay exchange to publish to.
            routing_key: Routing key binding the delay queue.
        """
        self._connection = connection
        self._exchange_name = exchange_name
        self._routing_key = routing_key
        self._exchange: AbstractExchange | None = None

    async def _ensure_exchange(self) -> AbstractExchange:
        """Look up the delay exchange (passive; raises if it does not exist)."""
        if self._exchange is not None:
            return self._exchange
        self._exchange = await self._connection.get_exchange(self._exchange_name)
        return self._exchange

    async def publish_delayed(self, body: bytes, expiration_ms: int) -> None:
        """Publish and wait for the broker's confirm; raise if not acked."""
        try:
            message = build_delayed_message(body, expiration_ms)
        except (ValueError, OverflowError) as e:
            raise MessagingTransportError("publish", str(e)) from e
        try:
            await self._connection.connect()
            exchange = await self._ensure_exchange()
            confirmation = await exchange.publish(
                message, routing_key=self._routing_key
            )
        except TRANSPORT_ERRORS as e:
            self._exchange = None
            raise MessagingTransportError("publish", str(e)) from e
        if not isinstance(confirmation, Basic.Ack):
            raise MessagingTransportError(
                "publish",
                f"broker did not confirm delayed message "
                f"({type(confirmation).__name__})",
            )
