"""RabbitMQRetryConsumer: prefetch-1 intake feeding the Dispatcher."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..exceptions import MessagingError
from .delivery import RabbitMQDelivery

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage, AbstractQueue

    from ..dispatcher import Dispatcher, DispatchResult
    from .connection import RabbitMQConnectionManager

logger = logging.getLogger("amqp_retry.rabbitmq")


class RabbitMQRetryConsumer:
    """Consumes one existing queue and resolves each delivery via a Dispatcher.

    The connection applies prefetch 1: the broker holds back the next
    delivery until the current one is acked or rejected, so a slow handler
    throttles intake.

    Usage::

        consumer = RabbitMQRetryConsumer(connection, dispatcher, queue_name="orders")
        await consumer.start()
        ...
        await consumer.stop(grace_period=30.0)
    """

    def __init__(
        self,
        connection: RabbitMQConnectionManager,
        dispatcher: Dispatcher,
        *,
        queue_name: str,
    ) -> None:
        """Configure consumer.

        Args:
            connection: Shared connection manager.
            dispatcher: Resolves each delivery.
            queue_name: Queue to consume; must already exist with its DLX policy.
        """
        self._connection = connection
        self._dispatcher = dispatcher
        self._queue_name = queue_name
        self._queue: AbstractQueue | None = None
        self._consumer_tag: str | None = None
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def running(self) -> bool:
        return self._consumer_tag is not None

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def start(self) -> None:
        """Connect and start consuming. Idempotent while running."""
        if self.running:
            return
        await self._connection.connect()
        self._queue = await self._connection.get_queue(self._queue_name)
        self._consumer_tag = await self._queue.consume(self._on_message, no_ack=False)
        logger.info(
            "Consumer started on queue %s (prefetch=%d)",
            self._queue_name,
            self._connection.prefetch_count,
        )

    async def stop(self, grace_period: float | None = 30.0) -> bool:
        """Stop intake, then wait for the in-flight delivery to resolve.

        Returns True if nothing was left in flight. A delivery still running
        after ``grace_period`` seconds is not aborted; the broker redelivers
        it once the channel closes.
        """
        if self._queue is not None and self._consumer_tag is not None:
            await self._queue.cancel(self._consumer_tag)
            logger.info(
                "Consumer on queue %s stopped taking deliveries", self._queue_name
            )
        self._consumer_tag = None
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=grace_period)
        except asyncio.TimeoutError:
            logger.warning(
                "Grace period of %ss elapsed with %d delivery(ies) in flight",
                grace_period,
                self._in_flight,
            )
            return False
        return True

    async def run(self, stop_event: asyncio.Event, grace_period: float = 30.0) -> None:
        """Consume until stop_event is set (e.g. by a signal handler), then stop."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop(grace_period=grace_period)

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        self._in_flight += 1
        self._idle.clear()
        try:
            await self.handle(RabbitMQDelivery(message))
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def handle(self, delivery: RabbitMQDelivery) -> DispatchResult | None:
        """Dispatch one delivery; transport failures are logged, not raised."""
        try:
            return await self._dispatcher.dispatch(delivery)
        except MessagingError:
            logger.exception(
                "Failed to resolve delivery %s on queue %s; "
                "broker will redeliver once the channel is recovered",
                delivery.delivery_tag,
                self._queue_name,
            )
            return None

    async def health_check(self) -> bool:
        """Return True while consuming over a healthy connection."""
        return self.running and await self._connection.health_check()
