"""RabbitMQDelivery: adapt an aio_pika incoming message to IncomingDelivery."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from aio_pika.exceptions import AMQPError, ChannelInvalidStateError

from ..exceptions import MessagingTransportError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from aio_pika.abc import AbstractIncomingMessage

TRANSPORT_ERRORS = (
    AMQPError,
    ChannelInvalidStateError,
    ConnectionError,
    OSError,
    asyncio.TimeoutError,
)


class RabbitMQDelivery:
    """Manual-ack wrapper around one AbstractIncomingMessage."""

    def __init__(self, message: AbstractIncomingMessage) -> None:
        self._message = message

    @property
    def body(self) -> bytes:
        return self._message.body

    @property
    def headers(self) -> Mapping[str, Any]:
        return self._message.headers or {}

    @property
    def delivery_tag(self) -> int | None:
        return self._message.delivery_tag

    async def ack(self) -> None:
        try:
            await self._message.ack()
        except TRANSPORT_ERRORS as e:
            raise MessagingTransportError("ack", str(e)) from e

    async def reject(self) -> None:
        """basic.reject with requeue=False, routing the message to the queue's DLX."""
        try:
            await self._message.reject(requeue=False)
        except TRANSPORT_ERRORS as e:
            raise MessagingTransportError("reject", str(e)) from e
