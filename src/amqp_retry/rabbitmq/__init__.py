"""RabbitMQ transport adapter built on aio-pika."""

from __future__ import annotations

from .connection import RabbitMQConnectionManager
from .consumer import RabbitMQRetryConsumer
from .delivery import RabbitMQDelivery
from .publisher import RabbitMQDelayPublisher

__all__ = [
    "RabbitMQConnectionManager",
    "RabbitMQDelayPublisher",
    "RabbitMQDelivery",
    "RabbitMQRetryConsumer",
]
