"""Wire settings, collaborators and the RabbitMQ adapters into a consumer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .dead_letter import DeadLetterHandler
from .dispatcher import Dispatcher
from .rabbitmq import (
    RabbitMQConnectionManager,
    RabbitMQDelayPublisher,
    RabbitMQRetryConsumer,
)
from .retry import RetryStrategy

if TYPE_CHECKING:
    import asyncio

    from .ports import AlertSender, AuditRecorder, MessageHandler
    from .settings import ConsumerSettings

logger = logging.getLogger("amqp_retry.app")


def create_consumer(
    settings: ConsumerSettings,
    handler: MessageHandler,
    *,
    alert_sender: AlertSender | None = None,
    audit_recorder: AuditRecorder | None = None,
    connection: RabbitMQConnectionManager | None = None,
) -> RabbitMQRetryConsumer:
    """Build a ready-to-start consumer from settings.

    A delay publisher is only created for RetryStrategy.DELAYED_REPUBLISH.
    """
    connection = connection or RabbitMQConnectionManager(
        settings.amqp_url, prefetch_count=settings.prefetch_count
    )
    policy = settings.policy_config()
    delay_publisher = None
    if policy.strategy is RetryStrategy.DELAYED_REPUBLISH:
        delay_publisher = RabbitMQDelayPublisher(
            connection,
            exchange_name=settings.delay_exchange,
            routing_key=settings.delay_routing_key,
        )
    dispatcher = Dispatcher(
        handler,
        policy=policy,
        delay_publisher=delay_publisher,
        dead_letter=DeadLetterHandler(alert_sender, audit_recorder),
        handler_timeout=settings.handler_timeout,
    )
    return RabbitMQRetryConsumer(
        connection,
        dispatcher,
        queue_name=settings.queue_name,
    )


async def run_consumer(
    settings: ConsumerSettings,
    handler: MessageHandler,
    stop_event: asyncio.Event,
    *,
    alert_sender: AlertSender | None = None,
    audit_recorder: AuditRecorder | None = None,
) -> None:
    """Consume until stop_event is set, then shut down within the grace period."""
    connection = RabbitMQConnectionManager(
        settings.amqp_url, prefetch_count=settings.prefetch_count
    )
    consumer = create_consumer(
        settings,
        handler,
        alert_sender=alert_sender,
        audit_recorder=audit_recorder,
        connection=connection,
    )
    logger.info(
        "Starting consumer for queue %s (max retries %d, strategy %s)",
        settings.queue_name,
        settings.max_retries,
        settings.strategy.value,
    )
    try:
        await consumer.run(stop_event, grace_period=settings.shutdown_grace_period)
    finally:
        await connection.close()
