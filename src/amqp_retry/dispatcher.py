"""Dispatcher: drive one delivery from raw bytes to exactly one ack or reject."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .attempts import DeliveryContext
from .dead_letter import DeadLetterHandler
from .exceptions import (
    DeliveryAlreadyResolvedError,
    EnvelopeParseError,
    MessagingError,
)
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
)
from .serialization import EnvelopeCodec

if TYPE_CHECKING:
    from .envelope import Envelope
    from .ports import DelayPublisher, IncomingDelivery, MessageHandler
    from .retry import Outcome, RetryDecision

logger = logging.getLogger("amqp_retry.dispatcher")


class DeliveryState(str, Enum):
    """Per-delivery states; RESOLVED is terminal."""

    RECEIVED = "received"
    DECODED = "decoded"
    PARSE_FAILED = "parse_failed"
    PROCESSED_SUCCESS = "processed_success"
    PROCESSED_FAILURE = "processed_failure"
    RESOLVED = "resolved"


class Resolution(str, Enum):
    ACK = "ack"
    REJECT = "reject"


@dataclass
class DispatchResult:
    """What happened to one delivery.

    ``resolution`` is None until the delivery has been acked or rejected.
    ``decision`` is None when the body could not be parsed; ``fallback`` is
    True when a delayed republish failed and the delivery was rejected to
    the DLX chain instead of acknowledged.
    """

    resolution: Resolution | None = None
    decision: RetryDecision | None = None
    attempt_count: int | None = None
    envelope_id: str | None = None
    reason: str | None = None
    fallback: bool = False
    states: list[DeliveryState] = field(default_factory=list)

    @property
    def parse_failed(self) -> bool:
        return DeliveryState.PARSE_FAILED in self.states


class _ResolutionGuard:
    """Wraps a delivery so that it can be resolved at most once.

    The resolution is recorded before the broker call, so a transport
    failure does not open the door to a second ack/reject.
    """

    def __init__(self, delivery: IncomingDelivery) -> None:
        self._delivery = delivery
        self.resolution: Resolution | None = None

    def _claim(self, resolution: Resolution) -> None:
        if self.resolution is not None:
            raise DeliveryAlreadyResolvedError(self.resolution.value)
        self.resolution = resolution

    async def ack(self) -> Resolution:
        self._claim(Resolution.ACK)
        await self._delivery.ack()
        return Resolution.ACK

    async def reject(self) -> Resolution:
        self._claim(Resolution.REJECT)
        await self._delivery.reject()
        return Resolution.REJECT


class Dispatcher:
    """Drives one delivery through decode, handler, policy and broker action.

    Usage::

        dispatcher = Dispatcher(
            handler=process_order,
            policy=RetryPolicyConfig(max_retries=3),
        )
        result = await dispatcher.dispatch(delivery)

    Every path ends in exactly one ``ack()`` or ``reject()`` on the delivery.
    Transport failures from those calls propagate as MessagingTransportError.
    """

    def __init__(
        self,
        handler: MessageHandler,
        *,
        policy: RetryPolicy | RetryPolicyConfig | None = None,
        delay_publisher: DelayPublisher | None = None,
        dead_letter: DeadLetterHandler | None = None,
        codec: EnvelopeCodec | None = None,
        handler_timeout: float | None = None,
    ) -> None:
        """Configure the dispatcher.

        Args:
            handler: Async business handler; raising means failure.
            policy: RetryPolicy or its config; default RetryPolicy().
            delay_publisher: Required for RetryStrategy.DELAYED_REPUBLISH.
            dead_letter: Alert/audit side effects; default DeadLetterHandler().
            codec: Envelope codec; default EnvelopeCodec().
            handler_timeout: Optional deadline in seconds; expiry is a failure.
        """
        if isinstance(policy, RetryPolicyConfig):
            policy = RetryPolicy(policy)
        self._policy = policy or RetryPolicy()
        if (
            self._policy.config.strategy is RetryStrategy.DELAYED_REPUBLISH
            and delay_publisher is None
        ):
            raise ValueError("delayed_republish strategy requires a delay_publisher")
        if handler_timeout is not None and handler_timeout <= 0:
            raise ValueError("handler_timeout must be > 0")
        self._handler = handler
        self._delay_publisher = delay_publisher
        self._dead_letter = dead_letter or DeadLetterHandler()
        self._codec = codec or EnvelopeCodec()
        self._handler_timeout = handler_timeout

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def dispatch(self, delivery: IncomingDelivery) -> DispatchResult:
        """Resolve one delivery. Never re-enters a resolved delivery.

        An unexpected error raised before the delivery is resolved is logged
        and the delivery is rejected without requeue, so it cannot stay
        unacknowledged and block the prefetch window.
        """
        guard = _ResolutionGuard(delivery)
        result = DispatchResult(states=[DeliveryState.RECEIVED])
        try:
            await self._dispatch(delivery, guard, result)
        except MessagingError:
            raise
        except Exception as e:
            if guard.resolution is not None:
                raise
            logger.exception(
                "Unexpected error while dispatching; rejecting without requeue"
            )
            result.reason = str(e) or type(e).__name__
            result.resolution = await guard.reject()
        result.states.append(DeliveryState.RESOLVED)
        return result

    async def _dispatch(
        self,
        delivery: IncomingDelivery,
        guard: _ResolutionGuard,
        result: DispatchResult,
    ) -> None:
        context = DeliveryContext.from_delivery(delivery.body, delivery.headers)
        try:
            envelope = self._codec.decode(context.body)
        except EnvelopeParseError as e:
            logger.error(
                "Rejecting unparseable message (no retry): %s, raw body: %r",
                e,
                _preview(context.body),
            )
            result.states.append(DeliveryState.PARSE_FAILED)
            result.reason = str(e)
            result.resolution = await guard.reject()
            return

        attempt = context.attempt_count
        max_retries = self._policy.config.max_retries
        result.states.append(DeliveryState.DECODED)
        result.envelope_id = envelope.id
        result.attempt_count = attempt
        logger.info(
            "Received message id=%s type=%s [retry: %d/%d]",
            envelope.id,
            envelope.type,
            attempt,
            max_retries,
        )

        outcome = await self._run_handler(envelope)
        decision = self._policy.decide(outcome, attempt)
        result.decision = decision
        if isinstance(outcome, Failure):
            result.states.append(DeliveryState.PROCESSED_FAILURE)
            result.reason = outcome.reason
            logger.warning(
                "Processing failed for message %s: %s", envelope.id, outcome.reason
            )
        else:
            result.states.append(DeliveryState.PROCESSED_SUCCESS)

        await self._execute(guard, decision, envelope, attempt, result)

    async def _run_handler(self, envelope: Envelope) -> Outcome:
        try:
            if self._handler_timeout is None:
                await self._handler(envelope)
            else:
                await asyncio.wait_for(
                    self._handler(envelope), timeout=self._handler_timeout
                )
        except Exception as e:  # noqa: BLE001
            if self._handler_timeout is not None and isinstance(
                e, asyncio.TimeoutError
            ):
                reason = f"handler timed out after {self._handler_timeout}s"
            else:
                reason = str(e) or type(e).__name__
            return Failure(reason=reason, exception=e)
        return Success()

    async def _execute(
        self,
        guard: _ResolutionGuard,
        decision: RetryDecision,
        envelope: Envelope,
        attempt: int,
        result: DispatchResult,
    ) -> None:
        max_retries = self._policy.config.max_retries
        if isinstance(decision, Accept):
            result.resolution = await guard.ack()
            logger.info("Message processed successfully: id=%s", envelope.id)
        elif isinstance(decision, RetryImmediate):
            logger.info(
                "Retrying message %s via dead-letter chain (%d/%d)",
                envelope.id,
                attempt + 1,
                max_retries,
            )
            result.resolution = await guard.reject()
        elif isinstance(decision, RetryDelayed):
            result.resolution = await self._retry_delayed(
                guard, decision, envelope, attempt, result
            )
        elif isinstance(decision, DeadLetter):
            reason = result.reason or "unknown failure"
            logger.warning(
                "Max retries (%d) exceeded for message %s, dead-lettering",
                max_retries,
                envelope.id,
            )
            await self._dead_letter.route(envelope, reason, attempt)
            result.resolution = await guard.reject()
        else:  # pragma: no cover
            raise TypeError(f"Unknown retry decision: {decision!r}")

    async def _retry_delayed(
        self,
        guard: _ResolutionGuard,
        decision: RetryDelayed,
        envelope: Envelope,
        attempt: int,
        result: DispatchResult,
    ) -> Resolution:
        """Publish the delayed copy, then ack; reject to the DLX if publish fails."""
        assert self._delay_publisher is not None
        logger.info(
            "Retrying message %s in %.3fs (%d/%d)",
            envelope.id,
            decision.delay,
            attempt + 1,
            self._policy.config.max_retries,
        )
        try:
            body = self._codec.encode(envelope)
            await self._delay_publisher.publish_delayed(body, decision.expiration_ms)
        except MessagingError:
            logger.exception(
                "Delayed republish failed for message %s; "
                "falling back to reject without requeue",
                envelope.id,
            )
            result.fallback = True
            return await guard.reject()
        return await guard.ack()


def _preview(body: bytes, limit: int = 256) -> bytes:
    return body if len(body) <= limit else body[:limit] + b"..."
