"""RetryPolicy: bounded retry budget, strategy choice and exponential backoff."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# Largest per-message TTL the broker accepts, in milliseconds.
MAX_EXPIRATION_MS = 2**32 - 1
MAX_DELAY_SECONDS = MAX_EXPIRATION_MS / 1000


class RetryStrategy(str, Enum):
    """How a retryable failure gets back onto the main queue.

    DEAD_LETTER_CHAIN: reject without requeue and let the broker's DLX chain
    redeliver after its fixed TTL.
    DELAYED_REPUBLISH: publish a copy to a delay route with a per-message
    expiration computed by the policy, then ack the original.
    """

    DEAD_LETTER_CHAIN = "dead_letter_chain"
    DELAYED_REPUBLISH = "delayed_republish"


class RetryPolicyConfig(BaseModel):
    """Process-wide retry configuration, immutable after startup."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=30.0, ge=0, description="Seconds")
    backoff_multiplier_base: int = Field(default=2, ge=1)
    max_delay: float = Field(
        default=MAX_DELAY_SECONDS,
        gt=0,
        le=MAX_DELAY_SECONDS,
        description="Upper bound on a single backoff delay, seconds",
    )
    strategy: RetryStrategy = RetryStrategy.DEAD_LETTER_CHAIN


# ── Processing outcomes ──────────────────────────────────────────────


@dataclass(frozen=True)
class Success:
    """Handler completed without error."""


@dataclass(frozen=True)
class Failure:
    """Handler raised; ``reason`` is what gets alerted and audited."""

    reason: str
    exception: BaseException | None = None


Outcome = Success | Failure


# ── Decisions ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Accept:
    """Acknowledge the delivery."""


@dataclass(frozen=True)
class RetryImmediate:
    """Reject without requeue; the broker's DLX chain redelivers."""


@dataclass(frozen=True)
class RetryDelayed:
    """Republish to the delay route with ``delay`` seconds of expiration."""

    delay: float

    @property
    def expiration_ms(self) -> int:
        return int(round(self.delay * 1000))


@dataclass(frozen=True)
class DeadLetter:
    """Retry budget exhausted; alert and audit, then reject without requeue."""


RetryDecision = Accept | RetryImmediate | RetryDelayed | DeadLetter


def delay_for_attempt(attempt_count: int, config: RetryPolicyConfig) -> float:
    """Return base_delay * multiplier_base ** attempt_count, capped at max_delay."""
    if attempt_count < 0:
        raise ValueError("attempt_count must be >= 0")
    if config.base_delay == 0:
        return 0.0
    try:
        growth = float(config.backoff_multiplier_base) ** attempt_count
    except OverflowError:
        growth = math.inf
    return min(config.base_delay * growth, config.max_delay)


def decide(
    outcome: Outcome, attempt_count: int, config: RetryPolicyConfig
) -> RetryDecision:
    """Map (outcome, attempt count) to exactly one RetryDecision. Pure."""
    if isinstance(outcome, Success):
        return Accept()
    if attempt_count >= config.max_retries:
        return DeadLetter()
    if config.strategy is RetryStrategy.DELAYED_REPUBLISH:
        return RetryDelayed(delay=delay_for_attempt(attempt_count, config))
    return RetryImmediate()


class RetryPolicy:
    """Holds a RetryPolicyConfig and applies decide() with it.

    Stateless beyond the frozen config, so one instance can serve any
    number of dispatchers.
    """

    def __init__(self, config: RetryPolicyConfig | None = None) -> None:
        self.config = config or RetryPolicyConfig()

    def delay_for_attempt(self, attempt_count: int) -> float:
        return delay_for_attempt(attempt_count, self.config)

    def decide(self, outcome: Outcome, attempt_count: int) -> RetryDecision:
        return decide(outcome, attempt_count, self.config)
