"""Attempt counting from broker redelivery metadata (``x-death``)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

X_DEATH_HEADER = "x-death"


def attempt_history(headers: Mapping[str, Any] | None) -> tuple[Any, ...]:
    """Return the raw ``x-death`` records, or an empty tuple.

    Anything that is not a list-like sequence (missing header, a string,
    a broker that does not dead-letter) counts as no history.
    """
    if not headers:
        return ()
    value = headers.get(X_DEATH_HEADER)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return tuple(value)
    return ()


def attempt_count(headers: Mapping[str, Any] | None) -> int:
    """Return the number of prior deliveries recorded by the broker. Never raises."""
    return len(attempt_history(headers))


@dataclass(frozen=True)
class DeliveryContext:
    """Everything the dispatcher knows about one delivery. Never persisted."""

    body: bytes
    headers: Mapping[str, Any] = field(default_factory=dict)
    attempt_history: tuple[Any, ...] = ()

    @classmethod
    def from_delivery(
        cls, body: bytes, headers: Mapping[str, Any] | None
    ) -> DeliveryContext:
        """Build a context, extracting the redelivery history from headers."""
        headers = dict(headers or {})
        return cls(body=body, headers=headers, attempt_history=attempt_history(headers))

    @property
    def attempt_count(self) -> int:
        """Prior deliveries of this logical message; 0 on first delivery."""
        return len(self.attempt_history)
