"""InMemoryDelivery: IncomingDelivery that records ack/reject calls for tests."""

from __future__ import annotations

from typing import Any

from ..exceptions import MessagingTransportError


class InMemoryDelivery:
    """A delivery held in memory, instrumented for resolution assertions.

    Every ack()/reject() call is recorded in ``calls`` even when it fails,
    so tests can assert that exactly one resolution was attempted.
    """

    def __init__(
        self,
        body: bytes,
        headers: dict[str, Any] | None = None,
        *,
        fail_on: str | None = None,
    ) -> None:
        """Create a delivery.

        Args:
            body: Raw message body.
            headers: Delivery headers, including ``x-death`` when redelivered.
            fail_on: "ack" or "reject" to simulate a broker failure for that call.
        """
        self._body = body
        self._headers = dict(headers or {})
        self._fail_on = fail_on
        self.calls: list[str] = []

    @classmethod
    def redelivered(
        cls, body: bytes, attempt_count: int, *, queue: str = "work", **kwargs: Any
    ) -> InMemoryDelivery:
        """Build a delivery whose ``x-death`` history has attempt_count records."""
        x_death = [
            {"queue": queue, "reason": "rejected", "count": 1}
            for _ in range(attempt_count)
        ]
        return cls(body, {"x-death": x_death}, **kwargs)

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def headers(self) -> dict[str, Any]:
        return self._headers

    async def ack(self) -> None:
        self._record("ack")

    async def reject(self) -> None:
        self._record("reject")

    def _record(self, action: str) -> None:
        self.calls.append(action)
        if self._fail_on == action:
            raise MessagingTransportError(action, "simulated broker failure")

    @property
    def acked(self) -> bool:
        return self.calls == ["ack"]

    @property
    def rejected(self) -> bool:
        return self.calls == ["reject"]

    def assert_resolved_once(self) -> None:
        """Assert exactly one of ack/reject was called exactly once."""
        assert len(self.calls) == 1, (
            f"Expected exactly one resolution, got {self.calls!r}"
        )
