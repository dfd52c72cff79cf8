"""InMemoryDelayPublisher: DelayPublisher with assertion helpers for tests."""

from __future__ import annotations

from ..exceptions import MessagingTransportError


class InMemoryDelayPublisher:
    """Buffers delayed publishes as (body, expiration_ms) pairs.

    Set ``fail`` to simulate an unconfirmed publish.
    """

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self._published: list[tuple[bytes, int]] = []

    async def publish_delayed(self, body: bytes, expiration_ms: int) -> None:
        if self.fail:
            raise MessagingTransportError("publish", "simulated nack from broker")
        self._published.append((body, expiration_ms))

    def get_published(self) -> list[tuple[bytes, int]]:
        """Return all (body, expiration_ms) published so far."""
        return list(self._published)

    def assert_published(self, count: int = 1) -> None:
        """Assert that exactly ``count`` delayed copies were published."""
        assert len(self._published) == count, (
            f"Expected {count} delayed publish(es), got {len(self._published)}"
        )

    def clear(self) -> None:
        self._published.clear()
