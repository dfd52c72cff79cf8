"""In-memory broker adapters for testing."""

from __future__ import annotations

from .delivery import InMemoryDelivery
from .publisher import InMemoryDelayPublisher

__all__ = [
    "InMemoryDelayPublisher",
    "InMemoryDelivery",
]
