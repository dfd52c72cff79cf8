"""Tests for attempt counting from x-death."""

from __future__ import annotations

import pytest

from amqp_retry.attempts import DeliveryContext, attempt_count, attempt_history


def test_no_headers_is_first_delivery() -> None:
    assert attempt_count(None) == 0
    assert attempt_count({}) == 0


def test_count_is_length_of_x_death() -> None:
    headers = {
        "x-death": [
            {"queue": "work", "reason": "rejected", "count": 1},
            {"queue": "work.wait", "reason": "expired", "count": 1},
        ]
    }
    assert attempt_count(headers) == 2


def test_tuple_x_death_counts() -> None:
    assert attempt_count({"x-death": ({}, {}, {})}) == 3


@pytest.mark.parametrize("value", ["nope", b"nope", 5, None, {"count": 2}])
def test_non_sequence_x_death_is_zero(value: object) -> None:
    assert attempt_count({"x-death": value}) == 0


def test_other_headers_ignored() -> None:
    assert attempt_count({"x-retry-count": 7, "trace": "abc"}) == 0


def test_attempt_history_returns_records() -> None:
    records = [{"count": 1}, {"count": 1}]
    assert attempt_history({"x-death": records}) == tuple(records)


def test_delivery_context_from_delivery() -> None:
    ctx = DeliveryContext.from_delivery(b"{}", {"x-death": [{}], "k": "v"})
    assert ctx.body == b"{}"
    assert ctx.attempt_count == 1
    assert ctx.headers["k"] == "v"


def test_delivery_context_copies_headers() -> None:
    headers: dict[str, object] = {"x-death": []}
    ctx = DeliveryContext.from_delivery(b"", headers)
    headers["x-death"] = [{}, {}]
    assert ctx.attempt_count == 0


def test_delivery_context_none_headers() -> None:
    ctx = DeliveryContext.from_delivery(b"", None)
    assert ctx.attempt_count == 0
    assert dict(ctx.headers) == {}
