"""Tests for the synchronous event bus."""
from enum import Enum

import pytest

from image_stitcher.events import EventBus


class Kind(Enum):
    A = "a"
    B = "b"


def test_handlers_run_in_registration_order_per_kind():
    bus = EventBus()
    calls = []
    bus.subscribe(Kind.A, lambda p: calls.append(("a1", p)))
    bus.subscribe(Kind.B, lambda p: calls.append(("b1", p)))
    bus.subscribe(Kind.A, lambda p: calls.append(("a2", p)))

    bus.emit(Kind.A, 1)
    assert calls == [("a1", 1), ("a2", 1)]


def test_duplicate_subscription_is_called_twice_and_unsubscribe_removes_one():
    bus = EventBus()
    calls = []
    bus.subscribe(Kind.A, calls.append)
    bus.subscribe(Kind.A, calls.append)
    bus.emit(Kind.A, "x")
    assert calls == ["x", "x"]

    assert bus.unsubscribe(Kind.A, calls.append) is True
    bus.emit(Kind.A, "y")
    assert calls == ["x", "x", "y"]
    assert bus.unsubscribe(Kind.B, calls.append) is False


def test_subscription_during_dispatch_applies_to_next_emit():
    bus = EventBus()
    calls = []

    def late(payload):
        calls.append(("late", payload))

    def first(payload):
        calls.append(("first", payload))
        bus.subscribe(Kind.A, late)

    unsubscribe = bus.subscribe(Kind.A, first)
    bus.emit(Kind.A, 1)
    unsubscribe()
    bus.emit(Kind.A, 2)
    assert calls == [("first", 1), ("late", 2)]


def test_handler_errors_propagate():
    bus = EventBus()

    def boom(_):
        raise RuntimeError("listener failed")

    bus.subscribe(Kind.A, boom)
    with pytest.raises(RuntimeError):
        bus.emit(Kind.A)


def test_subscribe_rejects_non_callables():
    with pytest.raises(TypeError):
        EventBus().subscribe(Kind.A, "nope")
