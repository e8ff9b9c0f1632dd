from __future__ import annotations

import logging

from ads_op_tracker.events import EventBus


def test_publish_in_registration_order() -> None:
    bus: EventBus[str] = EventBus()
    calls: list[tuple[str, str]] = []
    bus.subscribe("op", lambda payload: calls.append(("first", payload)))
    bus.subscribe("op", lambda payload: calls.append(("second", payload)))
    bus.subscribe("other", lambda payload: calls.append(("other", payload)))

    bus.publish("op", "snapshot")

    assert calls == [("first", "snapshot"), ("second", "snapshot")]


def test_failing_subscriber_is_isolated(caplog) -> None:
    bus: EventBus[int] = EventBus()
    received: list[int] = []

    def broken(_payload: int) -> None:
        raise RuntimeError("ui bug")

    bus.subscribe("op", broken)
    bus.subscribe("op", received.append)

    with caplog.at_level(logging.ERROR, logger="ads_op_tracker.events"):
        bus.publish("op", 7)

    assert received == [7]
    assert "Subscriber for op raised" in caplog.text


def test_unsubscribe_handle_removes_only_that_callback() -> None:
    bus: EventBus[int] = EventBus()
    received: list[str] = []

    def first(_payload: int) -> None:
        received.append("first")

    def second(_payload: int) -> None:
        received.append("second")

    remove_first = bus.subscribe("op", first)
    bus.subscribe("op", second)
    remove_first()
    remove_first()

    bus.publish("op", 1)
    assert received == ["second"]
    assert bus.subscriber_count("op") == 1


def test_unsubscribe_last_callback_drops_topic() -> None:
    bus: EventBus[int] = EventBus()
    unsubscribe = bus.subscribe("op", lambda _payload: None)
    unsubscribe()
    assert bus.subscriber_count("op") == 0
    bus.publish("op", 1)


def test_subscriber_may_unsubscribe_during_publish() -> None:
    bus: EventBus[int] = EventBus()
    received: list[str] = []
    handles = {}

    def once(_payload: int) -> None:
        received.append("once")
        handles["once"]()

    handles["once"] = bus.subscribe("op", once)
    bus.subscribe("op", lambda _payload: received.append("always"))

    bus.publish("op", 1)
    bus.publish("op", 2)
    assert received == ["once", "always", "always"]


def test_publish_with_copy_gives_each_subscriber_its_own_payload() -> None:
    bus: EventBus[list[str]] = EventBus()
    received: list[list[str]] = []

    def careless(payload: list[str]) -> None:
        payload.append("mutated")

    bus.subscribe("op", careless)
    bus.subscribe("op", received.append)
    original = ["x"]

    bus.publish("op", original, copy=list)

    assert received == [["x"]]
    assert original == ["x"]
