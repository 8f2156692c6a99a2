import pytest

from cyberfly_sdk.events import (FINISHED, STARTED, LocalEventBus,
                                 notify_finished, notify_started)


def test_publish_and_unsubscribe():
    bus = LocalEventBus()
    got = []
    sub = bus.subscribe(STARTED, lambda t, p: got.append(p["operation"]))
    assert notify_started(bus, "stake") == 1
    sub.unsubscribe()
    assert bus.subscribers(STARTED) == 0
    assert notify_started(bus, "unstake") == 0
    assert got == ["stake"]


def test_subscriber_errors_are_isolated():
    bus = LocalEventBus()
    got = []

    def boom(topic, payload):
        raise RuntimeError("subscriber bug")

    bus.subscribe(FINISHED, boom)
    bus.subscribe(FINISHED, lambda t, p: got.append(p))
    delivered = notify_finished(bus, "claim_reward", status="success", action="claimed", request_key="rk")
    assert delivered == 1
    assert got[0]["requestKey"] == "rk"
    assert got[0]["action"] == "claimed"


def test_bad_inputs():
    bus = LocalEventBus()
    with pytest.raises(TypeError):
        bus.subscribe(STARTED, "not callable")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        bus.publish(STARTED, ["not", "a", "dict"])  # type: ignore[arg-type]
