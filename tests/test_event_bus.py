"""Tests for the sync event bus."""

from deltasync.sync.event_bus import EventBus, SyncEvent


def test_handlers_run_in_registration_order():
    bus = EventBus()
    calls = []

    bus.on(SyncEvent.SYNC_COMPLETE, lambda payload: calls.append(("first", payload)))
    bus.on("sync-complete", lambda payload: calls.append(("second", payload)))

    bus.publish(SyncEvent.SYNC_COMPLETE, 1)

    assert calls == [("first", 1), ("second", 1)]


def test_events_are_isolated():
    bus = EventBus()
    calls = []
    bus.on(SyncEvent.CONFLICT, calls.append)

    bus.publish(SyncEvent.SYNC_COMPLETE, "ignored")

    assert calls == []


def test_off_removes_handler():
    bus = EventBus()
    calls = []
    bus.on(SyncEvent.CONFLICT, calls.append)

    bus.off(SyncEvent.CONFLICT, calls.append)
    bus.off(SyncEvent.CONFLICT, calls.append)
    bus.off("never-registered", calls.append)
    bus.publish(SyncEvent.CONFLICT, "x")

    assert calls == []
    assert bus.handler_count(SyncEvent.CONFLICT) == 0


def test_handler_may_unsubscribe_during_dispatch():
    bus = EventBus()
    calls = []

    def once(payload):
        calls.append(("once", payload))
        bus.off(SyncEvent.SYNC_COMPLETE, once)

    bus.on(SyncEvent.SYNC_COMPLETE, once)
    bus.on(SyncEvent.SYNC_COMPLETE, lambda payload: calls.append(("always", payload)))

    bus.publish(SyncEvent.SYNC_COMPLETE, 1)
    bus.publish(SyncEvent.SYNC_COMPLETE, 2)

    assert calls == [("once", 1), ("always", 1), ("always", 2)]


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    calls = []

    def broken(payload):
        raise RuntimeError("handler bug")

    bus.on(SyncEvent.CONFLICT, broken)
    bus.on(SyncEvent.CONFLICT, calls.append)

    bus.publish(SyncEvent.CONFLICT, "payload")

    assert calls == ["payload"]


def test_clear_drops_all_subscriptions():
    bus = EventBus()
    calls = []
    bus.on(SyncEvent.CONFLICT, calls.append)
    bus.on(SyncEvent.SYNC_COMPLETE, calls.append)

    bus.clear()
    bus.publish(SyncEvent.CONFLICT, 1)
    bus.publish(SyncEvent.SYNC_COMPLETE, 2)

    assert calls == []
