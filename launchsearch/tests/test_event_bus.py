"""Tests for event bus."""

import gc

import pytest

from launchsearch.engine.events import Event, EventBus


@pytest.mark.asyncio
async def test_event_publish_and_subscribe():
    """Test basic pub/sub functionality."""
    bus = EventBus()
    await bus.start()

    received_events = []

    async def handler(event: Event):
        received_events.append(event)

    bus.subscribe("search.*", handler)

    await bus.emit(Event(type="search.committed", data={"bucket": "apps"}, generation=3))
    await bus.drain()

    assert len(received_events) == 1
    assert received_events[0].type == "search.committed"
    assert received_events[0].data["bucket"] == "apps"
    assert received_events[0].generation == 3

    await bus.stop()


@pytest.mark.asyncio
async def test_wildcard_subscription():
    """Test wildcard pattern matching."""
    bus = EventBus()
    await bus.start()

    all_events = []
    search_events = []

    async def all_handler(event: Event):
        all_events.append(event)

    def search_handler(event: Event):
        search_events.append(event)

    bus.subscribe("*", all_handler)
    bus.subscribe("search.*", search_handler)

    bus.publish(Event(type="search.started", data={}))
    bus.publish(Event(type="launch.recorded", data={}))
    bus.publish(Event(type="search.discarded", data={}))
    await bus.drain()

    assert len(all_events) == 3
    assert len(search_events) == 2

    await bus.stop()


@pytest.mark.asyncio
async def test_event_queue_full():
    """Events beyond the queue size are dropped and counted."""
    bus = EventBus(max_queue=2)

    assert bus.publish(Event(type="test.1", data={}))
    assert bus.publish(Event(type="test.2", data={}))
    assert not bus.publish(Event(type="test.3", data={}))

    stats = bus.get_stats()
    assert stats['dropped'] == 1
    assert stats['emitted'] == 2

    await bus.start()
    await bus.stop()


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_delivery():
    bus = EventBus()
    await bus.start()
    delivered = []

    def broken(event: Event):
        raise RuntimeError("handler bug")

    def working(event: Event):
        delivered.append(event.type)

    bus.subscribe("search.failed", broken)
    bus.subscribe("search.failed", working)

    bus.publish(Event(type="search.failed", data={}))
    await bus.drain()

    assert delivered == ["search.failed"]
    assert bus.get_stats()['handler_errors'] == 1

    await bus.stop()


@pytest.mark.asyncio
async def test_bound_method_subscribers_stay_alive():
    class Listener:
        def __init__(self):
            self.seen = []

        def on_event(self, event: Event):
            self.seen.append(event.type)

    bus = EventBus()
    await bus.start()
    listener = Listener()
    bus.subscribe("launch.*", listener.on_event)

    bus.publish(Event(type="launch.recorded", data={}))
    await bus.drain()

    assert listener.seen == ["launch.recorded"]

    del listener
    gc.collect()
    bus.publish(Event(type="launch.recorded", data={}))
    await bus.drain()

    assert bus.get_stats().get("handler_errors", 0) == 0

    await bus.stop()


@pytest.mark.asyncio
async def test_unsubscribe():
    bus = EventBus()
    await bus.start()
    seen = []

    def handler(event: Event):
        seen.append(event)

    bus.subscribe("search.*", handler)
    bus.unsubscribe("search.*", handler)
    bus.publish(Event(type="search.started", data={}))
    await bus.drain()

    assert seen == []
    await bus.stop()


@pytest.mark.asyncio
async def test_stop_delivers_queued_events():
    bus = EventBus()
    seen = []

    def handler(event: Event):
        seen.append(event.type)

    bus.subscribe("*", handler)
    bus.publish(Event(type="search.started", data={}))
    await bus.start()
    await bus.stop()

    assert seen == ["search.started"]


def test_pattern_matching():
    """Test pattern matching logic."""
    bus = EventBus()

    assert bus._matches_pattern("search.committed", "search.committed")
    assert not bus._matches_pattern("search.committed", "search.failed")

    assert bus._matches_pattern("search.committed", "search.*")
    assert bus._matches_pattern("launch.recorded", "launch.*")
    assert not bus._matches_pattern("launch.recorded", "search.*")
    assert not bus._matches_pattern("searchable.added", "search.*")

    assert bus._matches_pattern("anything", "*")
