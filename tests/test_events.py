"""Tests for EventBus -- broadcast, lossy buffers, weak subscriptions, close."""

import asyncio
import gc

import pytest

from aibuddy.events import (
    AsstLoaded,
    ConvCreated,
    EventBus,
    EventType,
    OrgFileUploading,
)
from aibuddy.types import AsstRef


def _loaded(i: int = 0) -> AsstLoaded:
    return AsstLoaded(AsstRef("helper", f"asst_{i}"))


class TestPublish:

    def test_publish_without_subscribers_is_a_noop(self):
        bus = EventBus()
        assert bus.publish(ConvCreated()) == 0
        assert bus.recent() == [ConvCreated()]

    def test_every_subscriber_gets_every_event(self):
        bus = EventBus()
        a, b = bus.subscribe(), bus.subscribe()

        bus.publish(_loaded())
        bus.publish(ConvCreated())

        assert a.drain() == [_loaded(), ConvCreated()]
        assert b.drain() == [_loaded(), ConvCreated()]

    def test_late_subscriber_misses_earlier_events(self):
        bus = EventBus()
        bus.publish(ConvCreated())
        late = bus.subscribe()
        assert late.drain() == []

    def test_event_type_tags(self):
        assert OrgFileUploading("x.md").type is EventType.ORG_FILE_UPLOADING
        assert ConvCreated().type is EventType.CONV_CREATED

    def test_events_are_immutable(self):
        evt = OrgFileUploading("x.md")
        with pytest.raises(AttributeError):
            evt.file_name = "y.md"


class TestLossyBuffer:

    def test_lagging_subscriber_drops_oldest(self):
        bus = EventBus(capacity=3)
        slow = bus.subscribe()

        for i in range(5):
            assert bus.publish(_loaded(i)) == 1

        assert slow.missed == 2
        assert [e.asst_ref.id for e in slow.drain()] == ["asst_2", "asst_3", "asst_4"]

    def test_one_slow_subscriber_does_not_affect_another(self):
        bus = EventBus(capacity=2)
        slow, fast = bus.subscribe(), bus.subscribe()

        for i in range(3):
            bus.publish(_loaded(i))
            fast.drain()

        assert slow.missed == 1
        assert fast.missed == 0


class TestSubscriptionLifecycle:

    def test_dropped_subscription_is_forgotten(self):
        bus = EventBus()
        sub = bus.subscribe()
        assert bus.subscriber_count == 1

        del sub
        gc.collect()

        assert bus.subscriber_count == 0
        assert bus.publish(ConvCreated()) == 0

    def test_closed_subscription_stops_receiving(self):
        bus = EventBus()
        sub = bus.subscribe()
        sub.close()

        assert bus.publish(ConvCreated()) == 0
        assert sub.drain() == []

    @pytest.mark.asyncio
    async def test_recv_waits_for_publish(self):
        bus = EventBus()
        sub = bus.subscribe()

        async def later():
            await asyncio.sleep(0.01)
            bus.publish(ConvCreated())

        task = asyncio.create_task(later())
        evt = await asyncio.wait_for(sub.recv(), timeout=1)
        await task
        assert evt == ConvCreated()

    @pytest.mark.asyncio
    async def test_close_bus_ends_iteration_after_drain(self):
        bus = EventBus()
        sub = bus.subscribe()
        bus.publish(_loaded(1))
        bus.publish(_loaded(2))
        bus.close()

        seen = [evt async for evt in sub]

        assert [e.asst_ref.id for e in seen] == ["asst_1", "asst_2"]
        assert await sub.recv() is None

    def test_publish_after_close_is_dropped(self):
        bus = EventBus()
        bus.close()
        assert bus.publish(ConvCreated()) == 0
        assert bus.subscribe().closed


class TestHistory:

    def test_recent_is_bounded(self):
        bus = EventBus(history_limit=3)
        for i in range(5):
            bus.publish(_loaded(i))

        assert [e.asst_ref.id for e in bus.recent()] == ["asst_2", "asst_3", "asst_4"]
        assert [e.asst_ref.id for e in bus.recent(1)] == ["asst_4"]
        assert bus.recent(0) == []
