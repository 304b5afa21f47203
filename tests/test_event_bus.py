"""
EventBus tests: topic fan-out and drop-oldest back-pressure.
"""

from __future__ import annotations

import asyncio

from candlepulse.infrastructure.event_bus import EventBus


class TestEventBus:

    def test_fan_out_per_topic(self):
        async def scenario():
            bus = EventBus()
            a = bus.subscribe("alerts", "a")
            b = bus.subscribe("alerts", "b")
            other = bus.subscribe("trade", "c")
            bus.publish("alerts", {"n": 1})
            return a.get_nowait(), b.get_nowait(), other.empty(), bus.subscriber_count

        first, second, other_empty, count = asyncio.run(scenario())
        assert first == second == {"n": 1}
        assert other_empty is True
        assert count == 3

    def test_full_queue_drops_oldest(self):
        async def scenario():
            bus = EventBus(max_queue_size=2)
            queue = bus.subscribe("trade", "slow")
            for i in range(4):
                bus.publish("trade", i)
            return [queue.get_nowait() for _ in range(queue.qsize())]

        assert asyncio.run(scenario()) == [2, 3]

    def test_unsubscribe_all(self):
        bus = EventBus()
        bus.subscribe("alerts", "a")
        bus.subscribe("trade", "b")
        bus.unsubscribe_all("alerts")
        assert bus.subscriber_count == 1
        bus.unsubscribe_all()
        assert bus.subscriber_count == 0
