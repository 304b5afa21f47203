"""
AlertQueue tests: bounded FIFO, expiry and manual dismissal.
"""

from __future__ import annotations

from candlepulse.domain.entities.alert import AlertType
from candlepulse.state.alert_state import AlertQueue


class TestAlertQueue:

    def test_keeps_most_recent_five(self, clock):
        queue = AlertQueue(max_items=5, clock=clock)
        for i in range(7):
            queue.push(f"alerta {i}", AlertType.INFO)
        messages = [a.message for a in queue.active()]
        assert messages == [f"alerta {i}" for i in range(2, 7)]
        assert queue.pushed_count == 7

    def test_expire_after_ttl(self, clock):
        queue = AlertQueue(ttl_seconds=5.0, clock=clock)
        queue.push("vieja", AlertType.INFO)
        clock.advance(3.0)
        queue.push("nueva", AlertType.BUY)

        clock.advance(2.0)
        assert queue.expire() == 0

        clock.advance(0.5)
        assert queue.expire() == 1
        assert [a.message for a in queue.active()] == ["nueva"]

        clock.advance(10.0)
        queue.expire()
        assert len(queue) == 0

    def test_dismiss_oldest(self, clock):
        queue = AlertQueue(clock=clock)
        assert queue.dismiss() is None
        queue.push("primera", AlertType.SELL)
        queue.push("segunda", AlertType.ERROR)
        assert queue.dismiss().message == "primera"
        assert len(queue) == 1
