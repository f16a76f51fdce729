"""
Unit tests for the event scheduler and retransmission timers.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.arq.scheduler import EventScheduler
from src.arq.timer import TimerService, TimerState


class TestEventScheduler:
    """Tests for the virtual-clock scheduler."""

    def test_time_ordering(self):
        """Test that calls run in time order, FIFO among equal times."""
        scheduler = EventScheduler()
        order = []

        scheduler.call_later(300, order.append, "c")
        scheduler.call_later(100, order.append, "a")
        scheduler.call_later(100, order.append, "b")
        scheduler.run()

        assert order == ["a", "b", "c"]
        assert scheduler.now == 300
        assert scheduler.dispatched == 3

    def test_run_until_advances_clock(self):
        scheduler = EventScheduler()
        order = []
        scheduler.call_later(100, order.append, 1)
        scheduler.call_later(500, order.append, 2)

        count = scheduler.run(until=250)

        assert count == 1
        assert order == [1]
        assert scheduler.now == 250
        assert scheduler.pending == 1

    def test_callbacks_can_schedule_more_work(self):
        scheduler = EventScheduler()
        seen = []

        def chain(n):
            seen.append((scheduler.now, n))
            if n < 3:
                scheduler.call_later(10, chain, n + 1)

        scheduler.call_later(0, chain, 1)
        scheduler.run()

        assert seen == [(0, 1), (10, 2), (20, 3)]

    def test_cancel(self):
        scheduler = EventScheduler()
        order = []
        call = scheduler.call_later(100, order.append, "x")
        scheduler.cancel(call)
        scheduler.cancel(None)

        assert scheduler.run() == 0
        assert order == []
        assert scheduler.next_time() is None

    def test_pause_freezes_clock(self):
        """Test that a paused scheduler keeps pending work and time."""
        scheduler = EventScheduler()
        order = []
        scheduler.call_later(100, order.append, 1)
        scheduler.call_later(200, order.append, 2)

        scheduler.run(max_events=1)
        scheduler.pause()

        assert scheduler.run() == 0
        assert not scheduler.step()
        assert scheduler.now == 100
        assert scheduler.pending == 1

        scheduler.resume()
        scheduler.run()
        assert order == [1, 2]
        assert scheduler.now == 200

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            EventScheduler().call_later(-1, print)

    def test_clear(self):
        scheduler = EventScheduler()
        scheduler.call_later(10, print)
        scheduler.clear()
        assert scheduler.pending == 0

    def test_now_seconds(self):
        scheduler = EventScheduler(start_time=1500)
        assert scheduler.now_seconds == 1.5


class TestTimerService:
    """Tests for TimerService."""

    def test_timer_fires(self):
        """Test that an armed timer fires after its duration."""
        scheduler = EventScheduler()
        timers = TimerService(scheduler)
        fired = []

        handle = timers.arm(7200, lambda: fired.append(scheduler.now))
        assert handle.is_armed
        assert handle.expiry_time == 7200

        scheduler.run()
        assert fired == [7200]
        assert handle.state == TimerState.EXPIRED
        assert timers.total_fired == 1

    def test_cancelled_timer_never_fires(self):
        scheduler = EventScheduler()
        timers = TimerService(scheduler)
        fired = []

        handle = timers.arm(100, lambda: fired.append(True))
        scheduler.run(until=50)
        timers.cancel(handle)
        scheduler.run()

        assert fired == []
        assert handle.state == TimerState.CANCELLED
        assert timers.active() is None

    def test_cancel_is_idempotent(self):
        scheduler = EventScheduler()
        timers = TimerService(scheduler)
        handle = timers.arm(100, lambda: None)

        timers.cancel(handle)
        timers.cancel(handle)
        timers.cancel(None)

        assert timers.total_cancelled == 1

    def test_rearm_supersedes_previous(self):
        """Test that arming a slot again invalidates the older timer."""
        scheduler = EventScheduler()
        timers = TimerService(scheduler)
        fired = []

        first = timers.arm(100, lambda: fired.append("first"))
        second = timers.arm(300, lambda: fired.append("second"))
        scheduler.run()

        assert fired == ["second"]
        assert first.state == TimerState.CANCELLED
        assert second.generation == first.generation + 1

    def test_independent_slots(self):
        scheduler = EventScheduler()
        timers = TimerService(scheduler)
        fired = []

        timers.arm(100, lambda: fired.append("a"), slot="a")
        timers.arm(200, lambda: fired.append("b"), slot="b")
        scheduler.run()

        assert fired == ["a", "b"]

    def test_remaining_time(self):
        scheduler = EventScheduler()
        timers = TimerService(scheduler)
        handle = timers.arm(1000, lambda: None)

        scheduler.run(until=400)
        assert timers.get_remaining_time(handle) == 600

        timers.cancel_all()
        assert timers.get_remaining_time(handle) == 0.0
        assert timers.get_statistics()['active_timers'] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
