"""
Event Scheduler - Single Control Thread

This module provides the virtual-clock event queue on which every
protocol transition runs. Transit delays, processing delays and timers
are all scheduled callbacks; they are dispatched strictly one at a time
in time order, so handlers never run concurrently.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple
import heapq


@dataclass(order=True)
class ScheduledCall:
    """
    A callback due at a point in virtual time.

    Ordering is by (time, order) so calls due at the same instant run in
    the order they were scheduled.
    """
    time: float
    order: int
    callback: Callable = field(compare=False)
    args: Tuple[Any, ...] = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self):
        """Prevent this call from running. Safe to call more than once."""
        self.cancelled = True


class EventScheduler:
    """
    Discrete-event scheduler with a virtual millisecond clock.

    Pausing freezes the clock and stops dispatch without discarding any
    pending calls; resuming continues from exactly the same point.

    Attributes:
        now: Current virtual time in milliseconds
        paused: Whether dispatch is suspended
        dispatched: Total number of callbacks executed
    """

    def __init__(self, start_time: float = 0.0):
        self.now = start_time
        self.paused = False
        self.dispatched = 0
        self._queue: List[ScheduledCall] = []
        self._counter = 0

    @property
    def now_seconds(self) -> float:
        """Current virtual time in seconds."""
        return self.now / 1000.0

    @property
    def pending(self) -> int:
        """Number of calls still waiting to run."""
        return sum(1 for call in self._queue if not call.cancelled)

    def call_later(self, delay: float, callback: Callable, *args) -> ScheduledCall:
        """
        Schedule a callback.

        Args:
            delay: Delay in milliseconds from the current virtual time
            callback: Function to run
            *args: Positional arguments for the callback

        Returns:
            Handle that can be passed to ``cancel``
        """
        if delay < 0:
            raise ValueError("Delay must be non-negative")
        self._counter += 1
        call = ScheduledCall(
            time=self.now + delay,
            order=self._counter,
            callback=callback,
            args=args
        )
        heapq.heappush(self._queue, call)
        return call

    def cancel(self, call: Optional[ScheduledCall]):
        """Cancel a scheduled call (no-op for None or already-run calls)."""
        if call is not None:
            call.cancel()

    def next_time(self) -> Optional[float]:
        """Time of the next live call, or None if nothing is pending."""
        self._drop_cancelled()
        return self._queue[0].time if self._queue else None

    def step(self) -> bool:
        """
        Run the next pending call.

        Returns:
            True if a call ran, False if paused or idle
        """
        if self.paused:
            return False
        self._drop_cancelled()
        if not self._queue:
            return False

        call = heapq.heappop(self._queue)
        self.now = call.time
        self.dispatched += 1
        call.callback(*call.args)
        return True

    def run(self, until: Optional[float] = None, max_events: Optional[int] = None) -> int:
        """
        Dispatch calls in time order.

        Stops when the queue is empty, the scheduler is paused, the next
        call lies beyond ``until`` or ``max_events`` calls have run. When
        stopping because of ``until`` the clock is advanced to ``until``.

        Args:
            until: Optional virtual time limit (ms)
            max_events: Optional cap on dispatched calls

        Returns:
            Number of calls dispatched
        """
        count = 0
        while not self.paused:
            if max_events is not None and count >= max_events:
                break

            next_time = self.next_time()
            if next_time is None:
                break
            if until is not None and next_time > until:
                self.now = max(self.now, until)
                break

            self.step()
            count += 1

        return count

    def pause(self):
        """Suspend dispatch."""
        self.paused = True

    def resume(self):
        """Resume dispatch."""
        self.paused = False

    def clear(self):
        """Drop every pending call."""
        for call in self._queue:
            call.cancel()
        self._queue.clear()

    def _drop_cancelled(self):
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)
