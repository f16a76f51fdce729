"""
Timer Management for Stop-and-Wait ARQ

This module provides the retransmission timer. Stop-and-Wait has a
single outstanding frame, so there is one timer slot per logical use;
arming a slot again invalidates whatever was armed there before.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional
from enum import Enum

from .scheduler import EventScheduler, ScheduledCall


DEFAULT_SLOT = "frame"


class TimerState(Enum):
    """Timer state enumeration."""
    RUNNING = 1
    CANCELLED = 2
    EXPIRED = 3


@dataclass
class TimerHandle:
    """
    Handle to one armed timeout.

    Attributes:
        slot: Logical slot the timer occupies
        generation: Incremented on every arm of the slot
        duration: Timeout duration in milliseconds
        start_time: Virtual time when the timer was armed
        state: Current timer state
    """
    slot: str
    generation: int
    duration: float
    start_time: float
    state: TimerState = TimerState.RUNNING
    _call: Optional[ScheduledCall] = None

    @property
    def expiry_time(self) -> float:
        """Get the absolute expiry time."""
        return self.start_time + self.duration

    @property
    def is_armed(self) -> bool:
        return self.state == TimerState.RUNNING


class TimerService:
    """
    Schedules cancellable timeouts on the event scheduler.

    Attributes:
        scheduler: Scheduler providing the clock and dispatch
        total_armed: Number of timers armed so far
        total_cancelled: Number of timers cancelled before firing
        total_fired: Number of timers that fired
    """

    def __init__(self, scheduler: EventScheduler):
        """
        Initialize timer service.

        Args:
            scheduler: Scheduler the timeouts run on
        """
        self.scheduler = scheduler
        self._slots: Dict[str, TimerHandle] = {}
        self._generations: Dict[str, int] = {}

        # Statistics
        self.total_armed = 0
        self.total_cancelled = 0
        self.total_fired = 0

    def arm(
        self,
        duration: float,
        on_fire: Callable[[], None],
        slot: str = DEFAULT_SLOT
    ) -> TimerHandle:
        """
        Arm a timeout, replacing any timer already armed in the slot.

        Args:
            duration: Timeout duration in milliseconds
            on_fire: Callback run on the control thread when the timer expires
            slot: Logical timer slot

        Returns:
            Handle for ``cancel``
        """
        previous = self._slots.get(slot)
        if previous is not None:
            self.cancel(previous)

        generation = self._generations.get(slot, 0) + 1
        self._generations[slot] = generation

        handle = TimerHandle(
            slot=slot,
            generation=generation,
            duration=duration,
            start_time=self.scheduler.now
        )
        handle._call = self.scheduler.call_later(duration, self._fire, handle, on_fire)
        self._slots[slot] = handle
        self.total_armed += 1
        return handle

    def cancel(self, handle: Optional[TimerHandle]):
        """
        Cancel a timer. Cancelling an expired or cancelled timer does nothing.

        Args:
            handle: Handle returned by ``arm``
        """
        if handle is None or not handle.is_armed:
            return
        handle.state = TimerState.CANCELLED
        self.scheduler.cancel(handle._call)
        if self._slots.get(handle.slot) is handle:
            del self._slots[handle.slot]
        self.total_cancelled += 1

    def cancel_all(self):
        """Cancel every armed timer."""
        for handle in list(self._slots.values()):
            self.cancel(handle)

    def active(self, slot: str = DEFAULT_SLOT) -> Optional[TimerHandle]:
        """Get the armed timer in a slot, if any."""
        return self._slots.get(slot)

    def get_remaining_time(self, handle: TimerHandle) -> float:
        """Remaining time until expiry (0 if not running)."""
        if not handle.is_armed:
            return 0.0
        return max(0.0, handle.expiry_time - self.scheduler.now)

    def _fire(self, handle: TimerHandle, on_fire: Callable[[], None]):
        # A newer arm of the slot supersedes this one
        if not handle.is_armed or self._generations.get(handle.slot) != handle.generation:
            return
        handle.state = TimerState.EXPIRED
        del self._slots[handle.slot]
        self.total_fired += 1
        on_fire()

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'total_armed': self.total_armed,
            'total_cancelled': self.total_cancelled,
            'total_fired': self.total_fired,
            'active_timers': len(self._slots)
        }
