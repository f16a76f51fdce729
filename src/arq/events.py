"""
Protocol Events

Everything observable about a run is published as an immutable event on
an ``EventBus``, in causal order, from the engine's control thread. The
presentation layer, the simulator driver and the tests all consume the
same stream.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, Type

from .errors import RejectReason


@dataclass(frozen=True)
class RunStarted:
    config: Any


@dataclass(frozen=True)
class FrameSent:
    bit: int
    payload: str
    is_retransmit: bool
    transaction_id: int


@dataclass(frozen=True)
class TimeoutArmed:
    transaction_id: int
    duration_ms: float


@dataclass(frozen=True)
class FrameLost:
    bit: int


@dataclass(frozen=True)
class FrameReceived:
    bit: int
    payload: str
    duplicate: bool


@dataclass(frozen=True)
class AckSent:
    bit: int
    for_payload: str


@dataclass(frozen=True)
class AckLost:
    bit: int


@dataclass(frozen=True)
class AckAccepted:
    bit: int
    transaction_id: int


@dataclass(frozen=True)
class AckRejected:
    bit: int
    reason: RejectReason
    transaction_id: int


@dataclass(frozen=True)
class TimeoutFired:
    transaction_id: int = 0


@dataclass(frozen=True)
class StepPending:
    next_payload: str = ""


@dataclass(frozen=True)
class RunFinished:
    statistics: Any


@dataclass(frozen=True)
class RunReset:
    pass


Listener = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe for protocol events."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Listener:
        """Register a listener; returns it so it can be used as a decorator."""
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event):
        for listener in list(self._listeners):
            listener(event)


@dataclass
class EventRecorder:
    """
    Listener that keeps every event with the virtual time it was emitted at.

    Attributes:
        clock: Zero-argument callable returning the current time (ms)
        records: List of (time_ms, event) pairs
    """
    clock: Optional[Callable[[], float]] = None
    records: List[Tuple[float, Any]] = field(default_factory=list)

    def __call__(self, event):
        now = self.clock() if self.clock else 0.0
        self.records.append((now, event))

    @property
    def events(self) -> List[Any]:
        return [event for _, event in self.records]

    def of_type(self, event_type: Type) -> List[Any]:
        """Get all recorded events of one type, in order."""
        return [event for event in self.events if isinstance(event, event_type)]

    def count(self, event_type: Type) -> int:
        return len(self.of_type(event_type))

    def names(self) -> List[str]:
        """Event class names in order, handy for sequence assertions."""
        return [type(event).__name__ for event in self.events]

    def counts(self) -> dict:
        """Number of events per event class name."""
        result = {}
        for name in self.names():
            result[name] = result.get(name, 0) + 1
        return result

    def clear(self):
        self.records.clear()
