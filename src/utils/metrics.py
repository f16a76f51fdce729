"""
Metrics Collection and Calculation

This module accumulates the counters of a Stop-and-Wait run and derives
the end-of-run metrics: delivery efficiency and goodput.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict


@dataclass(frozen=True)
class RunStatistics:
    """Read-only snapshot of a run's counters and derived metrics."""
    total_transmissions: int = 0
    retransmissions: int = 0
    frames_lost: int = 0
    acks_lost: int = 0
    successful_deliveries: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration: float = 0.0
    efficiency: float = 1.0
    goodput: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


class StatisticsCollector:
    """
    Collects run counters for the simulation.

    Efficiency = Successful Deliveries / Total Transmissions
    Goodput = Successful Deliveries / Duration (frames per second)

    Times are in seconds of simulation time.
    """

    def __init__(self):
        """Initialize statistics collector."""
        # Time tracking
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Counters
        self.total_transmissions = 0
        self.retransmissions = 0
        self.frames_lost = 0
        self.acks_lost = 0
        self.successful_deliveries = 0

    def start(self, time: float):
        """
        Mark run start.

        Args:
            time: Start time
        """
        self.start_time = time

    def finish(self, time: float):
        """
        Mark run end.

        Args:
            time: End time
        """
        self.end_time = time

    def record_transmission(self):
        """Record a frame handed to the channel (first send or resend)."""
        self.total_transmissions += 1

    def record_retransmission(self):
        self.retransmissions += 1

    def record_frame_lost(self):
        self.frames_lost += 1

    def record_ack_lost(self):
        self.acks_lost += 1

    def record_delivery(self):
        """Record a frame accepted in order by the receiver."""
        self.successful_deliveries += 1

    def handle_event(self, event):
        """
        Update counters from a protocol engine event.

        Subscribed to the engine's event bus. Events are matched by class
        name; anything without a counter is ignored.

        Args:
            event: Event published by the engine
        """
        name = type(event).__name__
        if name == 'FrameSent':
            self.record_transmission()
        elif name == 'FrameLost':
            self.record_frame_lost()
        elif name == 'AckLost':
            self.record_ack_lost()
        elif name == 'TimeoutFired':
            self.record_retransmission()
        elif name == 'FrameReceived' and not event.duplicate:
            self.record_delivery()

    @property
    def duration(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return max(0.0, self.end_time - self.start_time)

    def calculate_efficiency(self) -> float:
        """
        Calculate delivery efficiency.

        Returns:
            Efficiency ratio (1.0 when nothing was transmitted)
        """
        if self.total_transmissions <= 0:
            return 1.0
        return self.successful_deliveries / self.total_transmissions

    def calculate_goodput(self) -> float:
        """
        Calculate goodput.

        Returns:
            Delivered frames per second (0 for a zero-length run)
        """
        duration = self.duration
        if duration <= 0:
            return 0.0
        return self.successful_deliveries / duration

    def calculate_retransmission_rate(self) -> float:
        """
        Calculate retransmission rate.

        Returns:
            Retransmissions / Total Transmissions
        """
        if self.total_transmissions <= 0:
            return 0.0
        return self.retransmissions / self.total_transmissions

    def snapshot(self) -> RunStatistics:
        """Get a read-only snapshot of the current counters."""
        return RunStatistics(
            total_transmissions=self.total_transmissions,
            retransmissions=self.retransmissions,
            frames_lost=self.frames_lost,
            acks_lost=self.acks_lost,
            successful_deliveries=self.successful_deliveries,
            start_time=self.start_time,
            end_time=self.end_time,
            duration=self.duration,
            efficiency=self.calculate_efficiency(),
            goodput=self.calculate_goodput()
        )

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        summary = self.snapshot().to_dict()
        summary['retransmission_rate'] = self.calculate_retransmission_rate()
        return summary

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.total_transmissions = 0
        self.retransmissions = 0
        self.frames_lost = 0
        self.acks_lost = 0
        self.successful_deliveries = 0
