"""
Run Configuration

Immutable parameters of one simulation run, validated once at start.
"""

from dataclasses import dataclass, replace
from typing import List
import math
import numbers

from config import (
    DEFAULT_TRANSIT_DURATION_MS, DEFAULT_TIMEOUT_FACTOR,
    calculate_expected_rtt, calculate_timeout
)
from .errors import InvalidConfiguration


def clamp_probability(value) -> float:
    """Clamp a loss probability into [0, 1]; NaN counts as 0."""
    value = float(value)
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def _is_positive_real(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return value > 0 and math.isfinite(value)


@dataclass(frozen=True)
class RunConfiguration:
    """
    Configuration for a single Stop-and-Wait run.

    Attributes:
        frame_count: Number of frames to deliver
        frame_loss_probability: Chance a frame is lost (noisy mode only)
        ack_loss_probability: Chance an ACK is lost (noisy mode only)
        timeout_factor: Multiplier applied to the expected RTT
        noisy: Whether the channel drops messages at all
        step_mode: Whether each new frame waits for ``advance_step()``
        transit_duration_ms: Nominal one-way transit time
    """
    frame_count: int
    frame_loss_probability: float = 0.0
    ack_loss_probability: float = 0.0
    timeout_factor: float = DEFAULT_TIMEOUT_FACTOR
    noisy: bool = False
    step_mode: bool = False
    transit_duration_ms: float = DEFAULT_TRANSIT_DURATION_MS

    def validated(self) -> 'RunConfiguration':
        """
        Check the configuration and normalise loss probabilities.

        Returns:
            Copy with an int frame count and probabilities clamped to [0, 1]

        Raises:
            InvalidConfiguration: On a non-positive or non-numeric frame
                count, timeout factor, transit duration or probability
        """
        if (isinstance(self.frame_count, bool) or
                not isinstance(self.frame_count, numbers.Integral)):
            raise InvalidConfiguration(
                f"Frame count must be an integer, got {self.frame_count!r}")
        if self.frame_count <= 0:
            raise InvalidConfiguration(
                f"Frame count must be positive, got {self.frame_count}")
        if not _is_positive_real(self.timeout_factor):
            raise InvalidConfiguration(
                f"Timeout factor must be a positive number, got {self.timeout_factor!r}")
        if not _is_positive_real(self.transit_duration_ms):
            raise InvalidConfiguration(
                f"Transit duration must be positive, got {self.transit_duration_ms!r}")

        try:
            frame_loss = clamp_probability(self.frame_loss_probability)
            ack_loss = clamp_probability(self.ack_loss_probability)
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration(f"Loss probability must be a number: {e}") from e

        return replace(
            self,
            frame_count=int(self.frame_count),
            frame_loss_probability=frame_loss,
            ack_loss_probability=ack_loss
        )

    @property
    def expected_rtt_ms(self) -> float:
        return calculate_expected_rtt(self.transit_duration_ms)

    @property
    def timeout_ms(self) -> float:
        """Retransmission timeout for every send attempt of this run."""
        return calculate_timeout(self.transit_duration_ms, self.timeout_factor)

    @property
    def effective_frame_loss(self) -> float:
        return self.frame_loss_probability if self.noisy else 0.0

    @property
    def effective_ack_loss(self) -> float:
        return self.ack_loss_probability if self.noisy else 0.0

    def payloads(self) -> List[str]:
        """Payload identifiers in send order: Data-1 .. Data-N."""
        return [f"Data-{i + 1}" for i in range(self.frame_count)]

    def to_dict(self) -> dict:
        return {
            'frame_count': self.frame_count,
            'frame_loss_probability': self.frame_loss_probability,
            'ack_loss_probability': self.ack_loss_probability,
            'timeout_factor': self.timeout_factor,
            'noisy': self.noisy,
            'step_mode': self.step_mode,
            'transit_duration_ms': self.transit_duration_ms,
            'timeout_ms': self.timeout_ms
        }
