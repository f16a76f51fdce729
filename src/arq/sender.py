"""
Stop-and-Wait ARQ Sender

This module implements the sender half of the protocol: it owns the
current sequence bit, the outstanding send attempt and the position in
the payload list. It never talks to the channel or the timer itself;
the engine drives it through send/ack/timeout transitions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .frame import Frame, toggle_bit


class SenderPhase(Enum):
    """Sender state machine states."""
    IDLE = "Idle"
    SENDING = "Sending"
    AWAITING_ACK = "Awaiting ACK"
    ACK_ACCEPTED = "ACK accepted"
    TIMEOUT = "Timeout - retransmitting"
    WAITING_FOR_STEP = "Waiting for next step"
    DONE = "Done"


@dataclass
class SenderState:
    """
    Mutable state of the sender half.

    Attributes:
        current_sequence_bit: Bit the next (or outstanding) frame carries
        active_transaction_id: Transaction of the outstanding attempt
        active_sequence_bit: Bit of the outstanding frame, None when idle
        awaiting_ack: Whether a frame is outstanding
        timeout_armed: Whether a retransmission timer is running
        timeout_expired: Whether the outstanding attempt has timed out
        next_index: Index of the next undelivered payload
        phase: Current state machine phase
    """
    current_sequence_bit: int = 0
    active_transaction_id: Optional[int] = None
    active_sequence_bit: Optional[int] = None
    awaiting_ack: bool = False
    timeout_armed: bool = False
    timeout_expired: bool = False
    next_index: int = 0
    phase: SenderPhase = SenderPhase.IDLE


class StopAndWaitSender:
    """
    Stop-and-Wait ARQ Sender.

    Attributes:
        payloads: Payload identifiers to deliver, in order
        state: Current sender state
        frames_sent: Frames handed to the channel (including resends)
        frames_acked: Frames whose ACK was accepted
    """

    def __init__(self, payloads: Optional[List[str]] = None):
        """
        Initialize sender.

        Args:
            payloads: Payload identifiers to deliver
        """
        self.payloads: List[str] = list(payloads or [])
        self.state = SenderState()

        # Statistics
        self.frames_sent = 0
        self.frames_acked = 0

    @property
    def has_pending(self) -> bool:
        """Whether some payload is still undelivered."""
        return self.state.next_index < len(self.payloads)

    @property
    def next_payload(self) -> Optional[str]:
        if not self.has_pending:
            return None
        return self.payloads[self.state.next_index]

    def can_send(self, is_retransmit: bool = False) -> bool:
        """Check whether a (re)transmission may start now."""
        if self.state.awaiting_ack and not is_retransmit:
            return False
        return self.has_pending

    def build_frame(self, transaction_id: int, is_retransmit: bool = False) -> Frame:
        """
        Start a send attempt for the next undelivered payload.

        A retransmission reuses the same bit and payload under the new
        transaction id.

        Args:
            transaction_id: Freshly minted transaction id
            is_retransmit: Whether this is a resend after a timeout

        Returns:
            The frame to transmit
        """
        frame = Frame(
            sequence_bit=self.state.current_sequence_bit,
            payload=self.payloads[self.state.next_index],
            transaction_id=transaction_id,
            is_retransmit=is_retransmit
        )

        self.state.active_transaction_id = transaction_id
        self.state.active_sequence_bit = frame.sequence_bit
        self.state.awaiting_ack = True
        self.state.timeout_expired = False
        self.state.phase = SenderPhase.SENDING
        self.frames_sent += 1
        return frame

    def matches_outstanding(self, ack_bit: int) -> bool:
        """Whether an ACK bit belongs to the outstanding frame."""
        return self.state.awaiting_ack and ack_bit == self.state.active_sequence_bit

    def mark_timeout(self):
        """Record that the outstanding attempt timed out."""
        self.state.timeout_expired = True
        self.state.timeout_armed = False
        self.state.phase = SenderPhase.TIMEOUT

    def complete_exchange(self):
        """Apply an accepted ACK: toggle the bit and move to the next payload."""
        self.state.awaiting_ack = False
        self.state.timeout_armed = False
        self.state.timeout_expired = False
        self.state.active_sequence_bit = None
        self.state.current_sequence_bit = toggle_bit(self.state.current_sequence_bit)
        self.state.next_index += 1
        self.state.phase = SenderPhase.ACK_ACCEPTED
        self.frames_acked += 1

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'frames_sent': self.frames_sent,
            'frames_acked': self.frames_acked,
            'next_index': self.state.next_index,
            'current_sequence_bit': self.state.current_sequence_bit,
            'phase': self.state.phase.value
        }

    def reset(self, payloads: Optional[List[str]] = None):
        """Reset sender to initial state."""
        if payloads is not None:
            self.payloads = list(payloads)
        self.state = SenderState()
        self.frames_sent = 0
        self.frames_acked = 0
