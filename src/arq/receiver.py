"""
Stop-and-Wait ARQ Receiver

This module implements the receiver half of the protocol: in-order
acceptance on the expected sequence bit and duplicate suppression with
re-acknowledgment of the previously accepted bit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .frame import Frame, Acknowledgment, toggle_bit


class ReceiverPhase(Enum):
    """Receiver state machine states."""
    READY = "Ready"
    PROCESSING = "Processing frame"
    ACK_IN_ORDER = "ACK in order"
    ACK_DUPLICATE = "ACK duplicate"
    DONE = "Done"


@dataclass
class ReceiverState:
    """
    Mutable state of the receiver half.

    Attributes:
        expected_sequence_bit: Bit of the next in-order frame
        last_accepted_payload: Payload of the last frame accepted in order
        phase: Current state machine phase
    """
    expected_sequence_bit: int = 0
    last_accepted_payload: Optional[str] = None
    phase: ReceiverPhase = ReceiverPhase.READY


class StopAndWaitReceiver:
    """
    Stop-and-Wait ARQ Receiver.

    Attributes:
        state: Current receiver state
        delivered: Payloads delivered in order
        frames_received: Frames that reached the receiver
        duplicate_frames: Frames rejected as duplicates
        acks_sent: ACKs generated (including re-ACKs)
    """

    def __init__(
        self,
        on_data_delivered: Optional[Callable[[str], None]] = None
    ):
        """
        Initialize receiver.

        Args:
            on_data_delivered: Callback when a payload is accepted in order
        """
        self.on_data_delivered = on_data_delivered
        self.state = ReceiverState()
        self.delivered: List[str] = []

        # Statistics
        self.frames_received = 0
        self.duplicate_frames = 0
        self.acks_sent = 0

    def begin_processing(self):
        self.state.phase = ReceiverPhase.PROCESSING

    def receive_frame(self, frame: Frame) -> Tuple[Acknowledgment, bool]:
        """
        Process a received frame.

        An in-order frame toggles the expected bit and is acknowledged with
        its own bit. Any other frame is a duplicate of the previous one and
        is re-acknowledged with the previously accepted bit, leaving state
        untouched.

        Args:
            frame: Received frame

        Returns:
            Tuple of (ACK to send, whether the frame was accepted in order)
        """
        self.frames_received += 1

        if frame.sequence_bit == self.state.expected_sequence_bit:
            self.state.expected_sequence_bit = toggle_bit(self.state.expected_sequence_bit)
            self.state.last_accepted_payload = frame.payload
            self.state.phase = ReceiverPhase.ACK_IN_ORDER
            self.delivered.append(frame.payload)

            if self.on_data_delivered:
                self.on_data_delivered(frame.payload)

            ack = Acknowledgment(
                sequence_bit=frame.sequence_bit,
                transaction_id=frame.transaction_id,
                for_payload=frame.payload
            )
            accepted = True
        else:
            self.duplicate_frames += 1
            self.state.phase = ReceiverPhase.ACK_DUPLICATE
            ack = Acknowledgment(
                sequence_bit=toggle_bit(self.state.expected_sequence_bit),
                transaction_id=frame.transaction_id,
                for_payload=self.state.last_accepted_payload or "previous"
            )
            accepted = False

        self.acks_sent += 1
        return ack, accepted

    def ready(self):
        self.state.phase = ReceiverPhase.READY

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'frames_received': self.frames_received,
            'duplicate_frames': self.duplicate_frames,
            'acks_sent': self.acks_sent,
            'delivered': len(self.delivered),
            'expected_sequence_bit': self.state.expected_sequence_bit
        }

    def reset(self):
        """Reset receiver to initial state."""
        self.state = ReceiverState()
        self.delivered.clear()
        self.frames_received = 0
        self.duplicate_frames = 0
        self.acks_sent = 0
