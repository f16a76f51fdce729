"""
Frame Structure for Stop-and-Wait ARQ Protocol

This module defines the two message kinds exchanged over the simulated
link: data frames carrying a 1-bit sequence number, and acknowledgments
echoing that bit. Both carry the transaction id of the send attempt they
belong to, so late messages can be told apart from current ones.
"""

from dataclasses import dataclass


SEQUENCE_BITS = (0, 1)


def toggle_bit(bit: int) -> int:
    """Return the other sequence bit (0 -> 1, 1 -> 0)."""
    return 1 - bit


def _check_fields(sequence_bit: int, transaction_id: int):
    if sequence_bit not in SEQUENCE_BITS:
        raise ValueError(f"Sequence bit must be 0 or 1, got {sequence_bit!r}")
    if transaction_id < 0:
        raise ValueError("Transaction id must be non-negative")


@dataclass(frozen=True)
class Frame:
    """
    Data frame sent from sender to receiver.

    Attributes:
        sequence_bit: Alternating 1-bit sequence number
        payload: Opaque payload identifier (e.g. "Data-3")
        transaction_id: Id of the send attempt that produced this frame
        is_retransmit: Whether this frame is a resend after a timeout
    """

    sequence_bit: int
    payload: str
    transaction_id: int
    is_retransmit: bool = False

    def __post_init__(self):
        """Validate frame after initialization."""
        _check_fields(self.sequence_bit, self.transaction_id)

    def __repr__(self) -> str:
        flag = ", retransmit" if self.is_retransmit else ""
        return (f"Frame(seq={self.sequence_bit}, payload={self.payload!r}, "
                f"tx={self.transaction_id}{flag})")


@dataclass(frozen=True)
class Acknowledgment:
    """
    ACK sent from receiver back to sender.

    Attributes:
        sequence_bit: Bit of the frame being acknowledged
        transaction_id: Transaction id copied from the frame that triggered it
        for_payload: Payload the receiver believes it is acknowledging
    """

    sequence_bit: int
    transaction_id: int
    for_payload: str = ""

    def __post_init__(self):
        _check_fields(self.sequence_bit, self.transaction_id)

    def __repr__(self) -> str:
        return (f"ACK(seq={self.sequence_bit}, tx={self.transaction_id}, "
                f"for={self.for_payload!r})")
