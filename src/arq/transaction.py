"""
Transaction Registry

Mints one identifier per send attempt (original send or retransmission)
and remembers which attempt is current and which one was last
acknowledged. An ACK is only valid for the current, not-yet-handled
attempt; everything else is a late or duplicate ACK.
"""


class TransactionRegistry:
    """
    Tracks the identity of the outstanding transmission attempt.

    Attributes:
        next_id: Id the next call to ``begin_transaction`` will return
        current_id: Id of the outstanding attempt (0 before the first send)
        last_handled_id: Id of the last attempt whose ACK was accepted
    """

    def __init__(self):
        self.next_id = 1
        self.current_id = 0
        self.last_handled_id = 0

    def begin_transaction(self) -> int:
        """
        Start a new send attempt.

        Returns:
            The new current transaction id (strictly greater than any before)
        """
        self.current_id = self.next_id
        self.next_id += 1
        return self.current_id

    def is_valid(self, transaction_id: int) -> bool:
        """Check whether an ACK carrying this id may still be applied."""
        return (transaction_id == self.current_id and
                transaction_id > self.last_handled_id)

    def is_current(self, transaction_id: int) -> bool:
        """Check whether the id belongs to the outstanding attempt."""
        return transaction_id == self.current_id

    def mark_handled(self, transaction_id: int):
        """Record that the ACK for this attempt has been accepted."""
        self.last_handled_id = transaction_id

    def reset(self):
        """Reset registry to initial state."""
        self.next_id = 1
        self.current_id = 0
        self.last_handled_id = 0

    def __repr__(self) -> str:
        return (f"TransactionRegistry(current={self.current_id}, "
                f"last_handled={self.last_handled_id}, next={self.next_id})")
