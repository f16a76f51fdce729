"""
Error taxonomy for the Stop-and-Wait ARQ engine.

Only configuration errors and misuse of the step controls are raised.
Stale events (late ACKs, superseded timeouts) are recovered locally and
reported through ``RejectReason`` on ``AckRejected`` events.
"""

from enum import Enum


class ARQError(Exception):
    """Base class for all engine errors."""


class InvalidConfiguration(ARQError, ValueError):
    """Raised by ``start()`` when the run configuration cannot be used."""


class NotInStepMode(ARQError, RuntimeError):
    """Raised by ``advance_step()`` when the active run is not in step mode."""


class NoPendingStep(ARQError, RuntimeError):
    """Raised by ``advance_step()`` when no transmission is waiting to be released."""


class RejectReason(str, Enum):
    """Why an ACK was discarded by the sender."""
    STALE_TRANSACTION = "stale-transaction"
    SEQUENCE_MISMATCH = "sequence-mismatch"
    AFTER_TIMEOUT = "after-timeout"
