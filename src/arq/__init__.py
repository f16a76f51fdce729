"""
ARQ package - Stop-and-Wait ARQ protocol components.

Contains implementations for:
- Frame and acknowledgment structure
- Sender and receiver state machines
- Transaction registry for stale-ACK detection
- Virtual-clock scheduler and retransmission timer
- Protocol engine and event bus
"""

from .errors import ARQError, InvalidConfiguration, NotInStepMode, NoPendingStep, RejectReason
from .frame import Frame, Acknowledgment, toggle_bit
from .sender import StopAndWaitSender, SenderState, SenderPhase
from .receiver import StopAndWaitReceiver, ReceiverState, ReceiverPhase
from .transaction import TransactionRegistry
from .scheduler import EventScheduler, ScheduledCall
from .timer import TimerService, TimerHandle, TimerState
from .run_config import RunConfiguration
from .events import EventBus, EventRecorder
from .engine import ProtocolEngine

__all__ = [
    'ARQError',
    'InvalidConfiguration',
    'NotInStepMode',
    'NoPendingStep',
    'RejectReason',
    'Frame',
    'Acknowledgment',
    'toggle_bit',
    'StopAndWaitSender',
    'SenderState',
    'SenderPhase',
    'StopAndWaitReceiver',
    'ReceiverState',
    'ReceiverPhase',
    'TransactionRegistry',
    'EventScheduler',
    'ScheduledCall',
    'TimerService',
    'TimerHandle',
    'TimerState',
    'RunConfiguration',
    'EventBus',
    'EventRecorder',
    'ProtocolEngine'
]
