"""
Stop-and-Wait ARQ Protocol Engine

This module orchestrates one run of the protocol: frame construction,
loss injection, receiver acceptance, ACK validation, timeout handling
and completion. All transitions execute on the event scheduler, one at
a time. Every delayed callback is tied to the run that scheduled it and
re-validates transaction state before acting, so late completions from
an abandoned attempt or a reset run are inert.
"""

from functools import partial
from typing import Callable, Optional

from config import (
    RECEIVER_PROCESSING_DELAY_MS, TIMEOUT_GRACE_DELAY_MS, SETTLE_DELAY_MS,
    calculate_retransmit_pause
)
from src.channel.loss_model import ChannelModel
from src.utils.logger import SimulationLogger, get_logger
from src.utils.metrics import StatisticsCollector, RunStatistics

from .errors import NotInStepMode, NoPendingStep, RejectReason
from .events import (
    EventBus, RunStarted, FrameSent, TimeoutArmed, FrameLost, FrameReceived,
    AckSent, AckLost, AckAccepted, AckRejected, TimeoutFired, StepPending,
    RunFinished, RunReset
)
from .frame import Frame, Acknowledgment
from .receiver import StopAndWaitReceiver, ReceiverPhase
from .run_config import RunConfiguration
from .scheduler import EventScheduler
from .sender import StopAndWaitSender, SenderPhase
from .timer import TimerService, TimerHandle
from .transaction import TransactionRegistry


class ProtocolEngine:
    """
    Stop-and-Wait sender/receiver state machine.

    Attributes:
        scheduler: Event scheduler (single control thread, virtual clock)
        channel: Loss model consulted in noisy mode
        timer: Retransmission timer service
        statistics: Run counters
        events: Event bus for presentation and analysis listeners
        registry: Transaction id registry
        sender: Sender half
        receiver: Receiver half
        config: Configuration of the current run (None when idle)
        active: Whether a run is in progress
        finished: Whether the last run delivered every frame
        awaiting_step: Whether step mode is holding the next transmission
    """

    def __init__(
        self,
        scheduler: Optional[EventScheduler] = None,
        channel: Optional[ChannelModel] = None,
        timer: Optional[TimerService] = None,
        statistics: Optional[StatisticsCollector] = None,
        logger: Optional[SimulationLogger] = None,
        processing_delay_ms: float = RECEIVER_PROCESSING_DELAY_MS,
        grace_delay_ms: float = TIMEOUT_GRACE_DELAY_MS,
        settle_delay_ms: float = SETTLE_DELAY_MS
    ):
        """
        Initialize the engine.

        Args:
            scheduler: Scheduler to run on (a new one if None)
            channel: Loss model (unseeded Bernoulli channel if None)
            timer: Timer service (built on the scheduler if None)
            statistics: Statistics collector, fed from the event bus
            logger: Logger (the shared global logger if None)
            processing_delay_ms: Receiver processing time per frame
            grace_delay_ms: Delay before a fired timeout takes effect
            settle_delay_ms: Delay before the next frame in continuous mode
        """
        self.scheduler = scheduler or EventScheduler()
        self.channel = channel or ChannelModel()
        self.timer = timer or TimerService(self.scheduler)
        self.statistics = statistics or StatisticsCollector()
        self.logger = logger or get_logger()
        self.events = EventBus()
        self.events.subscribe(self.statistics.handle_event)

        self.processing_delay_ms = processing_delay_ms
        self.grace_delay_ms = grace_delay_ms
        self.settle_delay_ms = settle_delay_ms

        self.registry = TransactionRegistry()
        self.sender = StopAndWaitSender()
        self.receiver = StopAndWaitReceiver()

        self.config: Optional[RunConfiguration] = None
        self.active = False
        self.finished = False
        self.awaiting_step = False

        self._epoch = 0
        self._timer_handle: Optional[TimerHandle] = None

    # ------------------------------------------------------------------
    # Boundary operations
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable) -> Callable:
        """Register an event listener."""
        return self.events.subscribe(listener)

    def start(self, config: RunConfiguration):
        """
        Begin a run.

        Args:
            config: Run configuration

        Raises:
            InvalidConfiguration: If the configuration is rejected; no
                state is touched in that case
        """
        config = config.validated()
        if self.active:
            self.reset()

        self._epoch += 1
        self._reset_owned_state(config)
        self.active = True
        self._sync_clock()

        self.statistics.start(self.scheduler.now_seconds)
        self.logger.simulation_start({
            'mode': 'noisy' if config.noisy else 'noiseless',
            'frames': config.frame_count,
            'frame_loss': config.frame_loss_probability,
            'ack_loss': config.ack_loss_probability,
            'timeout_ms': round(config.timeout_ms)
        })
        self._emit(RunStarted(config=config))

        if config.step_mode:
            self._await_step()
        else:
            self.send_next_frame()

    def advance_step(self):
        """
        Release the next transmission in step mode.

        Raises:
            NotInStepMode: No active run, or the run is continuous
            NoPendingStep: Nothing is waiting to be released
        """
        if not self.active or self.config is None or not self.config.step_mode:
            raise NotInStepMode("advance_step() requires an active step-mode run")
        if not self.awaiting_step:
            raise NoPendingStep("No transmission is waiting for a step")

        self.awaiting_step = False
        self.send_next_frame()

    def pause(self):
        """Suspend all progress, keeping every pending delay and timer."""
        if not self.active:
            return
        self.scheduler.pause()
        self.logger.info("Simulation paused", "SIM")

    def resume(self):
        """Continue exactly where the run was paused."""
        if not self.scheduler.paused:
            return
        self.scheduler.resume()
        self.logger.info("Simulation resumed", "SIM")

    @property
    def paused(self) -> bool:
        return self.scheduler.paused

    def reset(self):
        """Return all state to initial values and make in-flight work inert."""
        self._epoch += 1
        self.active = False
        self.timer.cancel_all()
        self._timer_handle = None
        if self.scheduler.paused:
            self.scheduler.resume()
        self._reset_owned_state(None)
        self.logger.info("Simulation reset", "SIM")
        self._emit(RunReset())

    # ------------------------------------------------------------------
    # Sender side
    # ------------------------------------------------------------------

    def send_next_frame(self, is_retransmit: bool = False):
        """
        Start a transmission attempt.

        No-op while a frame is outstanding (unless retransmitting). When
        every frame has been delivered this completes the run instead.

        Args:
            is_retransmit: Whether this resends the outstanding frame
        """
        if not self.active:
            return
        if not self.sender.can_send(is_retransmit):
            if not self.sender.has_pending:
                self.finish()
            return

        self.awaiting_step = False
        transaction_id = self.registry.begin_transaction()
        frame = self.sender.build_frame(transaction_id, is_retransmit)

        self.logger.frame_sent(frame.sequence_bit, frame.payload, transaction_id, is_retransmit)
        self._emit(FrameSent(
            bit=frame.sequence_bit,
            payload=frame.payload,
            is_retransmit=is_retransmit,
            transaction_id=transaction_id
        ))
        if is_retransmit:
            self.logger.retransmit(frame.sequence_bit)

        self._arm_timeout(transaction_id)
        self.sender.state.phase = SenderPhase.AWAITING_ACK

        if self._should_drop(self.config.effective_frame_loss):
            self.logger.frame_lost(frame.sequence_bit)
            self._emit(FrameLost(bit=frame.sequence_bit))
            return

        self._later(self.config.transit_duration_ms, self._frame_arrived, frame)

    def on_ack_received(self, ack: Acknowledgment):
        """
        Handle an ACK reaching the sender.

        Late, duplicate and mismatched ACKs are logged and discarded with
        an ``AckRejected`` event; sender state is left untouched.

        Args:
            ack: Acknowledgment delivered by the channel
        """
        if not self.active:
            return

        state = self.sender.state
        if not self.registry.is_valid(ack.transaction_id):
            reason = RejectReason.STALE_TRANSACTION
        elif not self.sender.matches_outstanding(ack.sequence_bit):
            reason = RejectReason.SEQUENCE_MISMATCH
        elif state.timeout_expired:
            # The attempt was abandoned; a resend may already be on its way
            reason = RejectReason.AFTER_TIMEOUT
        else:
            reason = None

        if reason is not None:
            self.logger.ack_rejected(ack.sequence_bit, reason.value, state.active_sequence_bit)
            self._emit(AckRejected(
                bit=ack.sequence_bit,
                reason=reason,
                transaction_id=ack.transaction_id
            ))
            return

        self.timer.cancel(self._timer_handle)
        self._timer_handle = None
        self.registry.mark_handled(ack.transaction_id)
        self.sender.complete_exchange()

        self.logger.timeout_cleared(ack.sequence_bit)
        self.logger.ack_accepted(ack.sequence_bit)
        self._emit(AckAccepted(bit=ack.sequence_bit, transaction_id=ack.transaction_id))

        if not self.sender.has_pending:
            self.finish()
        elif self.config.step_mode:
            self._await_step()
        else:
            self.sender.state.phase = SenderPhase.IDLE
            self._later(self.settle_delay_ms, self._auto_advance)

    def on_timeout(self, transaction_id: int):
        """
        Handle an expired timer once its grace delay has passed.

        Ignored unless the run is active, a frame is outstanding and the
        timer belongs to the current attempt.

        Args:
            transaction_id: Attempt the timer was armed for
        """
        state = self.sender.state
        if (not self.active or not state.awaiting_ack or
                state.timeout_expired or
                not self.registry.is_current(transaction_id)):
            self.logger.debug(f"Timeout for tx={transaction_id} ignored", "TIMER")
            return

        self.sender.mark_timeout()
        self._emit(TimeoutFired(transaction_id=transaction_id))
        self.logger.timeout(state.active_sequence_bit, self.statistics.retransmissions)

        self._later(
            calculate_retransmit_pause(self.config.transit_duration_ms),
            self._retransmit,
            transaction_id
        )

    def finish(self):
        """Complete the run and publish the final statistics."""
        if not self.active:
            return

        self.active = False
        self.finished = True
        self.awaiting_step = False
        self.timer.cancel_all()
        self._timer_handle = None
        self._sync_clock()

        self.statistics.finish(self.scheduler.now_seconds)
        self.sender.state.phase = SenderPhase.DONE
        self.receiver.state.phase = ReceiverPhase.DONE

        snapshot = self.statistics.snapshot()
        summary = snapshot.to_dict()
        summary['frame_count'] = self.config.frame_count
        self.logger.simulation_end(summary)
        self._emit(RunFinished(statistics=snapshot))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def progress(self) -> float:
        """Fraction of frames delivered (acknowledged) so far."""
        if self.config is None:
            return 0.0
        return self.sender.state.next_index / self.config.frame_count

    def get_statistics(self) -> RunStatistics:
        return self.statistics.snapshot()

    def get_state(self) -> dict:
        """Snapshot of both protocol halves for display."""
        sender = self.sender.state
        return {
            'active': self.active,
            'paused': self.paused,
            'finished': self.finished,
            'noisy': bool(self.config and self.config.noisy),
            'sender_sequence_bit': sender.current_sequence_bit,
            'receiver_expected_bit': self.receiver.state.expected_sequence_bit,
            'sender_phase': sender.phase.value,
            'receiver_phase': self.receiver.state.phase.value,
            'awaiting_ack': sender.awaiting_ack,
            'awaiting_step': self.awaiting_step,
            'transaction_id': self.registry.current_id,
            'progress': self.progress
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_owned_state(self, config: Optional[RunConfiguration]):
        self.config = config
        self.finished = False
        self.awaiting_step = False
        self.registry.reset()
        self.sender.reset(config.payloads() if config else [])
        self.receiver.reset()
        self.statistics.reset()

    def _emit(self, event):
        self.events.emit(event)

    def _sync_clock(self):
        self.logger.set_sim_time(self.scheduler.now_seconds)

    def _later(self, delay: float, callback: Callable, *args):
        """Schedule a callback bound to the current run."""
        return self.scheduler.call_later(delay, self._dispatch, self._epoch, callback, args)

    def _dispatch(self, epoch: int, callback: Callable, args: tuple):
        if epoch != self._epoch or not self.active:
            return
        self._sync_clock()
        callback(*args)

    def _should_drop(self, probability: float) -> bool:
        # Noiseless runs never consult the channel
        if not self.config.noisy:
            return False
        return self.channel.should_drop(probability)

    def _arm_timeout(self, transaction_id: int):
        duration = self.config.timeout_ms
        on_fire = partial(self._dispatch, self._epoch, self._on_timer_fired, (transaction_id,))
        self._timer_handle = self.timer.arm(duration, on_fire)
        self.sender.state.timeout_armed = True
        self.logger.timeout_armed(duration, self.config.expected_rtt_ms)
        self._emit(TimeoutArmed(transaction_id=transaction_id, duration_ms=duration))

    def _on_timer_fired(self, transaction_id: int):
        if self.registry.is_current(transaction_id):
            self.sender.state.timeout_armed = False
            self._timer_handle = None
        self._later(self.grace_delay_ms, self.on_timeout, transaction_id)

    def _retransmit(self, transaction_id: int):
        state = self.sender.state
        if (state.awaiting_ack and state.timeout_expired and
                self.registry.is_current(transaction_id)):
            self.send_next_frame(is_retransmit=True)

    def _frame_arrived(self, frame: Frame):
        self.receiver.begin_processing()
        self._later(self.processing_delay_ms, self._process_frame, frame)

    def _process_frame(self, frame: Frame):
        ack, accepted = self.receiver.receive_frame(frame)
        self.logger.frame_received(frame.sequence_bit, frame.payload, not accepted)
        self._emit(FrameReceived(
            bit=frame.sequence_bit,
            payload=frame.payload,
            duplicate=not accepted
        ))

        self.logger.ack_sent(ack.sequence_bit, ack.for_payload)
        self._emit(AckSent(bit=ack.sequence_bit, for_payload=ack.for_payload))
        self.receiver.ready()

        if self._should_drop(self.config.effective_ack_loss):
            self.logger.ack_lost(ack.sequence_bit)
            self._emit(AckLost(bit=ack.sequence_bit))
            return

        self._later(self.config.transit_duration_ms, self.on_ack_received, ack)

    def _auto_advance(self):
        if not self.sender.state.awaiting_ack:
            self.send_next_frame()

    def _await_step(self):
        self.awaiting_step = True
        self.sender.state.phase = SenderPhase.WAITING_FOR_STEP
        self.logger.info("Step mode: waiting for next step", "STEP")
        self._emit(StepPending(next_payload=self.sender.next_payload or ""))
