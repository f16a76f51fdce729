"""
Main Simulator - Event-Driven Stop-and-Wait Run

This module wires a protocol engine to a scheduler, a seeded channel and
a logger, then drives one complete run on the virtual clock.
"""

from typing import Optional, Callable, Dict
import time

from config import MAX_SIMULATION_TIME_MS
from src.arq.engine import ProtocolEngine
from src.arq.events import EventRecorder
from src.arq.run_config import RunConfiguration
from src.arq.scheduler import EventScheduler
from src.channel.loss_model import ChannelModel
from src.utils.logger import SimulationLogger, LogLevel


class Simulator:
    """
    Stop-and-Wait ARQ Simulator.

    Runs a single configuration to completion (or to the time limit) and
    collects the final statistics together with per-event counts.

    Attributes:
        config: Run configuration
        scheduler: Virtual-clock scheduler
        engine: Protocol engine
        recorder: Event recorder subscribed to the engine
    """

    def __init__(
        self,
        config: RunConfiguration,
        seed: Optional[int] = None,
        log_level: int = LogLevel.WARNING,
        channel: Optional[ChannelModel] = None,
        max_time_ms: float = MAX_SIMULATION_TIME_MS
    ):
        """
        Initialize simulator.

        Args:
            config: Run configuration
            seed: Seed for the loss channel (ignored if channel is given)
            log_level: Minimum log level
            channel: Custom loss channel (e.g. a scripted one)
            max_time_ms: Virtual time limit for the run
        """
        self.config = config
        self.seed = seed
        self.max_time_ms = max_time_ms

        self.logger = SimulationLogger(name="Sim", level=log_level)
        self.scheduler = EventScheduler()
        self.channel = channel or ChannelModel(seed=seed)
        self.engine = ProtocolEngine(
            scheduler=self.scheduler,
            channel=self.channel,
            logger=self.logger
        )

        self.recorder = EventRecorder(clock=lambda: self.scheduler.now)
        self.engine.subscribe(self.recorder)

    def pause(self):
        self.engine.pause()

    def resume(self):
        self.engine.resume()

    def run(self, step_callback: Optional[Callable[[ProtocolEngine], bool]] = None) -> Dict:
        """
        Run the simulation.

        In step mode each pending step is released after ``step_callback``
        returns True; returning False stops the run early. Without a
        callback every step is released immediately. If the run was
        paused, this returns early; calling it again after ``resume()``
        continues the same run.

        Args:
            step_callback: Called whenever a step-mode run is waiting

        Returns:
            Dictionary with configuration, statistics and event counts
        """
        sim_start_real = time.time()
        if not self.engine.active:
            self.engine.start(self.config)

        while True:
            self.scheduler.run(until=self.max_time_ms)

            if self.scheduler.paused:
                break

            if self.engine.awaiting_step:
                if step_callback is not None and not step_callback(self.engine):
                    break
                self.engine.advance_step()
                continue

            if not self.engine.active:
                break
            if self.scheduler.next_time() is None or self.scheduler.now >= self.max_time_ms:
                break

        complete = self.engine.finished
        if not complete:
            self.logger.warning(
                f"Run stopped at {self.scheduler.now_seconds:.1f}s before all "
                f"{self.config.frame_count} frames were delivered", "SIM"
            )

        statistics = self.engine.get_statistics()
        return {
            'config': self.config.to_dict(),
            'seed': self.seed,
            'statistics': statistics.to_dict(),
            'event_counts': self.recorder.counts(),
            'simulation_time': self.scheduler.now_seconds,
            'real_time': time.time() - sim_start_real,
            'complete': complete
        }


def run_simulation(
    frame_count: int,
    frame_loss: float = 0.0,
    ack_loss: float = 0.0,
    timeout_factor: Optional[float] = None,
    seed: Optional[int] = None,
    log_level: int = LogLevel.WARNING
) -> Dict:
    """
    Convenience function to run a single noisy simulation.

    Args:
        frame_count: Number of frames to deliver
        frame_loss: Frame loss probability
        ack_loss: ACK loss probability
        timeout_factor: Timeout factor (default from config)
        seed: Random seed
        log_level: Logging level

    Returns:
        Simulation results
    """
    kwargs = {}
    if timeout_factor is not None:
        kwargs['timeout_factor'] = timeout_factor

    config = RunConfiguration(
        frame_count=frame_count,
        frame_loss_probability=frame_loss,
        ack_loss_probability=ack_loss,
        noisy=frame_loss > 0 or ack_loss > 0,
        **kwargs
    )
    return Simulator(config, seed=seed, log_level=log_level).run()


if __name__ == "__main__":
    print("Testing Stop-and-Wait simulator...")

    result = run_simulation(frame_count=5, frame_loss=0.2, ack_loss=0.1, seed=42,
                            log_level=LogLevel.INFO)

    stats = result['statistics']
    print(f"\nResults:")
    print(f"  Complete: {result['complete']}")
    print(f"  Simulated time: {result['simulation_time']:.1f}s")
    print(f"  Transmissions: {stats['total_transmissions']}")
    print(f"  Retransmissions: {stats['retransmissions']}")
    print(f"  Efficiency: {stats['efficiency'] * 100:.1f}%")
    print(f"  Goodput: {stats['goodput']:.3f} frames/s")
