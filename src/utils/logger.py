"""
Simulation Logger

Leveled console logger for protocol runs. Every line is stamped with the
virtual clock of the run (or wall-clock time before a run starts) and
tagged with a category such as TX, ACK or TIMER.
"""

from typing import Optional, TextIO
from datetime import datetime
from enum import IntEnum
import sys

from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


# ANSI colour per level
LEVEL_COLORS = {
    LogLevel.DEBUG: '\033[36m',
    LogLevel.INFO: '\033[32m',
    LogLevel.WARNING: '\033[33m',
    LogLevel.ERROR: '\033[31m',
    LogLevel.CRITICAL: '\033[35m',
}
COLOR_RESET = '\033[0m'


class SimulationLogger:
    """
    Logger for protocol events.

    Attributes:
        name: Logger name shown on every line
        level: Minimum log level
        stream: Output stream (stdout by default)
        sim_time: Virtual time in seconds, None outside a run
        message_counts: Lines written per level
    """

    def __init__(
        self,
        name: str = "Simulator",
        level: int = DEFAULT_LOG_LEVEL,
        use_colors: bool = True,
        include_timestamp: bool = True,
        stream: Optional[TextIO] = None
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            use_colors: Colour the level name with ANSI codes
            include_timestamp: Prefix lines with the simulation time
            stream: Stream to write to (sys.stdout at write time if None)
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp
        self.stream = stream
        self.sim_time: Optional[float] = None
        self.message_counts = {lvl: 0 for lvl in LogLevel}

    def set_sim_time(self, time: float):
        """Set current simulation time (seconds) for log messages."""
        self.sim_time = time

    def set_level(self, level: int):
        self.level = level

    def is_enabled(self, level: int) -> bool:
        return level >= self.level

    def _stamp(self) -> str:
        if self.sim_time is None:
            return f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]"
        return f"[{self.sim_time:10.3f}s]"

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ) -> str:
        level_name = level.name.ljust(8)
        if self.use_colors:
            level_name = f"{LEVEL_COLORS[level]}{level_name}{COLOR_RESET}"

        parts = [self._stamp()] if self.include_timestamp else []
        parts += [level_name, f"[{self.name}]"]
        if category:
            parts.append(f"[{category}]")
        parts.append(message)
        return " ".join(parts)

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ):
        if not self.is_enabled(level):
            return
        self.message_counts[level] += 1
        (self.stream or sys.stdout).write(self._format_message(level, message, category) + '\n')

    def debug(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Optional[str] = None):
        self._log(LogLevel.CRITICAL, message, category)

    # Convenience methods for protocol events
    def frame_sent(self, seq: int, payload: str, tx_id: int, retransmit: bool = False):
        """Log frame sent event."""
        suffix = " (retransmit)" if retransmit else ""
        self.debug(f"SENDER -> Frame {seq} '{payload}' tx={tx_id}{suffix}", "TX")

    def frame_lost(self, seq: int):
        self.info(f"Frame {seq} lost. Waiting for timeout.", "LOST")

    def frame_received(self, seq: int, payload: str, duplicate: bool):
        """Log frame received event."""
        status = "DUPLICATE, re-ACK last received" if duplicate else "in order"
        self.debug(f"RECEIVER <- Frame {seq} '{payload}', {status}", "RX")

    def ack_sent(self, seq: int, for_payload: str):
        """Log ACK sent event."""
        self.debug(f"ACK {seq} sent (for {for_payload})", "ACK")

    def ack_lost(self, seq: int):
        self.info(f"ACK {seq} lost.", "LOST")

    def ack_accepted(self, seq: int):
        """Log ACK received event."""
        self.debug(f"SENDER <- ACK {seq} received", "ACK")

    def ack_rejected(self, seq: int, reason: str, expected: Optional[int]):
        self.warning(f"Late or invalid ACK {seq} ignored "
                     f"(reason={reason}, expected seq={expected})", "ACK")

    def timeout_armed(self, duration_ms: float, rtt_ms: float):
        self.debug(f"Timeout scheduled: {duration_ms:.0f} ms "
                   f"(expected RTT ~ {rtt_ms:.0f} ms)", "TIMER")

    def timeout_cleared(self, seq: int):
        self.debug(f"Timeout cleared - ACK {seq} arrived in time", "TIMER")

    def timeout(self, seq: int, retransmit_count: int):
        """Log timeout event."""
        self.warning(f"Timeout for frame {seq} - no ACK (retx #{retransmit_count})", "TIMEOUT")

    def retransmit(self, seq: int):
        """Log retransmission event."""
        self.info(f"Retransmitting frame {seq}", "RETX")

    def simulation_start(self, params: dict):
        """Log simulation start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        """Log simulation end."""
        self.info(f"Complete. Successful: {metrics.get('successful_deliveries', 0)}"
                  f"/{metrics.get('frame_count', 0)}. "
                  f"Duration {metrics.get('duration', 0):.2f}s. "
                  f"Efficiency {metrics.get('efficiency', 0) * 100:.1f}%", "SIM")

    def get_summary(self) -> dict:
        """Get logging summary."""
        return {
            'message_counts': dict(self.message_counts),
            'total_messages': sum(self.message_counts.values())
        }


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger


def set_logger(logger: Optional[SimulationLogger]):
    """Set global logger instance (None restores the lazy default)."""
    global _global_logger
    _global_logger = logger
