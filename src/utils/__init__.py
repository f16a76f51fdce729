"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Run statistics (efficiency, goodput)
- Logging utilities
"""

from .metrics import StatisticsCollector, RunStatistics
from .logger import SimulationLogger, LogLevel

__all__ = [
    'StatisticsCollector',
    'RunStatistics',
    'SimulationLogger',
    'LogLevel'
]
