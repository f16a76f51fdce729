"""
Simulation package - Simulation driver and sweep runner.

Contains:
- Single-run simulator on the virtual clock
- Batch runner for loss-rate sweeps
"""

from .simulator import Simulator, run_simulation
from .runner import BatchRunner, SweepPoint, run_single_simulation

__all__ = [
    'Simulator',
    'run_simulation',
    'BatchRunner',
    'SweepPoint',
    'run_single_simulation'
]
