"""
Visualization package - Plotting tools for sweep results.

Contains:
- Efficiency/goodput heatmaps over loss rates
"""

from .heatmap import EfficiencyHeatmap

__all__ = [
    'EfficiencyHeatmap'
]
