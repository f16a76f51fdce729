"""
Channel package - Lossy channel models.

Contains implementations for:
- Bernoulli (memoryless) loss channel
- Scripted channel replaying a fixed loss pattern
"""

from .loss_model import ChannelModel, ScriptedChannel

__all__ = [
    'ChannelModel',
    'ScriptedChannel'
]
