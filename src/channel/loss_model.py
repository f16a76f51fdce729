"""
Bernoulli Loss Channel Model

This module decides, independently per transmission, whether a frame or
ACK is lost. Randomness comes from a seeded numpy generator or from an
injected uniform source, so tests can force exact loss sequences.
"""

import numpy as np
from typing import Callable, Iterable, List, Optional


class ChannelModel:
    """
    Memoryless loss channel.

    Attributes:
        rng: numpy random generator (unused when a source is injected)
        source: Zero-argument callable returning uniform floats in [0, 1)
        total_trials: Number of loss decisions taken
        total_drops: Number of decisions that dropped the message
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        source: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the channel.

        Args:
            seed: Random seed for reproducibility
            source: Injectable uniform random source (overrides the seed)
        """
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.source = source if source is not None else self.rng.random

        # Statistics tracking
        self.total_trials = 0
        self.total_drops = 0

    def should_drop(self, probability: float) -> bool:
        """
        Bernoulli trial: True with the given probability.

        Args:
            probability: Loss probability in [0, 1]

        Returns:
            True if the message is lost
        """
        self.total_trials += 1
        dropped = probability > 0 and self.source() < probability
        if dropped:
            self.total_drops += 1
        return dropped

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        return {
            'trials': self.total_trials,
            'drops': self.total_drops,
            'observed_loss_rate': (self.total_drops / self.total_trials
                                   if self.total_trials > 0 else 0.0)
        }

    def reset_statistics(self):
        self.total_trials = 0
        self.total_drops = 0

    def reset(self, seed: Optional[int] = None):
        """
        Reset the channel statistics and, if given, reseed the generator.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.seed = seed
            self.rng = np.random.default_rng(seed)
            self.source = self.rng.random
        self.reset_statistics()


class ScriptedChannel(ChannelModel):
    """
    Channel that replays a fixed loss pattern.

    Each ``should_drop`` call consumes the next outcome regardless of the
    probability; once the script is exhausted every message gets through.
    """

    def __init__(self, outcomes: Iterable[bool] = ()):
        super().__init__(seed=0)
        self.outcomes: List[bool] = list(outcomes)
        self._position = 0

    def should_drop(self, probability: float) -> bool:
        self.total_trials += 1
        if self._position >= len(self.outcomes):
            return False
        dropped = bool(self.outcomes[self._position])
        self._position += 1
        if dropped:
            self.total_drops += 1
        return dropped

    @property
    def remaining(self) -> int:
        return len(self.outcomes) - self._position

    def reset(self, seed: Optional[int] = None):
        self._position = 0
        self.reset_statistics()


def simulate_loss_pattern(channel: ChannelModel, probability: float, trials: int) -> List[bool]:
    """
    Run a sequence of loss decisions.

    Args:
        channel: Channel instance
        probability: Loss probability per trial
        trials: Number of trials

    Returns:
        List of booleans (True = lost)
    """
    return [channel.should_drop(probability) for _ in range(trials)]


if __name__ == "__main__":
    print("=" * 60)
    print("LOSS CHANNEL MODEL TEST")
    print("=" * 60)

    channel = ChannelModel(seed=42)
    for p in [0.0, 0.1, 0.3, 0.5, 1.0]:
        channel.reset_statistics()
        simulate_loss_pattern(channel, p, 10000)
        stats = channel.get_statistics()
        print(f"  p={p:.1f}: observed loss rate {stats['observed_loss_rate']:.4f}")
