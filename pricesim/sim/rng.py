from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from typing import Optional


class RandomSource(ABC):
    """
    Random-number contract used by every simulator in this package.

    Implementations only need uniform(); normal() is derived from it with
    the Box-Muller transform so a scripted uniform stream fully determines
    the output.
    """

    @abstractmethod
    def uniform(self) -> float:
        """Return a float in [0, 1)."""
        raise NotImplementedError

    def uniform_between(self, low: float, high: float) -> float:
        return low + (high - low) * self.uniform()

    def normal(self) -> float:
        """Standard normal deviate (Box-Muller, cosine branch)."""
        u = 0.0
        v = 0.0
        # log(0) is undefined, redraw zeros.
        while u == 0.0:
            u = self.uniform()
        while v == 0.0:
            v = self.uniform()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


class SystemRandomSource(RandomSource):
    """Production source backed by random.Random (Mersenne Twister)."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def uniform(self) -> float:
        return self._rng.random()
