from __future__ import annotations

import random
from typing import Iterable, List, Optional, Protocol


class RandomSource(Protocol):
    """Anything that can hand out uniform floats in ``[low, high)``."""

    def uniform(self, low: float, high: float) -> float: ...


class SystemRandomSource:
    """OS entropy backed source, used by the live game."""

    def __init__(self) -> None:
        self._rng = random.SystemRandom()

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self._rng.random()


class SeededRandomSource:
    """Reproducible source for simulations and replays."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self._rng.random()


class ScriptedRandomSource:
    """Replays a fixed list of unit draws, cycling when exhausted.

    Each draw ``u`` in ``[0, 1)`` is scaled into the requested range, so a
    script of ``[0.5]`` always answers the midpoint.
    """

    def __init__(self, draws: Iterable[float]) -> None:
        self._draws: List[float] = [float(d) for d in draws]
        if not self._draws:
            raise ValueError("ScriptedRandomSource needs at least one draw")
        self._pos = 0
        self.calls = 0

    def uniform(self, low: float, high: float) -> float:
        u = self._draws[self._pos % len(self._draws)]
        self._pos += 1
        self.calls += 1
        return low + (high - low) * u


def chance(rng: RandomSource, probability: float) -> bool:
    """Bernoulli roll: True with the given probability."""
    if probability <= 0.0:
        return False
    return rng.uniform(0.0, 1.0) < probability
