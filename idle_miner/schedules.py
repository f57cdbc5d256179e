"""Ordered lookup tables for tuning curves.

Every curve in the game is a list of level bands, each carrying its own
linear formula. Keeping them as data means a table can be checked band by
band without touching the code that consumes it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Band:
    """Inclusive level range ``[start, end]`` with ``base + (level - anchor) * step``.

    ``end=None`` leaves the band open-ended. ``anchor`` defaults to ``start``;
    an anchor of 0 turns the formula into a plain ``step * level``.
    """

    start: int
    end: Optional[int]
    base: float
    step: float = 0.0
    anchor: Optional[int] = None

    def contains(self, level: int) -> bool:
        if level < self.start:
            return False
        return self.end is None or level <= self.end

    def value(self, level: int) -> float:
        anchor = self.start if self.anchor is None else self.anchor
        return self.base + (level - anchor) * self.step


class PiecewiseSchedule:
    """First matching band wins; levels outside every band get ``default``."""

    def __init__(self, bands: Sequence[Band], default: float = 0.0) -> None:
        ordered = sorted(bands, key=lambda b: b.start)
        for prev, nxt in zip(ordered, ordered[1:]):
            if prev.end is None or prev.end >= nxt.start:
                raise ValueError(f"overlapping bands: {prev} / {nxt}")
        self.bands: Tuple[Band, ...] = tuple(ordered)
        self.default = float(default)

    def band_for(self, level: int) -> Optional[Band]:
        for band in self.bands:
            if band.contains(level):
                return band
        return None

    def __call__(self, level: int) -> float:
        band = self.band_for(level)
        if band is None:
            return self.default
        return band.value(level)


@dataclass(frozen=True)
class SlotBand:
    """Hardware slot cap band: ``base + increments * multiplier``.

    Caps grow on every second rig level inside the band.
    """

    start: int
    end: Optional[int]
    base: int
    multiplier: int

    def contains(self, level: int) -> bool:
        return level >= self.start and (self.end is None or level <= self.end)


class SlotCapTable:
    def __init__(
        self,
        bands: Sequence[SlotBand],
        unlock_level: int,
        first_increment_below: Optional[int] = None,
    ) -> None:
        self.bands = tuple(bands)
        self.unlock_level = unlock_level
        # Below this level a band's first level already grants one increment.
        # None means it always does.
        self.first_increment_below = first_increment_below

    def __call__(self, level: int) -> int:
        if level < self.unlock_level:
            return 0
        # Levels that fall in a gap between bands keep the cap of the level below.
        probe = level
        while probe >= self.unlock_level:
            for band in self.bands:
                if band.contains(probe):
                    steps = (probe - band.start) // 2
                    if self.first_increment_below is None or probe < self.first_increment_below:
                        steps += 1
                    return band.base + steps * band.multiplier
            probe -= 1
        return 0


class Tiers(Generic[T]):
    """Ascending ``(upper_bound, value)`` tiers; the last value covers the rest."""

    def __init__(self, tiers: Sequence[Tuple[float, T]]) -> None:
        if not tiers:
            raise ValueError("Tiers needs at least one tier")
        self.tiers: List[Tuple[float, T]] = list(tiers)

    def __call__(self, x: float) -> T:
        for upper, value in self.tiers:
            if x <= float(upper):
                return value
        return self.tiers[-1][1]
