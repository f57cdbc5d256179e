from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .tuning import DAYS_PER_YEAR, SEASON_FACTOR

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
MINUTES_PER_DAY = MINUTES_PER_HOUR * HOURS_PER_DAY


@dataclass
class Clock:
    """In-game day/hour/minute counter. Only the tick driver advances it."""

    day: int = 0
    hour: int = 0
    minute: int = 0

    def increment(self) -> None:
        """Advance one minute, carrying into hour and day."""
        self.minute += 1
        if self.minute >= MINUTES_PER_HOUR:
            self.minute = 0
            self.hour += 1
            if self.hour >= HOURS_PER_DAY:
                self.hour = 0
                self.day += 1

    def increment_day(self) -> None:
        self.day += 1

    def minutes_to_midnight(self) -> int:
        return MINUTES_PER_DAY - (self.hour * MINUTES_PER_HOUR + self.minute)

    def ticks_until_day(self, day: int, ticks_per_minute: int = 4) -> int:
        """Ticks until the start of ``day`` (0 when it has already begun)."""
        if day <= self.day:
            return 0
        minutes = self.minutes_to_midnight() + (day - self.day - 1) * MINUTES_PER_DAY
        return minutes * ticks_per_minute

    def season_factor(self) -> float:
        return season_factor(self.day)

    def label(self) -> str:
        return f"Day {self.day} {self.hour:02d}:{self.minute:02d}"

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day, "hour": self.hour, "minute": self.minute}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Clock":
        return cls(
            day=max(0, int(data.get("day", 0))),
            hour=int(data.get("hour", 0)) % HOURS_PER_DAY,
            minute=int(data.get("minute", 0)) % MINUTES_PER_HOUR,
        )


def season_factor(day: int) -> float:
    """Power price divisor for the given day (higher is cheaper power)."""
    day_in_year = 0 if day <= 0 else (day - 1) % DAYS_PER_YEAR + 1
    return SEASON_FACTOR(day_in_year)
