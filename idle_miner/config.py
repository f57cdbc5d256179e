from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .tuning import HISTORY_LENGTH, REJECT_CHANCE


@dataclass
class SimulationConfig:
    """Knobs for the tick driver and the market. Tunable from the API."""

    tick_ms: int = 50
    ticks_per_minute: int = 4  # clock advances one minute every N ticks
    ticks_per_day: int = 60  # market day boundary every N ticks
    lanes: int = 10  # live coins, one per chart lane
    starting_balance: float = 1000.0
    reject_chance: float = REJECT_CHANCE
    history_length: int = HISTORY_LENGTH

    def update(
        self,
        *,
        tick_ms: Optional[int] = None,
        ticks_per_minute: Optional[int] = None,
        ticks_per_day: Optional[int] = None,
        lanes: Optional[int] = None,
        starting_balance: Optional[float] = None,
        reject_chance: Optional[float] = None,
        history_length: Optional[int] = None,
    ) -> None:
        if tick_ms is not None:
            self.tick_ms = int(max(1, min(10_000, tick_ms)))
        if ticks_per_minute is not None:
            self.ticks_per_minute = int(max(1, min(1_000, ticks_per_minute)))
        if ticks_per_day is not None:
            self.ticks_per_day = int(max(1, min(100_000, ticks_per_day)))
        if lanes is not None:
            self.lanes = int(max(1, min(50, lanes)))
        if starting_balance is not None:
            self.starting_balance = float(max(0.0, starting_balance))
        if reject_chance is not None:
            self.reject_chance = float(max(0.0, min(0.5, reject_chance)))
        if history_length is not None:
            self.history_length = int(max(2, min(10_000, history_length)))

    @property
    def tick_seconds(self) -> float:
        return self.tick_ms / 1000.0

    @property
    def day_seconds(self) -> float:
        """Wall-clock length of one market day at full speed."""
        return self.tick_seconds * self.ticks_per_day

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls()
        cfg.update(**{k: v for k, v in data.items() if k in valid_keys})
        return cfg
