"""Serializable picture of a whole game, as stored under the save key."""
from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .clock import Clock
from .config import SimulationConfig
from .market import Market
from .rig import ResourceRig

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    """Raised when saved data cannot be turned back into a game."""


@dataclass
class GameSnapshot:
    market: Market
    clock: Clock
    rig: ResourceRig
    config: SimulationConfig = field(default_factory=SimulationConfig)
    chart: Dict[str, Any] = field(default_factory=dict)
    paused: bool = False
    selection: Optional[str] = None
    real_time: float = field(default_factory=time.time)  # unix seconds at save time
    ticks: int = 0
    dismiss_cooldown: int = 0
    version: int = SNAPSHOT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "market": self.market.to_dict(),
            "clock": self.clock.to_dict(),
            "rig": self.rig.to_dict(),
            "config": self.config.to_dict(),
            "chart": self.chart,
            "paused": self.paused,
            "selection": self.selection,
            "real_time": self.real_time,
            "ticks": self.ticks,
            "dismiss_cooldown": self.dismiss_cooldown,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameSnapshot":
        if not isinstance(data, dict):
            raise SnapshotError(f"expected a mapping, got {type(data).__name__}")
        try:
            return cls(
                market=Market.from_dict(data["market"]),
                clock=Clock.from_dict(data["clock"]),
                rig=ResourceRig.from_dict(data["rig"]),
                config=SimulationConfig.from_dict(data.get("config") or {}),
                chart=dict(data.get("chart") or {}),
                paused=bool(data.get("paused", False)),
                selection=data.get("selection"),
                real_time=float(data.get("real_time", time.time())),
                ticks=max(0, int(data.get("ticks", 0))),
                dismiss_cooldown=max(0, int(data.get("dismiss_cooldown", 0))),
                version=int(data.get("version", SNAPSHOT_VERSION)),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SnapshotError(f"malformed snapshot: {exc}") from exc

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "GameSnapshot":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(data)
