from __future__ import annotations

import copy
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .asset import CryptoCoin
from .bank import Bank
from .clock import Clock
from .config import SimulationConfig
from .events import EventLog, Notice, PowerRefilled
from .formatting import format_hashrate, format_money
from .market import Market
from .outcomes import Outcome
from .rig import ResourceRig
from .rng import RandomSource, SystemRandomSource
from .snapshot import GameSnapshot
from .tuning import DISMISS_COOLDOWN_TICKS, SHARE_COOLDOWN_TICKS

logger = logging.getLogger(__name__)

UPGRADE_KINDS = ("rig", "cpu", "gpu", "asic", "auto_fill", "rug_insurance")


class Simulation:
    """Holds one game: market, rig, clock and selection, plus the tick driver.

    Everything the presentation layer needs goes through this object. It owns
    no threads and does no I/O; callers decide when to tick and where to save.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        *,
        rng: Optional[RandomSource] = None,
        events: Optional[EventLog] = None,
        cooldown_schedule: Callable[[int], float] = SHARE_COOLDOWN_TICKS,
        market: Optional[Market] = None,
        rig: Optional[ResourceRig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.rng = rng or SystemRandomSource()
        self.events = events if events is not None else EventLog()
        self.cooldown_schedule = cooldown_schedule
        self.market = market or Market(
            bank=Bank(self.config.starting_balance), history_length=self.config.history_length
        )
        self.rig = rig or ResourceRig()
        self.clock = clock or Clock()
        self.selection: Optional[str] = None
        self.paused = False
        self.ticks = 0
        self.dismiss_cooldown = 0
        self.last_seen = time.time()
        self._pending_seconds = 0.0

    @classmethod
    def new_game(cls, config: Optional[SimulationConfig] = None, **kwargs: Any) -> "Simulation":
        sim = cls(config, **kwargs)
        sim.seed_market()
        return sim

    @property
    def bank(self) -> Bank:
        return self.market.bank

    def seed_market(self) -> None:
        self.market.seed(self.config.lanes, self.rig.level, self.clock.day, self.rng)
        self.refresh_profit_factors()
        logger.info("seeded %d coins", len(self.market.assets))

    # -- tick driver --
    @property
    def share_cooldown_ticks(self) -> int:
        return max(0, int(self.cooldown_schedule(self.rig.level)))

    def tick(self) -> None:
        """One fixed-rate tick: clock, maybe a market day, then mining."""
        if self.paused:
            return
        self.ticks += 1
        if self.ticks % self.config.ticks_per_minute == 0:
            self.clock.increment()
        if self.ticks % self.config.ticks_per_day == 0:
            self.day_boundary()
        self.mine()
        if self.dismiss_cooldown > 0:
            self.dismiss_cooldown -= 1

    def step(self, dt: float) -> int:
        """Advance by ``dt`` wall seconds; returns the number of ticks fired."""
        if self.paused or dt <= 0:
            return 0
        self._pending_seconds += dt
        fired = 0
        tick_seconds = self.config.tick_seconds
        while self._pending_seconds >= tick_seconds:
            self._pending_seconds -= tick_seconds
            self.tick()
            fired += 1
        return fired

    def day_boundary(self) -> None:
        day = self.clock.day
        self.market.update_prices(self.rng)
        self.market.cull(self.rig.level, day, self.rng, self.events)
        self.market.rug_pull_pass(self.rig, day, self.rng, self.events)
        self._drop_stale_selection()
        self.refresh_profit_factors()
        logger.debug("market day closed at %s", self.clock.label())

    def simulate_market_day(self) -> None:
        """Offline market day: clock and prices move, nothing is mined."""
        for _ in range(self.config.ticks_per_day // self.config.ticks_per_minute):
            self.clock.increment()
        self.ticks += self.config.ticks_per_day
        self.day_boundary()

    def mine(self) -> int:
        """Mining half of a tick. Returns shares accepted."""
        self._drop_stale_selection()

        if not self.rig.consume_power():
            if not self.rig.service_auto_fill(self.bank, self.clock.day, self.events):
                return 0

        # Without rug insurance every coin waits on the longest outstanding cooldown.
        if self.rig.global_share_cooldown:
            waiting = self.market.longest_cooldown_asset()
            if waiting is not None:
                waiting.decrement_share_cooldown()
                return 0
        else:
            self.market.decrement_all_cooldowns()

        coin = self.selected_asset
        if coin is None:
            return 0
        return coin.hash_coin(
            self.rig.hash_rate,
            self.rng,
            cooldown_ticks=self.share_cooldown_ticks,
            reject_chance=self.config.reject_chance,
            sink=self.events,
        )

    def refresh_profit_factors(self) -> None:
        self.market.refresh_profit_factors(
            self.rig.hash_rate, self.share_cooldown_ticks, self.config.tick_seconds
        )

    # -- selection --
    @property
    def selected_asset(self) -> Optional[CryptoCoin]:
        if self.selection is None:
            return None
        return self.market.get_by_name(self.selection)

    def _drop_stale_selection(self) -> None:
        if self.selection is not None and self.market.get_by_name(self.selection) is None:
            logger.debug("selection %s is gone, clearing", self.selection)
            self.selection = None

    def select(self, name: str) -> Outcome:
        if self.market.get_by_name(name) is None:
            return Outcome.UNKNOWN_ASSET
        self.selection = name
        return Outcome.OK

    def select_index(self, index: int) -> Outcome:
        coin = self.market.get_by_index(index)
        if coin is None:
            return Outcome.UNKNOWN_ASSET
        self.selection = coin.name
        return Outcome.OK

    def deselect(self) -> None:
        self.selection = None

    # -- trading --
    def sell(self, name: str, amount: Optional[float] = None) -> Outcome:
        coin = self.market.get_by_name(name)
        proceeds = 0.0
        if coin is not None:
            proceeds = (coin.balance if amount is None else amount) * coin.current_price
        outcome = self.market.sell(name, amount)
        if outcome:
            self.events.emit(Notice(f"Sold {name} for {format_money(proceeds)}"))
        return outcome

    def buy(self, name: str, amount: Optional[float] = None) -> Outcome:
        outcome = self.market.buy(name, amount)
        if outcome:
            self.events.emit(Notice(f"Bought {name}"))
        return outcome

    def dismiss(self, name: str) -> Outcome:
        """Delist an empty coin by hand and list a fresh one in its slot."""
        coin = self.market.get_by_name(name)
        if coin is None:
            return Outcome.UNKNOWN_ASSET
        if coin.balance > 0:
            return Outcome.INVALID_AMOUNT
        if self.dismiss_cooldown > 0:
            return Outcome.LOCKED
        replacement = self.market.replace(coin, self.rig.level, self.clock.day, self.rng, self.events)
        replacement.update_price(self.rng)
        self.dismiss_cooldown = DISMISS_COOLDOWN_TICKS
        self._drop_stale_selection()
        self.refresh_profit_factors()
        self.events.emit(Notice(f"Dismissed {name}"))
        return Outcome.OK

    # -- upgrades --
    def _purchase(self, label: str, check: Callable[[], Outcome], cost: float, apply: Callable[[], Any]) -> Outcome:
        outcome = check()
        if not outcome:
            return outcome
        if not self.bank.withdraw(cost):
            return Outcome.INSUFFICIENT_FUNDS
        apply()
        self.refresh_profit_factors()
        self.events.emit(Notice(f"{label} upgraded for {format_money(cost)}"))
        return Outcome.OK

    def upgrade_rig(self) -> Outcome:
        return self._purchase("Rig", lambda: Outcome.OK, self.rig.rig_upgrade_cost, self.rig.upgrade)

    def upgrade_cpu(self) -> Outcome:
        return self._purchase("CPU", self.rig.check_cpu_upgrade, self.rig.cpu_upgrade_cost, self.rig.upgrade_cpu)

    def upgrade_gpu(self) -> Outcome:
        return self._purchase("GPU", self.rig.check_gpu_upgrade, self.rig.gpu_upgrade_cost, self.rig.upgrade_gpu)

    def upgrade_asic(self) -> Outcome:
        return self._purchase("ASIC", self.rig.check_asic_upgrade, self.rig.asic_upgrade_cost, self.rig.upgrade_asic)

    def upgrade_auto_fill(self) -> Outcome:
        return self._purchase(
            "Auto-fill",
            self.rig.check_auto_fill_upgrade,
            self.rig.auto_fill_upgrade_cost,
            self.rig.upgrade_auto_fill,
        )

    def upgrade_rug_insurance(self) -> Outcome:
        return self._purchase(
            "Rug insurance",
            self.rig.check_rug_insurance_upgrade,
            self.rig.rug_insurance_upgrade_cost,
            self.rig.upgrade_rug_insurance,
        )

    def upgrade(self, kind: str) -> Outcome:
        if kind not in UPGRADE_KINDS:
            raise ValueError(f"unknown upgrade kind: {kind!r}")
        return getattr(self, f"upgrade_{kind}")()

    def upgrade_preview(self) -> Dict[str, Dict[str, Any]]:
        """Cost, current level and availability of every upgrade track."""
        rig = self.rig
        rows = {
            "rig": (rig.level, rig.rig_upgrade_cost, Outcome.OK),
            "cpu": (rig.cpu.level, rig.cpu_upgrade_cost, rig.check_cpu_upgrade()),
            "gpu": (rig.gpu.amount, rig.gpu_upgrade_cost, rig.check_gpu_upgrade()),
            "asic": (rig.asic.amount, rig.asic_upgrade_cost, rig.check_asic_upgrade()),
            "auto_fill": (rig.auto_fill_level, rig.auto_fill_upgrade_cost, rig.check_auto_fill_upgrade()),
            "rug_insurance": (
                rig.rug_insurance_level,
                rig.rug_insurance_upgrade_cost,
                rig.check_rug_insurance_upgrade(),
            ),
        }
        preview = {}
        for kind, (level, cost, outcome) in rows.items():
            preview[kind] = {
                "level": level,
                "next_level": level + 1,
                "cost": cost,
                "available": outcome.ok,
                "outcome": outcome.value,
                "affordable": self.bank.can_afford(cost),
            }
        return preview

    # -- power --
    def fill_power(self) -> Outcome:
        cost = self.rig.power_fill_cost(self.clock.day)
        if not self.bank.withdraw(cost):
            return Outcome.INSUFFICIENT_FUNDS
        self.rig.fill_power()
        self.events.emit(PowerRefilled(cost=cost, fraction=1.0, automatic=False))
        return Outcome.OK

    def click_fill(self) -> Outcome:
        self.rig.click_fill()
        return Outcome.OK

    def toggle_auto_fill(self) -> Outcome:
        return self.rig.toggle_auto_fill()

    def set_slot_active(self, kind: str, active: bool) -> Outcome:
        if kind not in ("cpu", "gpu", "asic"):
            raise ValueError(f"unknown hardware slot: {kind!r}")
        self.rig.set_slot_active(kind, active)
        self.refresh_profit_factors()
        return Outcome.OK

    def configure(self, **overrides: Any) -> None:
        """Apply config overrides to the running game."""
        self.config.update(**overrides)
        if self.market.history_length != self.config.history_length:
            self.market.set_history_length(self.config.history_length)
        self._pending_seconds = 0.0
        self.refresh_profit_factors()

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        self._pending_seconds = 0.0
        return self.paused

    # -- queries --
    @property
    def hash_rate(self) -> float:
        return self.rig.hash_rate

    def progress(self, name: str) -> Optional[Dict[str, float]]:
        coin = self.market.get_by_name(name)
        if coin is None:
            return None
        return {
            "share": coin.share_progress,
            "block": coin.block_progress,
            "power": self.rig.power_fill,
        }

    def get_terminal_logs(self, last: int = 200) -> List[str]:
        return self.events.tail(last)

    def status(self) -> Dict[str, Any]:
        rig = self.rig
        return {
            "balance": self.bank.balance,
            "portfolio_value": self.market.portfolio_value,
            "clock": self.clock.to_dict(),
            "clock_label": self.clock.label(),
            "season_factor": self.clock.season_factor(),
            "paused": self.paused,
            "selection": self.selection,
            "hash_rate": rig.hash_rate,
            "hash_rate_label": format_hashrate(rig.hash_rate),
            "rig": {
                "level": rig.level,
                "power": rig.available_power,
                "power_capacity": rig.power_capacity,
                "power_fill": rig.power_fill,
                "power_fill_cost": rig.power_fill_cost(self.clock.day),
                "auto_fill_level": rig.auto_fill_level,
                "auto_fill_active": rig.auto_fill_active,
                "auto_fill_cost": rig.auto_fill_cost(self.clock.day),
                "rug_insurance_level": rig.rug_insurance_level,
                "rug_insurance_fraction": rig.rug_insurance_fraction,
                "global_share_cooldown": rig.global_share_cooldown,
            },
            "dismiss_cooldown": self.dismiss_cooldown,
        }

    # -- persistence --
    def snapshot(self, now: Optional[float] = None) -> GameSnapshot:
        """Detached copy of the game; later ticks do not touch it."""
        self.last_seen = time.time() if now is None else now
        return GameSnapshot(
            market=copy.deepcopy(self.market),
            clock=copy.deepcopy(self.clock),
            rig=copy.deepcopy(self.rig),
            config=copy.deepcopy(self.config),
            chart=self.market.chart(),
            paused=self.paused,
            selection=self.selection,
            real_time=self.last_seen,
            ticks=self.ticks,
            dismiss_cooldown=self.dismiss_cooldown,
        )

    def restore(self, snap: GameSnapshot) -> None:
        self.market = copy.deepcopy(snap.market)
        self.clock = copy.deepcopy(snap.clock)
        self.rig = copy.deepcopy(snap.rig)
        self.config = copy.deepcopy(snap.config)
        self.paused = snap.paused
        self.selection = snap.selection
        self.ticks = snap.ticks
        self.dismiss_cooldown = snap.dismiss_cooldown
        self.last_seen = snap.real_time
        self._pending_seconds = 0.0
        self._drop_stale_selection()
        self.refresh_profit_factors()

    @classmethod
    def from_snapshot(cls, snap: GameSnapshot, **kwargs: Any) -> "Simulation":
        sim = cls(snap.config, **kwargs)
        sim.restore(snap)
        return sim

    def days_behind(self, now: Optional[float] = None) -> int:
        """Whole market days of wall time elapsed since the last save."""
        now = time.time() if now is None else now
        elapsed = max(0.0, now - self.last_seen)
        return int(elapsed // self.config.day_seconds)
