"""The player's mining rig: hardware slots, power economy and rig upgrades."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .bank import Bank
from .clock import season_factor
from .events import EventSink, NullSink, PowerRefilled
from .outcomes import Outcome
from .tuning import (
    ASIC_UNLOCK_LEVEL,
    ASIC_UPGRADE_COST,
    AUTO_FILL_DELAY_TICKS,
    AUTO_FILL_FEE,
    AUTO_FILL_FRACTION,
    AUTO_FILL_MAX_LEVEL,
    AUTO_FILL_UPGRADE_COST,
    CLICK_FILL_FRACTION,
    CPU_MAX_LEVEL,
    CPU_UNLOCK_LEVEL,
    CPU_UPGRADE_COST,
    GPU_UNLOCK_LEVEL,
    GPU_UPGRADE_COST,
    HARDWARE,
    MAX_ASIC_SLOTS,
    MAX_GPU_SLOTS,
    POWER_CAPACITY_FACTOR,
    POWER_DRAW_DIVISOR,
    RIG_UPGRADE_COST,
    RUG_INSURANCE_ACTIVATION_COST,
    RUG_INSURANCE_FRACTION,
    RUG_INSURANCE_UNLOCK_LEVEL,
    RUG_INSURANCE_UPGRADE_COST,
)

logger = logging.getLogger(__name__)


@dataclass
class CpuSlot:
    level: int = 1
    active: bool = True

    def upgrade(self) -> bool:
        if self.level >= CPU_MAX_LEVEL:
            return False
        self.level += 1
        return True

    @property
    def power_draw(self) -> float:
        return HARDWARE["cpu"].power_per_unit * self.level if self.active else 0.0

    @property
    def hash_rate(self) -> float:
        return HARDWARE["cpu"].hash_per_unit * self.level if self.active else 0.0


@dataclass
class UnitSlot:
    """GPU or ASIC bay. Each upgrade installs one more unit."""

    kind: str
    level: int = 1
    amount: int = 0
    active: bool = True

    def add_unit(self) -> None:
        self.level += 1
        self.amount += 1

    @property
    def power_draw(self) -> float:
        return HARDWARE[self.kind].power_per_unit * self.amount if self.active else 0.0

    @property
    def hash_rate(self) -> float:
        return HARDWARE[self.kind].hash_per_unit * self.amount if self.active else 0.0


@dataclass
class AutoPowerFill:
    level: int = 1
    active: bool = True
    refill_countdown: Optional[int] = None  # ticks left before the next refill attempt


@dataclass
class RugInsurance:
    level: int = 1
    active: bool = False

    def upgrade(self) -> None:
        # The first purchase switches it on; later ones raise the level.
        if not self.active:
            self.active = True
            return
        self.level += 1


@dataclass
class ResourceRig:
    level: int = 1
    available_power: float = 0.0
    cpu: CpuSlot = field(default_factory=CpuSlot)
    gpu: UnitSlot = field(default_factory=lambda: UnitSlot("gpu"))
    asic: UnitSlot = field(default_factory=lambda: UnitSlot("asic"))
    click_fill_fraction: float = CLICK_FILL_FRACTION
    auto_fill: Optional[AutoPowerFill] = None
    rug_insurance: RugInsurance = field(default_factory=RugInsurance)

    # -- hardware --
    @property
    def hash_rate(self) -> float:
        return self.cpu.hash_rate + self.gpu.hash_rate + self.asic.hash_rate

    @property
    def power_draw(self) -> float:
        return self.cpu.power_draw + self.gpu.power_draw + self.asic.power_draw

    @property
    def max_gpu_slots(self) -> int:
        return MAX_GPU_SLOTS(self.level)

    @property
    def max_asic_slots(self) -> int:
        return MAX_ASIC_SLOTS(self.level)

    def set_slot_active(self, kind: str, active: bool) -> None:
        slot = {"cpu": self.cpu, "gpu": self.gpu, "asic": self.asic}[kind]
        slot.active = bool(active)
        self._clamp_power()

    # -- power --
    @property
    def power_capacity(self) -> float:
        """Capacity tracks the installed hardware rather than a stored number."""
        return self.power_draw * POWER_CAPACITY_FACTOR

    @property
    def power_per_tick(self) -> float:
        return self.power_draw / POWER_DRAW_DIVISOR

    @property
    def power_fill(self) -> float:
        capacity = self.power_capacity
        if capacity <= 0:
            return 0.0
        return self.available_power / capacity

    def _clamp_power(self) -> None:
        self.available_power = max(0.0, min(self.available_power, self.power_capacity))

    def consume_power(self) -> bool:
        """Burn one tick of power. False (and nothing burnt) when short."""
        usage = self.power_per_tick
        if self.available_power >= usage:
            self.available_power -= usage
            return True
        return False

    def power_fill_cost(self, day: int) -> float:
        return max(0.0, self.power_capacity - self.available_power) / season_factor(day)

    def fill_power(self) -> None:
        self.available_power = self.power_capacity

    def fill_to_fraction(self, fraction: float) -> None:
        self.available_power = self.power_capacity * max(0.0, min(1.0, fraction))

    def click_fill(self) -> None:
        self.available_power = min(
            self.power_capacity, self.available_power + self.power_capacity * self.click_fill_fraction
        )

    # -- rig level --
    @property
    def rig_upgrade_cost(self) -> float:
        return RIG_UPGRADE_COST(self.level)

    def upgrade(self) -> None:
        self.level += 1
        self.fill_power()

    # -- CPU / GPU / ASIC --
    @property
    def cpu_upgrade_cost(self) -> float:
        return CPU_UPGRADE_COST(self.cpu.level)

    @property
    def gpu_upgrade_cost(self) -> float:
        return GPU_UPGRADE_COST(self.gpu.level)

    @property
    def asic_upgrade_cost(self) -> float:
        return ASIC_UPGRADE_COST(self.asic.level)

    def check_cpu_upgrade(self) -> Outcome:
        if self.level < CPU_UNLOCK_LEVEL:
            return Outcome.LOCKED
        if self.cpu.level >= CPU_MAX_LEVEL:
            return Outcome.MAX_LEVEL
        return Outcome.OK

    def check_gpu_upgrade(self) -> Outcome:
        if self.level < GPU_UNLOCK_LEVEL:
            return Outcome.LOCKED
        if self.gpu.amount >= self.max_gpu_slots:
            return Outcome.SLOT_EXHAUSTED
        return Outcome.OK

    def check_asic_upgrade(self) -> Outcome:
        if self.level < ASIC_UNLOCK_LEVEL:
            return Outcome.LOCKED
        if self.asic.amount >= self.max_asic_slots:
            return Outcome.SLOT_EXHAUSTED
        return Outcome.OK

    def upgrade_cpu(self) -> Outcome:
        outcome = self.check_cpu_upgrade()
        if outcome.ok:
            self.cpu.upgrade()
        return outcome

    def upgrade_gpu(self) -> Outcome:
        outcome = self.check_gpu_upgrade()
        if outcome.ok:
            self.gpu.add_unit()
        return outcome

    def upgrade_asic(self) -> Outcome:
        outcome = self.check_asic_upgrade()
        if outcome.ok:
            self.asic.add_unit()
        return outcome

    # -- auto power fill --
    @property
    def auto_fill_level(self) -> int:
        return self.auto_fill.level if self.auto_fill is not None else 0

    @property
    def auto_fill_active(self) -> bool:
        return self.auto_fill is not None and self.auto_fill.active

    @property
    def auto_fill_upgrade_cost(self) -> float:
        return AUTO_FILL_UPGRADE_COST(self.auto_fill_level)

    @property
    def auto_fill_delay_ticks(self) -> int:
        return int(AUTO_FILL_DELAY_TICKS(self.auto_fill_level))

    @property
    def auto_fill_fraction(self) -> float:
        return min(1.0, AUTO_FILL_FRACTION(self.auto_fill_level))

    @property
    def auto_fill_fee(self) -> float:
        return AUTO_FILL_FEE(self.auto_fill_level)

    def auto_fill_cost(self, day: int) -> float:
        refill = self.power_capacity / season_factor(day)
        return refill * (1.0 + self.auto_fill_fee) * self.auto_fill_fraction

    def check_auto_fill_upgrade(self) -> Outcome:
        if self.auto_fill_level >= AUTO_FILL_MAX_LEVEL:
            return Outcome.MAX_LEVEL
        return Outcome.OK

    def upgrade_auto_fill(self) -> Outcome:
        outcome = self.check_auto_fill_upgrade()
        if not outcome.ok:
            return outcome
        if self.auto_fill is None:
            self.auto_fill = AutoPowerFill()
        else:
            self.auto_fill.level += 1
        return outcome

    def toggle_auto_fill(self) -> Outcome:
        if self.auto_fill is None:
            return Outcome.LOCKED
        self.auto_fill.active = not self.auto_fill.active
        self.auto_fill.refill_countdown = None
        return Outcome.OK

    def service_auto_fill(self, bank: Bank, day: int, sink: EventSink = NullSink()) -> bool:
        """Run the refill automaton for one powerless tick.

        Returns True when the rig was refilled and can mine this tick. While
        the countdown runs it ticks down; once it hits zero every tick tries
        to pay until the bank can cover the refill.
        """
        fill = self.auto_fill
        if fill is None or not fill.active:
            return False

        if fill.refill_countdown is None:
            delay = self.auto_fill_delay_ticks
            if delay > 0:
                fill.refill_countdown = delay
                return False
            fill.refill_countdown = 0

        if fill.refill_countdown > 0:
            fill.refill_countdown -= 1
            return False

        cost = self.auto_fill_cost(day)
        if not bank.withdraw(cost):
            logger.debug("auto-fill: cannot afford %.4f (balance %.4f)", cost, bank.balance)
            return False

        fraction = self.auto_fill_fraction
        self.fill_to_fraction(fraction)
        fill.refill_countdown = None
        sink.emit(PowerRefilled(cost=cost, fraction=fraction, automatic=True))
        return True

    # -- rug insurance --
    @property
    def rug_insurance_active(self) -> bool:
        return self.rug_insurance.active

    @property
    def rug_insurance_level(self) -> int:
        return self.rug_insurance.level if self.rug_insurance.active else 0

    @property
    def rug_insurance_fraction(self) -> float:
        if self.level < RUG_INSURANCE_UNLOCK_LEVEL or not self.rug_insurance.active:
            return 0.0
        return RUG_INSURANCE_FRACTION(self.rug_insurance.level)

    @property
    def rug_insurance_upgrade_cost(self) -> float:
        if not self.rug_insurance.active:
            return RUG_INSURANCE_ACTIVATION_COST
        return RUG_INSURANCE_UPGRADE_COST(self.rug_insurance.level)

    @property
    def global_share_cooldown(self) -> bool:
        """Coins share one cooldown until rug insurance is bought."""
        return not self.rug_insurance.active

    def check_rug_insurance_upgrade(self) -> Outcome:
        if self.level < RUG_INSURANCE_UNLOCK_LEVEL:
            return Outcome.LOCKED
        return Outcome.OK

    def upgrade_rug_insurance(self) -> Outcome:
        outcome = self.check_rug_insurance_upgrade()
        if outcome.ok:
            self.rug_insurance.upgrade()
        return outcome

    # -- persistence --
    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "available_power": self.available_power,
            "cpu": {"level": self.cpu.level, "active": self.cpu.active},
            "gpu": {"level": self.gpu.level, "amount": self.gpu.amount, "active": self.gpu.active},
            "asic": {"level": self.asic.level, "amount": self.asic.amount, "active": self.asic.active},
            "click_fill_fraction": self.click_fill_fraction,
            "auto_fill": None
            if self.auto_fill is None
            else {
                "level": self.auto_fill.level,
                "active": self.auto_fill.active,
                "refill_countdown": self.auto_fill.refill_countdown,
            },
            "rug_insurance": {
                "level": self.rug_insurance.level,
                "active": self.rug_insurance.active,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceRig":
        cpu = data.get("cpu") or {}
        gpu = data.get("gpu") or {}
        asic = data.get("asic") or {}
        fill = data.get("auto_fill")
        rug = data.get("rug_insurance") or {}
        rig = cls(
            level=max(1, int(data.get("level", 1))),
            available_power=float(data.get("available_power", 0.0)),
            cpu=CpuSlot(
                level=max(1, min(CPU_MAX_LEVEL, int(cpu.get("level", 1)))),
                active=bool(cpu.get("active", True)),
            ),
            gpu=UnitSlot(
                "gpu",
                level=int(gpu.get("level", 1)),
                amount=int(gpu.get("amount", 0)),
                active=bool(gpu.get("active", True)),
            ),
            asic=UnitSlot(
                "asic",
                level=int(asic.get("level", 1)),
                amount=int(asic.get("amount", 0)),
                active=bool(asic.get("active", True)),
            ),
            click_fill_fraction=float(data.get("click_fill_fraction", CLICK_FILL_FRACTION)),
            auto_fill=None
            if fill is None
            else AutoPowerFill(
                level=max(1, int(fill.get("level", 1))),
                active=bool(fill.get("active", True)),
                refill_countdown=fill.get("refill_countdown"),
            ),
            rug_insurance=RugInsurance(
                level=max(1, int(rug.get("level", 1))),
                active=bool(rug.get("active", False)),
            ),
        )
        rig._clamp_power()
        return rig
