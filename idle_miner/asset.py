from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from .events import BlockMined, EventSink, NullSink, ShareAccepted, ShareRejected
from .rng import RandomSource, chance
from .tuning import (
    ACCEPTED_NOTICE_EVERY,
    BLOCK_BONUS_FRACTION,
    BLOCK_REWARD,
    DIFFICULTY_DIVISOR,
    HASH_TICK_DIVISOR,
    HISTORY_LENGTH,
    MAX_GAIN_ABOVE_CEILING,
    MAX_LOSS_BELOW_FLOOR,
    NEWS_CHANCE,
    NEWS_RANGE,
    PRICE_CEILING,
    PRICE_DECIMALS,
    PRICE_FLOOR,
    REJECT_CHANCE,
    RUG_AGE_SCALE_DAYS,
    RUG_BASE_CHANCE,
    SAWTOOTH_AMPLITUDE,
    SAWTOOTH_PERIOD,
    SENTIMENT_RANGE,
    SHARE_REWARD_HASH_SCALE,
    SHARES_PER_BLOCK,
    TAIL_EVENT_CHANCE,
    TAIL_EVENT_RANGE,
    TREND_CORRECTION_DOWN_RUN,
    TREND_CORRECTION_MIXED,
    TREND_CORRECTION_UP_RUN,
    TREND_WINDOW,
)


def truncate_price(value: float) -> float:
    """Round a price to the market tick size."""
    return round(value, PRICE_DECIMALS)


def rug_chance_for_age(age_days: float) -> float:
    """Daily rug-pull probability; grows with the square of age."""
    age = max(0.0, float(age_days))
    return RUG_BASE_CHANCE * (age / RUG_AGE_SCALE_DAYS) ** 2


@dataclass
class CryptoCoin:
    """One simulated coin: its price walk and its mining progress.

    A coin is alive until it is rug pulled or retired. Dead coins keep their
    last price and are skipped by both the price update and the miner.
    """

    name: str
    index: Optional[int]
    initial_price: float
    volatility: Tuple[float, float]
    hashes_per_share: float
    shares_per_block: int = SHARES_PER_BLOCK
    max_blocks: int = 20
    block_reward: float = BLOCK_REWARD
    birth_day: int = 0
    history_length: int = HISTORY_LENGTH

    current_price: Optional[float] = None
    prices: Deque[float] = field(default_factory=deque)
    samples: int = 0  # price samples ever taken, drives the cyclic terms
    trend: float = 0.0
    trend_direction: Deque[bool] = field(
        default_factory=lambda: deque([False, False, False], maxlen=TREND_WINDOW)
    )
    active: bool = True
    death_day: Optional[int] = None

    hashes: float = 0.0
    shares: float = 0.0
    blocks: int = 0
    share_cooldown: int = 0
    shares_accepted: int = 0
    shares_rejected: int = 0

    balance: float = 0.0
    profit_factor: float = 0.0

    def __post_init__(self) -> None:
        if self.hashes_per_share <= 0:
            raise ValueError(f"{self.name}: hashes_per_share must be > 0, got {self.hashes_per_share}")
        if self.shares_per_block <= 0:
            raise ValueError(f"{self.name}: shares_per_block must be > 0, got {self.shares_per_block}")
        if self.current_price is None:
            self.current_price = float(self.initial_price)
        self.prices = deque(self.prices, maxlen=self.history_length)
        if not self.prices:
            self.prices.append(self.current_price)
        self.samples = max(self.samples, len(self.prices))
        self.trend_direction = deque(self.trend_direction, maxlen=TREND_WINDOW)

    # -- state --
    @property
    def is_alive(self) -> bool:
        return self.active and self.death_day is None

    @property
    def mined_out(self) -> bool:
        return self.blocks >= self.max_blocks

    @property
    def share_progress(self) -> float:
        return self.hashes / self.hashes_per_share

    @property
    def block_progress(self) -> float:
        return self.shares / self.shares_per_block

    def age(self, today: int) -> int:
        end = self.death_day if self.death_day is not None else today
        return max(0, end - self.birth_day)

    def rug_chance(self, today: int) -> float:
        return rug_chance_for_age(self.age(today))

    # -- mining --
    @property
    def difficulty(self) -> float:
        return self.current_price / DIFFICULTY_DIVISOR

    def effective_hash(self, hash_rate: float) -> float:
        if hash_rate <= 0:
            return 0.0
        return hash_rate / (1.0 + self.difficulty)

    def share_reward(self, hash_rate: float) -> float:
        return (self.block_reward / self.shares_per_block) * (
            1.0 + self.effective_hash(hash_rate) / SHARE_REWARD_HASH_SCALE
        )

    def decrement_share_cooldown(self) -> None:
        if self.share_cooldown > 0:
            self.share_cooldown -= 1

    def hash_coin(
        self,
        hash_rate: float,
        rng: RandomSource,
        *,
        cooldown_ticks: int = 0,
        reject_chance: float = REJECT_CHANCE,
        sink: EventSink = NullSink(),
    ) -> int:
        """Feed one tick of hashing into this coin. Returns shares accepted."""
        if hash_rate <= 0 or not self.is_alive or self.mined_out or self.share_cooldown > 0:
            return 0

        self.hashes += self.effective_hash(hash_rate) / HASH_TICK_DIVISOR

        accepted = 0
        rejected = 0
        while self.hashes >= self.hashes_per_share:
            self.share_cooldown = max(0, int(cooldown_ticks))
            self.hashes -= self.hashes_per_share

            if chance(rng, reject_chance):
                rejected += 1
                self.shares_rejected += 1
                continue

            accepted += 1
            self.shares += 1
            self.shares_accepted += 1
            reward = self.share_reward(hash_rate)
            self.balance += reward
            if self.shares_accepted % ACCEPTED_NOTICE_EVERY(hash_rate) == 0:
                sink.emit(ShareAccepted(self.name, self.shares_accepted, reward))

            if self.shares >= self.shares_per_block:
                self.blocks += 1
                self.shares -= self.shares_per_block
                bonus = self.block_reward * BLOCK_BONUS_FRACTION
                self.balance += bonus
                sink.emit(BlockMined(self.name, self.blocks, bonus))
                if self.mined_out:
                    break

        if rejected:
            sink.emit(ShareRejected(self.name, rejected))
        return accepted

    def shares_per_minute(self, hash_rate: float, cooldown_ticks: int = 0, tick_seconds: float = 0.05) -> float:
        per_tick = self.effective_hash(hash_rate) / HASH_TICK_DIVISOR
        if per_tick <= 0:
            return 0.0
        seconds_per_share = (self.hashes_per_share / per_tick + cooldown_ticks) * tick_seconds
        return 60.0 / seconds_per_share

    def calculate_profit_factor(self, hash_rate: float, cooldown_ticks: int = 0, tick_seconds: float = 0.05) -> float:
        """Estimated $/minute from mining this coin at the given rate."""
        spm = self.shares_per_minute(hash_rate, cooldown_ticks, tick_seconds)
        self.profit_factor = spm * self.share_reward(hash_rate) * self.current_price
        return self.profit_factor

    # -- price --
    def _trend_correction_range(self) -> Tuple[float, float]:
        if all(self.trend_direction):
            return TREND_CORRECTION_UP_RUN
        if not any(self.trend_direction):
            return TREND_CORRECTION_DOWN_RUN
        return TREND_CORRECTION_MIXED

    def update_price(self, rng: RandomSource) -> None:
        if not self.is_alive:
            return
        starting_price = self.current_price
        price = starting_price

        self.trend += rng.uniform(*self._trend_correction_range())
        self.trend += rng.uniform(*SENTIMENT_RANGE)

        position = self.samples % SAWTOOTH_PERIOD
        sawtooth = position / SAWTOOTH_PERIOD - 0.5
        change = sawtooth * SAWTOOTH_AMPLITUDE + rng.uniform(*self.volatility) + self.trend

        if chance(rng, TAIL_EVENT_CHANCE):
            price *= 1.0 + rng.uniform(*TAIL_EVENT_RANGE)
        else:
            price *= 1.0 + change

        seasonality = 0.01 * math.sin(self.samples / 10.0) + 0.005 * math.cos(self.samples / 50.0)
        price *= 1.0 + seasonality

        if chance(rng, NEWS_CHANCE):
            price *= 1.0 + rng.uniform(*NEWS_RANGE)

        if starting_price > 0:
            net = (price - starting_price) / starting_price
            if price > PRICE_CEILING and net > MAX_GAIN_ABOVE_CEILING:
                price = starting_price * (1.0 + MAX_GAIN_ABOVE_CEILING)
            if price < PRICE_FLOOR and net < -MAX_LOSS_BELOW_FLOOR:
                price = starting_price * (1.0 - MAX_LOSS_BELOW_FLOOR)

        self.current_price = max(0.0, truncate_price(price))
        self.prices.append(self.current_price)
        self.samples += 1
        self.trend_direction.appendleft(self.current_price > starting_price)

    # -- lifecycle --
    def mark_dead(self, day: int) -> None:
        """Rug pull: price pinned at zero from here on."""
        self.current_price = 0.0
        self.death_day = day

    def retire(self, day: int) -> None:
        self.active = False
        self.current_price = 0.0
        self.index = None
        if self.death_day is None:
            self.death_day = day
        self.prices.clear()

    def resize_history(self, length: int) -> None:
        """Change the history capacity, keeping the newest samples."""
        self.history_length = length
        self.prices = deque(self.prices, maxlen=length)

    # -- persistence --
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "index": self.index,
            "initial_price": self.initial_price,
            "volatility": list(self.volatility),
            "hashes_per_share": self.hashes_per_share,
            "shares_per_block": self.shares_per_block,
            "max_blocks": self.max_blocks,
            "block_reward": self.block_reward,
            "birth_day": self.birth_day,
            "history_length": self.history_length,
            "current_price": self.current_price,
            "prices": list(self.prices),
            "samples": self.samples,
            "trend": self.trend,
            "trend_direction": list(self.trend_direction),
            "active": self.active,
            "death_day": self.death_day,
            "hashes": self.hashes,
            "shares": self.shares,
            "blocks": self.blocks,
            "share_cooldown": self.share_cooldown,
            "shares_accepted": self.shares_accepted,
            "shares_rejected": self.shares_rejected,
            "balance": self.balance,
            "profit_factor": self.profit_factor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CryptoCoin":
        # Filter out keys that don't belong to the dataclass fields
        valid_keys = cls.__dataclass_fields__.keys()
        kwargs = {k: v for k, v in data.items() if k in valid_keys}
        kwargs["volatility"] = tuple(kwargs.get("volatility", (-0.02, 0.02)))
        kwargs["prices"] = deque(float(p) for p in kwargs.get("prices", []))
        kwargs["trend_direction"] = deque(bool(x) for x in kwargs.get("trend_direction", []))
        return cls(**kwargs)

    def summary(self) -> Dict[str, Any]:
        """Flat view for the UI and the JSON API."""
        return {
            "name": self.name,
            "index": self.index,
            "price": self.current_price,
            "balance": self.balance,
            "value": self.balance * self.current_price,
            "blocks": self.blocks,
            "max_blocks": self.max_blocks,
            "share_progress": self.share_progress,
            "block_progress": self.block_progress,
            "share_cooldown": self.share_cooldown,
            "difficulty": self.difficulty,
            "profit_factor": self.profit_factor,
            "birth_day": self.birth_day,
            "death_day": self.death_day,
            "active": self.active,
        }

    def price_history(self) -> List[float]:
        return list(self.prices)
