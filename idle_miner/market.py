from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .asset import CryptoCoin, truncate_price
from .bank import Bank
from .events import AssetReplaced, AssetRugPulled, EventSink, NullSink
from .outcomes import Outcome
from .rig import ResourceRig
from .rng import RandomSource, chance
from .tuning import (
    BLOCK_REWARD,
    CULL_PRICE_THRESHOLD,
    HASHES_PER_SHARE_PER_RIG_LEVEL,
    HISTORY_LENGTH,
    MAX_BLOCKS_RANGE,
    MAX_HASHES_PER_SHARE,
    MIN_HASHES_PER_SHARE,
    SHARES_PER_BLOCK,
    STARTING_PRICE_BY_RIG_LEVEL,
    VOLATILITY_RANGE,
)

logger = logging.getLogger(__name__)


@dataclass
class Market:
    """Live coin pool (one coin per lane), the retired archive and the bank."""

    assets: List[CryptoCoin] = field(default_factory=list)
    inactive: List[CryptoCoin] = field(default_factory=list)
    created: int = 0  # names new coins, never reused
    bank: Bank = field(default_factory=Bank)
    history_length: int = HISTORY_LENGTH

    # -- lookups --
    def add(self, coin: CryptoCoin) -> None:
        if coin.index is not None and self.get_by_index(coin.index) is not None:
            raise ValueError(f"slot {coin.index} is already taken")
        self.assets.append(coin)

    def get_by_name(self, name: str) -> Optional[CryptoCoin]:
        return next((c for c in self.assets if c.name == name), None)

    def get_by_index(self, index: int) -> Optional[CryptoCoin]:
        return next((c for c in self.assets if c.index == index), None)

    def index_sorted(self, include_inactive: bool = False) -> List[CryptoCoin]:
        live = sorted(self.assets, key=lambda c: c.index if c.index is not None else -1)
        if include_inactive:
            return live + list(self.inactive)
        return live

    def price_sorted(self) -> List[CryptoCoin]:
        return sorted(self.assets, key=lambda c: c.current_price, reverse=True)

    @property
    def portfolio_value(self) -> float:
        return sum(c.balance * c.current_price for c in self.assets)

    # -- trading --
    def sell(self, name: str, amount: Optional[float] = None) -> Outcome:
        """Sell ``amount`` coins (whole balance when omitted) at the current price."""
        coin = self.get_by_name(name)
        if coin is None:
            return Outcome.UNKNOWN_ASSET
        if amount is None:
            amount = coin.balance
        if amount <= 0 or amount > coin.balance:
            return Outcome.INVALID_AMOUNT
        self.bank.deposit(amount * coin.current_price)
        coin.balance -= amount
        if coin.balance < 1e-12:
            coin.balance = 0.0
        return Outcome.OK

    def max_buyable(self, name: str) -> float:
        coin = self.get_by_name(name)
        if coin is None or coin.current_price <= 0:
            return 0.0
        return self.bank.balance / coin.current_price

    def buy(self, name: str, amount: Optional[float] = None) -> Outcome:
        """Buy ``amount`` coins, or as many as the bank covers when omitted."""
        coin = self.get_by_name(name)
        if coin is None:
            return Outcome.UNKNOWN_ASSET
        if amount is None:
            amount = self.max_buyable(name)
        if amount <= 0 or coin.current_price <= 0:
            return Outcome.INVALID_AMOUNT
        if not self.bank.withdraw(amount * coin.current_price):
            return Outcome.INSUFFICIENT_FUNDS
        coin.balance += amount
        return Outcome.OK

    # -- generation --
    def generate_asset(self, index: int, rig_level: int, day: int, rng: RandomSource) -> CryptoCoin:
        """Fresh coin for ``index``; starting price and share cost scale with rig level."""
        self.created += 1
        swing = rng.uniform(*VOLATILITY_RANGE)
        low, high = STARTING_PRICE_BY_RIG_LEVEL(rig_level)
        hps_cap = max(
            MIN_HASHES_PER_SHARE,
            min(rig_level * HASHES_PER_SHARE_PER_RIG_LEVEL, MAX_HASHES_PER_SHARE),
        )
        return CryptoCoin(
            name=f"Coin-{self.created}",
            index=index,
            initial_price=truncate_price(rng.uniform(low, high)),
            volatility=(-swing, swing),
            hashes_per_share=rng.uniform(MIN_HASHES_PER_SHARE, hps_cap),
            shares_per_block=SHARES_PER_BLOCK,
            max_blocks=int(rng.uniform(*MAX_BLOCKS_RANGE)),
            block_reward=BLOCK_REWARD,
            birth_day=day,
            history_length=self.history_length,
        )

    def set_history_length(self, length: int) -> None:
        self.history_length = length
        for coin in self.assets:
            coin.resize_history(length)

    def seed(self, lanes: int, rig_level: int, day: int, rng: RandomSource) -> None:
        """Fill every empty lane with a new coin."""
        for index in range(lanes):
            if self.get_by_index(index) is None:
                self.assets.append(self.generate_asset(index, rig_level, day, rng))

    # -- day boundary --
    def update_prices(self, rng: RandomSource) -> None:
        for coin in self.assets:
            coin.update_price(rng)

    def should_cull(self, coin: CryptoCoin) -> bool:
        if coin.current_price < CULL_PRICE_THRESHOLD:
            return True
        return coin.mined_out and coin.balance <= 0

    def cull(self, rig_level: int, day: int, rng: RandomSource, sink: EventSink = NullSink()) -> List[str]:
        """Replace collapsed or exhausted coins in place. Returns the retired names."""
        retired = []
        for coin in list(self.assets):
            if self.should_cull(coin):
                self.replace(coin, rig_level, day, rng, sink)
                retired.append(coin.name)
        return retired

    def replace(
        self, coin: CryptoCoin, rig_level: int, day: int, rng: RandomSource, sink: EventSink = NullSink()
    ) -> CryptoCoin:
        """Swap ``coin`` for a new listing in the same slot and retire it."""
        position = next(i for i, c in enumerate(self.assets) if c is coin)
        index = coin.index if coin.index is not None else position
        replacement = self.generate_asset(index, rig_level, day, rng)
        self.assets[position] = replacement
        coin.retire(day)
        # only coins still holding a balance stay on file
        if coin.balance > 0:
            self.inactive.append(coin)
        logger.info("retired %s from slot %d, listed %s", coin.name, index, replacement.name)
        sink.emit(AssetReplaced(coin.name, replacement.name, index))
        return replacement

    def rug_pull_pass(
        self, rig: ResourceRig, day: int, rng: RandomSource, sink: EventSink = NullSink()
    ) -> List[str]:
        """Roll the age-based rug hazard for every live coin. Returns pulled names."""
        pulled = []
        for coin in self.assets:
            if not coin.is_alive:
                continue
            if not chance(rng, coin.rug_chance(day)):
                continue
            protected = 0.0
            payout = 0.0
            fraction = rig.rug_insurance_fraction
            if fraction > 0 and coin.balance > 0:
                protected = coin.balance * fraction
                payout = protected * coin.current_price
                self.bank.deposit(payout)
                coin.balance -= protected
            coin.mark_dead(day)
            pulled.append(coin.name)
            logger.info("rug pull on %s (age %d days)", coin.name, coin.age(day))
            sink.emit(AssetRugPulled(coin.name, day, protected, payout))
        return pulled

    # -- cooldowns --
    def longest_cooldown_asset(self) -> Optional[CryptoCoin]:
        waiting = [c for c in self.assets if c.share_cooldown > 0]
        if not waiting:
            return None
        return max(waiting, key=lambda c: c.share_cooldown)

    def decrement_all_cooldowns(self) -> None:
        for coin in self.assets:
            coin.decrement_share_cooldown()

    def refresh_profit_factors(self, hash_rate: float, cooldown_ticks: int = 0, tick_seconds: float = 0.05) -> None:
        for coin in self.assets:
            coin.calculate_profit_factor(hash_rate, cooldown_ticks, tick_seconds)

    # -- chart --
    def chart(self) -> Dict[str, Any]:
        live = self.index_sorted()
        longest = max((len(c.prices) for c in live), default=0)
        return {
            "labels": ["|"] * longest,
            "series": [c.price_history() for c in live],
            "series_labels": [c.name for c in live],
        }

    # -- persistence --
    def to_dict(self) -> Dict[str, Any]:
        return {
            "assets": [c.to_dict() for c in self.assets],
            "inactive": [c.to_dict() for c in self.inactive],
            "created": self.created,
            "bank": self.bank.to_dict(),
            "history_length": self.history_length,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Market":
        return cls(
            assets=[CryptoCoin.from_dict(c) for c in data.get("assets", [])],
            inactive=[CryptoCoin.from_dict(c) for c in data.get("inactive", [])],
            created=int(data.get("created", 0)),
            bank=Bank.from_dict(data.get("bank") or {}),
            history_length=int(data.get("history_length", HISTORY_LENGTH)),
        )
