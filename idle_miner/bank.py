from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

# Withdrawals that overshoot the balance by less than this are rounding noise.
WITHDRAW_TOLERANCE = 0.0001


@dataclass
class Bank:
    """Liquid money balance. Never negative; withdrawals are all-or-nothing."""

    balance: float = 0.0

    def deposit(self, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"cannot deposit a negative amount: {amount}")
        self.balance += float(amount)

    def can_afford(self, amount: float) -> bool:
        return amount <= self.balance or (amount - self.balance) < WITHDRAW_TOLERANCE

    def withdraw(self, amount: float) -> bool:
        if amount < 0:
            return False
        if not self.can_afford(amount):
            return False
        self.balance = max(0.0, self.balance - float(amount))
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"balance": self.balance}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bank":
        return cls(balance=max(0.0, float(data.get("balance", 0.0))))
