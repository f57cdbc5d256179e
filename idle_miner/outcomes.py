from __future__ import annotations

from enum import Enum


class Outcome(str, Enum):
    """Result of a player command. Failures are values, not exceptions."""

    OK = "ok"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_ASSET = "unknown_asset"
    SLOT_EXHAUSTED = "slot_exhausted"
    MAX_LEVEL = "max_level"
    LOCKED = "locked"
    INVALID_AMOUNT = "invalid_amount"
    CANCELLED = "cancelled"

    @property
    def ok(self) -> bool:
        return self is Outcome.OK

    def __bool__(self) -> bool:
        return self.ok
