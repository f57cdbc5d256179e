"""Domain events and the terminal-style log they are written to.

The core never prints. It emits events to an ``EventSink``; the default
``EventLog`` keeps a bounded list of formatted lines for the UI and fans
each event out to subscribers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Protocol

from .formatting import format_money

logger = logging.getLogger(__name__)

MAX_LOG_LINES = 400


class Event:
    def message(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class ShareAccepted(Event):
    asset: str
    accepted_total: int
    reward: float

    def message(self) -> str:
        return f"Share accepted for {self.asset}, yay! ({self.accepted_total} accepted)"


@dataclass(frozen=True)
class ShareRejected(Event):
    asset: str
    rejected: int = 1

    def message(self) -> str:
        if self.rejected == 1:
            return f"Share rejected for {self.asset}, boo!"
        return f"{self.rejected} shares rejected for {self.asset}, boo!"


@dataclass(frozen=True)
class BlockMined(Event):
    asset: str
    blocks: int
    bonus: float

    def message(self) -> str:
        return f"Block mined for {self.asset}, yay! (block {self.blocks})"


@dataclass(frozen=True)
class AssetRugPulled(Event):
    asset: str
    day: int
    protected_amount: float = 0.0
    payout: float = 0.0

    def message(self) -> str:
        if self.payout > 0:
            return (
                f"{self.asset} has been rug pulled! Insurance sold "
                f"{self.protected_amount:.6f} coins for {format_money(self.payout)}"
            )
        return f"{self.asset} has been rug pulled!"


@dataclass(frozen=True)
class AssetReplaced(Event):
    old: str
    new: str
    index: int

    def message(self) -> str:
        return f"{self.old} delisted, {self.new} listed in slot {self.index}"


@dataclass(frozen=True)
class PowerRefilled(Event):
    cost: float
    fraction: float
    automatic: bool

    def message(self) -> str:
        source = "Auto-fill" if self.automatic else "Power"
        return f"{source} refilled to {self.fraction * 100:.0f}% for {format_money(self.cost)}"


@dataclass(frozen=True)
class Notice(Event):
    """Free-form line such as an upgrade receipt."""

    text: str

    def message(self) -> str:
        return self.text


class EventSink(Protocol):
    def emit(self, event: Event) -> None: ...


class NullSink:
    def emit(self, event: Event) -> None:
        pass


class EventLog:
    def __init__(self, max_lines: int = MAX_LOG_LINES) -> None:
        self.max_lines = max_lines
        self.lines: List[str] = []
        self._subscribers: List[Callable[[Event], None]] = []

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, event: Event) -> None:
        line = event.message()
        logger.debug("event: %s", line)
        self.lines.append(line)
        # keep logs bounded
        if len(self.lines) > self.max_lines:
            self.lines = self.lines[-self.max_lines :]
        for callback in list(self._subscribers):
            callback(event)

    def tail(self, last: int = 200) -> List[str]:
        return self.lines[-last:] if last > 0 else []
