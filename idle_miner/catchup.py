"""Replays missed market days after the game was closed."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .formatting import format_duration
from .outcomes import Outcome
from .simulation import Simulation
from .tuning import CATCHUP_REPORT_EVERY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatchupProgress:
    current: int
    total: int
    eta_seconds: float
    speed_up: float  # simulated seconds per real second

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total else 1.0

    @property
    def eta(self) -> str:
        return format_duration(self.eta_seconds)


@dataclass(frozen=True)
class CatchupResult:
    outcome: Outcome
    days_run: int
    total: int
    elapsed_seconds: float

    @property
    def cancelled(self) -> bool:
        return self.outcome is Outcome.CANCELLED


class BulkSimulator:
    """Runs many market days in a tight loop.

    ``cancel()`` may be called from another thread; the flag is checked
    between days, so a cancelled run always stops on a finished day.
    """

    def __init__(
        self,
        sim: Simulation,
        *,
        on_progress: Optional[Callable[[CatchupProgress], None]] = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.sim = sim
        self.on_progress = on_progress
        self._timer = timer
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    def run(self, days: int) -> CatchupResult:
        total = max(0, int(days))
        every = CATCHUP_REPORT_EVERY(total)
        started = self._timer()
        logger.info("catching up %d market days", total)

        done = 0
        while done < total:
            if self._cancel.is_set():
                elapsed = self._timer() - started
                logger.info("catch-up cancelled after %d of %d days", done, total)
                return CatchupResult(Outcome.CANCELLED, done, total, elapsed)
            self.sim.simulate_market_day()
            done += 1
            if done % every == 0 or done == total:
                self._report(done, total, started)

        elapsed = self._timer() - started
        logger.info("catch-up finished: %d days in %.2fs", total, elapsed)
        return CatchupResult(Outcome.OK, done, total, elapsed)

    def _report(self, done: int, total: int, started: float) -> None:
        if self.on_progress is None:
            return
        elapsed = max(0.0, self._timer() - started)
        per_day = elapsed / done if done else 0.0
        speed_up = (done * self.sim.config.day_seconds) / elapsed if elapsed > 0 else 0.0
        self.on_progress(CatchupProgress(done, total, per_day * (total - done), speed_up))
