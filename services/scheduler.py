"""Drift-correcting fixed-cadence loop."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    running_round = "running_round"
    sleeping = "sleeping"


class IntervalScheduler:
    """Runs ``round_fn`` every ``period`` seconds, measured start to start.

    The sleep after a round is ``period - elapsed``, floored at zero: an
    overrunning round is followed immediately by the next one, with no
    catch-up and no skipped rounds.
    """

    def __init__(
        self,
        period: float,
        round_fn: Callable[[], Any],
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self.period = period
        self._round_fn = round_fn
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self.state = SchedulerState.sleeping
        self.rounds_completed = 0

    def sleep_after(self, elapsed: float) -> float:
        return max(self.period - elapsed, 0.0)

    def run_once(self) -> float:
        """Run one round and the sleep that follows it; return the sleep taken."""
        self.state = SchedulerState.running_round
        start = self._clock()
        self._round_fn()
        elapsed = self._clock() - start
        self.rounds_completed += 1

        delay = self.sleep_after(elapsed)
        if delay == 0.0:
            logger.debug(
                "Round overran the period, starting the next one immediately",
                extra={"round": self.rounds_completed, "elapsed_ms": int(elapsed * 1000)},
            )
        self.state = SchedulerState.sleeping
        if delay > 0:
            logger.debug(
                "Round finished, sleeping until the next one",
                extra={
                    "round": self.rounds_completed,
                    "elapsed_ms": int(elapsed * 1000),
                    "sleep_ms": int(delay * 1000),
                },
            )
            self._sleep(delay)
        return delay

    def run(self, max_rounds: Optional[int] = None) -> None:
        """Loop forever, or for ``max_rounds`` rounds when given."""
        while max_rounds is None or self.rounds_completed < max_rounds:
            self.run_once()
