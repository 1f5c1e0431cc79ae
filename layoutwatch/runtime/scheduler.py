"""
Fixed-interval driver for monitoring cycles.

Cycles run one after another on the calling thread, so two cycles can never
overlap. The next cycle is due ``interval`` seconds after the previous one
started; if a cycle overruns, the next one starts as soon as it returns and
missed ticks are dropped rather than replayed.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol

from layoutwatch.monitor.types import CycleResult
from layoutwatch.observability.logging import get_logger
from layoutwatch.runtime.cancellation import CancellationToken

logger = get_logger(__name__)


class CycleRunner(Protocol):
    def run_cycle(self, token: CancellationToken | None = None) -> CycleResult: ...


class MonitorScheduler:
    def __init__(
        self,
        monitor: CycleRunner,
        interval_seconds: float,
        token: CancellationToken | None = None,
        max_cycles: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.monitor = monitor
        self.interval_seconds = interval_seconds
        self.token = token or CancellationToken()
        self.max_cycles = max_cycles
        self.clock = clock
        self.cycles_run = 0

    def stop(self) -> None:
        """Ask the loop to exit; a running cycle sees the cancellation at its next checkpoint."""
        self.token.cancel()

    def run_forever(self) -> int:
        """
        Run cycles until stopped (or ``max_cycles`` is reached).

        Returns:
            Number of cycles executed
        """
        logger.info("Monitor scheduled every %.1f seconds.", self.interval_seconds)

        while not self.token.cancelled:
            started = self.clock()
            result = self.monitor.run_cycle(self.token)
            self.cycles_run += 1
            logger.debug("Cycle %d finished: %s", self.cycles_run, result.status.value)

            if self.max_cycles is not None and self.cycles_run >= self.max_cycles:
                break

            remaining = self.interval_seconds - (self.clock() - started)
            if remaining > 0 and self.token.wait(remaining):
                break

        logger.info("Monitor scheduler stopped after %d cycle(s).", self.cycles_run)
        return self.cycles_run
