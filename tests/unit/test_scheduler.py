"""
Tests for the fixed-interval cycle scheduler.

Validates:
1. Cycles never overlap and run on the caller's thread
2. max_cycles and stop() end the loop
3. The scheduler's token reaches every cycle
4. Overrunning cycles are not replayed
"""

from __future__ import annotations

import threading

import pytest

from layoutwatch.monitor.types import CycleResult, CycleStatus
from layoutwatch.runtime.cancellation import CancellationToken
from layoutwatch.runtime.scheduler import MonitorScheduler


class FakeMonitor:
    def __init__(self, on_cycle=None):
        self.tokens: list[CancellationToken | None] = []
        self.active = 0
        self.max_active = 0
        self.threads: set[int] = set()
        self.on_cycle = on_cycle

    def run_cycle(self, token=None):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.threads.add(threading.get_ident())
        self.tokens.append(token)
        try:
            if self.on_cycle is not None:
                self.on_cycle(len(self.tokens))
            return CycleResult(status=CycleStatus.UNCHANGED)
        finally:
            self.active -= 1


def test_runs_requested_number_of_cycles():
    monitor = FakeMonitor()
    scheduler = MonitorScheduler(monitor, interval_seconds=0.001, max_cycles=3)

    assert scheduler.run_forever() == 3
    assert monitor.max_active == 1
    assert monitor.threads == {threading.get_ident()}


def test_token_is_passed_to_each_cycle():
    monitor = FakeMonitor()
    token = CancellationToken()
    scheduler = MonitorScheduler(monitor, interval_seconds=0.001, token=token, max_cycles=2)

    scheduler.run_forever()

    assert monitor.tokens == [token, token]


def test_stop_during_cycle_ends_loop_after_it():
    scheduler: MonitorScheduler

    def stop_on_second(cycle_number):
        if cycle_number == 2:
            scheduler.stop()

    monitor = FakeMonitor(on_cycle=stop_on_second)
    scheduler = MonitorScheduler(monitor, interval_seconds=0.001)

    assert scheduler.run_forever() == 2
    assert scheduler.token.cancelled


def test_already_cancelled_token_runs_nothing():
    token = CancellationToken()
    token.cancel()
    monitor = FakeMonitor()

    assert MonitorScheduler(monitor, interval_seconds=1, token=token).run_forever() == 0
    assert monitor.tokens == []


def test_overrunning_cycle_starts_next_immediately():
    # each cycle "takes" 25s on a 10s interval
    ticks = iter([0.0, 25.0, 25.0, 50.0])
    monitor = FakeMonitor()
    token = CancellationToken()
    waits: list[float] = []
    original_wait = token.wait

    def recording_wait(timeout):
        waits.append(timeout)
        return original_wait(0)

    token.wait = recording_wait
    scheduler = MonitorScheduler(monitor, interval_seconds=10, token=token, max_cycles=2, clock=lambda: next(ticks))

    assert scheduler.run_forever() == 2
    assert waits == []


def test_waits_for_remainder_of_interval():
    ticks = iter([0.0, 4.0, 10.0, 12.0])
    token = CancellationToken()
    waits: list[float] = []

    def recording_wait(timeout):
        waits.append(timeout)
        return False

    token.wait = recording_wait
    scheduler = MonitorScheduler(FakeMonitor(), interval_seconds=10, token=token, max_cycles=2, clock=lambda: next(ticks))

    scheduler.run_forever()

    assert waits == [6.0]


@pytest.mark.parametrize("interval", [0, -1])
def test_interval_must_be_positive(interval):
    with pytest.raises(ValueError):
        MonitorScheduler(FakeMonitor(), interval_seconds=interval)
