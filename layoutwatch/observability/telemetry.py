"""
In-process telemetry for monitoring cycles.

Nothing is exported to a metrics backend. Counters are plain integers;
latencies keep only the most recent ``LATENCY_WINDOW`` samples per metric,
so a monitor that runs for months holds a fixed amount of history. The CLI
and the tests read both back.
"""

from __future__ import annotations

import contextlib
import logging
import math
import time
from collections import deque
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("layoutwatch.telemetry")

LATENCY_WINDOW = 1000

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, deque[float]] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """Debug-level ``event=<name> {fields}`` line."""
    logger.debug("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """Add ``increment`` to counter ``name`` and return the new total."""
    _COUNTERS[name] = _COUNTERS.get(name, 0) + increment
    return _COUNTERS[name]


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def snapshot_counters(prefix: str = "") -> dict[str, int]:
    """Copy of all counters whose name starts with ``prefix``, sorted by name."""
    return {name: value for name, value in sorted(_COUNTERS.items()) if name.startswith(prefix)}


def record_latency(metric_name: str, seconds: float) -> None:
    """
    Append one sample to the metric's window, dropping the oldest when full.

    Side Effects:
        - Mutates _LATENCIES (in-memory state)
    """
    window = _LATENCIES.get(metric_name)
    if window is None:
        window = _LATENCIES[metric_name] = deque(maxlen=LATENCY_WINDOW)
    window.append(seconds)


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """Time the block with ``perf_counter``; the sample is kept even if the block raises."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logger.debug("timing=%s seconds=%.6f", metric_name, elapsed)
        record_latency(metric_name, elapsed)


def last_latency(metric_name: str) -> float | None:
    window = _LATENCIES.get(metric_name)
    return window[-1] if window else None


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """
    Summary of the retained window: count, min, max, avg and nearest-rank p95.

    All values are 0 when nothing was recorded.
    """
    window = _LATENCIES.get(metric_name)
    if not window:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p95": 0.0}

    ordered = sorted(window)
    count = len(ordered)
    return {
        "count": count,
        "min": ordered[0],
        "max": ordered[-1],
        "avg": math.fsum(ordered) / count,
        "p95": ordered[math.ceil(count * 95 / 100) - 1],
    }


def reset_telemetry() -> None:
    """Forget all counters and latency windows."""
    _COUNTERS.clear()
    _LATENCIES.clear()
