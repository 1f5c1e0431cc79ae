"""Cooperative cancellation shared between the scheduler and a running cycle."""

from __future__ import annotations

import threading

from layoutwatch.errors import CycleCancelled


class CancellationToken:
    """
    Thin wrapper over ``threading.Event``.

    The scheduler owns the token; blocking points in a cycle (file reads and
    writes, each notification send) call ``raise_if_cancelled``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @classmethod
    def none(cls) -> CancellationToken:
        """A token nobody will ever cancel."""
        return cls()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CycleCancelled()

    def wait(self, timeout: float | None) -> bool:
        """Sleep up to ``timeout`` seconds; returns True if cancelled meanwhile."""
        return self._event.wait(timeout)
