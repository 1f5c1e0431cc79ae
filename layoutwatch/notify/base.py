"""The boundary the orchestrator talks to when it reports removed layouts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SendResult:
    ok: bool
    reason: str | None = None

    @classmethod
    def success(cls) -> SendResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> SendResult:
        return cls(ok=False, reason=reason)


class Notifier(Protocol):
    """Anything that can deliver one plain-text message to one recipient."""

    def send(self, sender: str, recipient: str, subject: str, body: str) -> SendResult: ...
