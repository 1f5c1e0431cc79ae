"""
Error taxonomy for monitoring cycles.

Every failure inside a cycle is one of the kinds below. Exceptions carry their
kind so the single per-cycle boundary in ``LayoutMonitor.run_cycle`` can turn
them into a ``CycleResult`` without inspecting exception types.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class CycleErrorKind(str, Enum):
    """Why a cycle (or part of it) did not complete normally."""

    SOURCE_NOT_FOUND = "source_not_found"
    COLLECTION_NOT_FOUND = "collection_not_found"
    PAYLOAD_MALFORMED = "payload_malformed"
    PRIOR_SNAPSHOT_UNREADABLE = "prior_snapshot_unreadable"
    SNAPSHOT_WRITE_CONFLICT = "snapshot_write_conflict"
    NOTIFIER_UNCONFIGURED = "notifier_unconfigured"
    NOTIFIER_SEND_FAILED = "notifier_send_failed"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class LayoutWatchError(RuntimeError):
    kind: CycleErrorKind = CycleErrorKind.UNEXPECTED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SourceNotFound(LayoutWatchError):
    kind = CycleErrorKind.SOURCE_NOT_FOUND

    def __init__(self, path: Path):
        super().__init__(f"ApplicationPrivateSettings.xml not found at path: {path}")
        self.path = path


class CollectionNotFound(LayoutWatchError):
    kind = CycleErrorKind.COLLECTION_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Target collection '{name}' not found")
        self.name = name


class PayloadMalformed(LayoutWatchError):
    kind = CycleErrorKind.PAYLOAD_MALFORMED


class PriorSnapshotUnreadable(LayoutWatchError):
    kind = CycleErrorKind.PRIOR_SNAPSHOT_UNREADABLE

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed to read previous snapshot {path}: {reason}")
        self.path = path
        self.reason = reason


class SnapshotWriteConflict(LayoutWatchError):
    kind = CycleErrorKind.SNAPSHOT_WRITE_CONFLICT

    def __init__(self, path: Path):
        super().__init__(f"Snapshot already exists, refusing to overwrite: {path}")
        self.path = path


class CycleCancelled(LayoutWatchError):
    """Raised at a cancellation checkpoint. Not an application error."""

    kind = CycleErrorKind.CANCELLED

    def __init__(self, message: str = "cycle cancelled"):
        super().__init__(message)
