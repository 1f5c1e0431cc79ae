"""
One monitoring pass over ApplicationPrivateSettings.xml.

ResolveSource -> LoadSource -> LocateCollection -> ExtractCurrent ->
LocatePrior -> LoadPrior -> Diff -> PersistDecision -> LogDecision ->
NotifyDecision -> Done

Non-fatal conditions raise a ``LayoutWatchError`` subclass (or are recorded as
warnings) and are turned into a ``CycleResult`` in ``run_cycle``, the only
place a cycle catches broadly. The scheduler keeps one ``LayoutMonitor`` for
the life of the process; ``baseline_logged`` is the only state carried
between cycles.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from layoutwatch.config import ApplicationSettings
from layoutwatch.errors import (
    CycleCancelled,
    CycleErrorKind,
    LayoutWatchError,
    PriorSnapshotUnreadable,
    SnapshotWriteConflict,
    SourceNotFound,
)
from layoutwatch.monitor.diff import diff_layouts, should_persist
from layoutwatch.monitor.extractor import extract_layouts_detailed, find_collection
from layoutwatch.monitor.snapshot_store import SnapshotStore, utc_now
from layoutwatch.monitor.types import CycleResult, CycleStatus, DiffResult, LayoutMapping
from layoutwatch.notify.base import Notifier
from layoutwatch.notify.removal import send_removal_notification
from layoutwatch.observability.logging import get_logger
from layoutwatch.observability.telemetry import counter, log_event, time_block
from layoutwatch.runtime.cancellation import CancellationToken
from layoutwatch.utils.files import read_bytes

logger = get_logger(__name__)


class LayoutMonitor:
    """Runs monitoring cycles against one source file and one snapshot directory."""

    def __init__(
        self,
        settings: ApplicationSettings,
        store: SnapshotStore | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store or SnapshotStore(settings.resolve_snapshot_directory())
        self.notifier = notifier
        self.clock = clock
        self.baseline_logged = False

    def run_cycle(self, token: CancellationToken | None = None) -> CycleResult:
        """
        Execute one pass. Never raises.

        Side Effects:
            - May create one snapshot file
            - May send one email per configured recipient
            - Sets ``baseline_logged`` after the first layout listing
        """
        token = token or CancellationToken.none()
        counter("cycle.started")

        try:
            with time_block("cycle.latency"):
                result = self._run(token)
        except CycleCancelled:
            logger.info("Monitor cycle cancelled at: %s", datetime.now().astimezone().isoformat())
            result = CycleResult(CycleStatus.CANCELLED, error_kind=CycleErrorKind.CANCELLED)
        except LayoutWatchError as e:
            logger.warning("%s", e.message)
            result = CycleResult(CycleStatus.SKIPPED, error_kind=e.kind, message=e.message)
        except Exception as e:
            logger.error("Error executing monitor cycle", exc_info=True)
            result = CycleResult(CycleStatus.FAILED, error_kind=CycleErrorKind.UNEXPECTED, message=str(e))

        counter(f"cycle.{result.status.value}")
        log_event(
            "cycle.finished",
            status=result.status.value,
            error_kind=result.error_kind.value if result.error_kind else None,
            warnings=[w.value for w in result.warnings],
        )
        return result

    def _load_collection(self, source: Path, token: CancellationToken) -> ET.Element:
        # VS keeps the file open; a plain read-only open does not block it
        root = ET.fromstring(read_bytes(source, token))
        return find_collection(root, self.settings.collection_name)

    def _run(self, token: CancellationToken) -> CycleResult:
        token.raise_if_cancelled()
        warnings: list[CycleErrorKind] = []

        source = self.settings.resolve_source_path()
        if not source.is_file():
            raise SourceNotFound(source)

        collection = self._load_collection(source, token)

        extraction = extract_layouts_detailed(collection)
        current = extraction.mapping
        if extraction.malformed:
            logger.warning("Layout payload in %s is malformed; continuing with what was parsed", source)
            warnings.append(CycleErrorKind.PAYLOAD_MALFORMED)

        previous: LayoutMapping | None = None
        diff: DiffResult | None = None
        save = False

        latest = self.store.latest_snapshot_path()
        if latest is None:
            logger.info("No previous snapshot found; saving initial baseline snapshot.")
            save = should_persist(None, None)
        else:
            try:
                previous = self.store.read_snapshot(latest, token)
            except PriorSnapshotUnreadable as e:
                # no save: a transient read error must not add a bogus entry to history
                logger.warning("Failed to compare with previous snapshot: %s (%s)", latest, e.reason)
                warnings.append(e.kind)
            else:
                diff = diff_layouts(previous, current)
                save = should_persist(previous, diff)
                if diff.added:
                    logger.info("Layouts added: %s", ", ".join(diff.added_labels(current)))
                if diff.removed:
                    logger.info("Layouts removed: %s", ", ".join(diff.removed_labels()))

        snapshot_path: Path | None = None
        if save:
            try:
                snapshot_path = self.store.write_snapshot(collection, now=self.clock(), token=token)
            except SnapshotWriteConflict as e:
                logger.warning("Skipping snapshot this cycle: %s", e.message)
                warnings.append(e.kind)
            else:
                logger.info("Saved Windows layout snapshot: %s", snapshot_path)

        if not self.baseline_logged or snapshot_path is not None:
            self._log_current_layouts(current)
            self.baseline_logged = True

        # a removal is reported once, by the cycle whose snapshot records it
        notified: list[str] = []
        if diff is not None and diff.removed and snapshot_path is not None:
            report = send_removal_notification(
                diff.removed_labels(),
                self.settings.postmark,
                token,
                notifier=self.notifier,
            )
            notified = report.sent
            if report.error_kind is not None:
                warnings.append(report.error_kind)

        return CycleResult(
            status=CycleStatus.SAVED if snapshot_path is not None else CycleStatus.UNCHANGED,
            snapshot_path=snapshot_path,
            diff=diff,
            notified=notified,
            warnings=warnings,
        )

    def _log_current_layouts(self, current: LayoutMapping) -> None:
        if len(current) > 0:
            logger.info("Current layouts: %s", ", ".join(current.sorted_labels()))
        else:
            logger.info("Current layouts: none found")
