"""
Write-once snapshot files for the layout collection.

Files are named ``yyyyMMddHHmmss.xml`` from the UTC instant they were written.
The fixed-width, zero-padded name makes lexicographic order equal to
chronological order, which is how the latest snapshot is found. Nothing here
ever overwrites or deletes a snapshot.
"""

from __future__ import annotations

import copy
import re
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from pathlib import Path

from layoutwatch.errors import CycleCancelled, PriorSnapshotUnreadable, SnapshotWriteConflict
from layoutwatch.monitor.extractor import COLLECTION_TAG, extract_layouts
from layoutwatch.monitor.types import LayoutMapping
from layoutwatch.observability.logging import get_logger
from layoutwatch.observability.telemetry import counter, log_event
from layoutwatch.runtime.cancellation import CancellationToken
from layoutwatch.utils.files import read_bytes, write_new_file

logger = get_logger(__name__)

SNAPSHOT_SUFFIX = ".xml"
SNAPSHOT_GLOB = f"*{SNAPSHOT_SUFFIX}"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
SNAPSHOT_STEM = re.compile(r"^\d{14}$")
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8" standalone="yes"?>'


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def snapshot_name(moment: datetime) -> str:
    """File name for a snapshot taken at ``moment`` (converted to UTC, second resolution)."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return f"{moment.strftime(TIMESTAMP_FORMAT)}{SNAPSHOT_SUFFIX}"


def render_snapshot(collection: ET.Element, moment: datetime) -> bytes:
    """Serialize ``collection`` as the root of a minimal snapshot document."""
    root = copy.deepcopy(collection)
    root.tail = None
    body = ET.tostring(root, encoding="unicode")
    saved_at = moment.astimezone(UTC).isoformat() if moment.tzinfo else moment.isoformat()
    document = f"{XML_DECLARATION}\n<!-- Saved at {saved_at} -->\n{body}"
    return document.encode("utf-8")


def collection_from_document(root: ET.Element) -> ET.Element | None:
    """The snapshot payload: the root itself when it is a collection, else the first nested one."""
    if root.tag == COLLECTION_TAG:
        return root
    return root.find(f".//{COLLECTION_TAG}")


class SnapshotStore:
    """Locates, reads and writes snapshots in a single directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def list_snapshots(self) -> list[Path]:
        """All snapshot files, oldest first. Missing directory means no snapshots."""
        if not self.directory.is_dir():
            return []
        files = [
            path
            for path in self.directory.glob(SNAPSHOT_GLOB)
            if path.is_file() and SNAPSHOT_STEM.match(path.stem)
        ]
        return sorted(files, key=lambda path: path.stem)

    def latest_snapshot_path(self) -> Path | None:
        snapshots = self.list_snapshots()
        return snapshots[-1] if snapshots else None

    def read_snapshot(self, path: Path, token: CancellationToken | None = None) -> LayoutMapping:
        """
        Parse a snapshot file back into a LayoutMapping.

        Raises:
            PriorSnapshotUnreadable: the file cannot be read or is not valid XML
            CycleCancelled: the token was cancelled mid-read
        """
        try:
            data = read_bytes(path, token)
            root = ET.fromstring(data)
        except CycleCancelled:
            raise
        except (OSError, ET.ParseError) as exc:
            counter("snapshot.read_failed")
            raise PriorSnapshotUnreadable(path, str(exc)) from exc

        collection = collection_from_document(root)
        if collection is None:
            logger.debug("Snapshot %s holds no layout collection", path.name)
            return LayoutMapping.empty()
        return extract_layouts(collection)

    def write_snapshot(
        self,
        collection: ET.Element,
        now: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> Path:
        """
        Write a new snapshot for ``collection``.

        Raises:
            SnapshotWriteConflict: a snapshot with the same second-resolution name exists

        Side Effects:
            - Creates the snapshot directory if missing
            - Creates exactly one new file
        """
        moment = now or utc_now()
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / snapshot_name(moment)

        try:
            write_new_file(path, render_snapshot(collection, moment), token)
        except FileExistsError as exc:
            counter("snapshot.write_conflict")
            raise SnapshotWriteConflict(path) from exc

        counter("snapshot.written")
        log_event("snapshot.written", path=str(path))
        return path
