#!/usr/bin/env python3
"""
Layout Watch command line.

Usage:
    layoutwatch run [--interval SECONDS]     # monitor until Ctrl+C / SIGTERM
    layoutwatch once                         # single cycle, exit code reflects outcome
    layoutwatch history                      # list snapshots with layout counts
    layoutwatch show [SNAPSHOT]              # layouts in a snapshot (latest by default)

Common options: --settings FILE, --source PATH, --snapshot-dir DIR, --log-level LEVEL
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from layoutwatch.config import ApplicationSettings, load_settings
from layoutwatch.errors import PriorSnapshotUnreadable
from layoutwatch.monitor.orchestrator import LayoutMonitor
from layoutwatch.monitor.snapshot_store import SnapshotStore
from layoutwatch.observability.logging import get_logger, set_log_level
from layoutwatch.observability.telemetry import last_latency, snapshot_counters
from layoutwatch.runtime.cancellation import CancellationToken
from layoutwatch.runtime.scheduler import MonitorScheduler

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="layoutwatch",
        description="Snapshot Visual Studio window layouts and report removed ones",
    )
    parser.add_argument("--settings", type=Path, help="JSON settings file (appsettings.json layout)")
    parser.add_argument("--source", help="Path to ApplicationPrivateSettings.xml")
    parser.add_argument("--snapshot-dir", help="Directory holding snapshot files")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run cycles on a fixed interval until stopped")
    run.add_argument("--interval", type=float, help="Seconds between cycle starts")
    run.add_argument("--max-cycles", type=int, help="Stop after this many cycles")

    sub.add_parser("once", help="Run a single cycle")
    sub.add_parser("history", help="List snapshot files")

    show = sub.add_parser("show", help="Print the layouts stored in a snapshot")
    show.add_argument("snapshot", nargs="?", help="Snapshot file name or path (default: latest)")

    return parser


def _settings_from_args(args: argparse.Namespace) -> ApplicationSettings:
    settings = load_settings(args.settings)
    if args.source:
        settings.xml_settings_file_path = args.source
    if args.snapshot_dir:
        settings.snapshot_directory = args.snapshot_dir
    return settings


def _install_signal_handlers(scheduler: MonitorScheduler) -> None:
    def _handle(signum, _frame):  # noqa: ANN001
        logger.info("Received signal %s; stopping after the current cycle.", signum)
        scheduler.stop()

    signal.signal(signal.SIGINT, _handle)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle)


def cmd_run(args: argparse.Namespace, settings: ApplicationSettings) -> int:
    interval = args.interval or settings.interval_seconds
    monitor = LayoutMonitor(settings)
    scheduler = MonitorScheduler(
        monitor,
        interval_seconds=interval,
        token=CancellationToken(),
        max_cycles=args.max_cycles,
    )
    _install_signal_handlers(scheduler)
    logger.info("Watching %s", settings.resolve_source_path())
    scheduler.run_forever()
    return 0


def cmd_once(settings: ApplicationSettings) -> int:
    monitor = LayoutMonitor(settings)
    result = monitor.run_cycle(CancellationToken())

    elapsed = last_latency("cycle.latency") or 0.0
    print(f"status: {result.status.value}")
    if result.error_kind is not None:
        print(f"error: {result.error_kind.value}")
    for warning in result.warnings:
        print(f"warning: {warning.value}")
    if result.snapshot_path is not None:
        print(f"snapshot: {result.snapshot_path}")
    print(f"elapsed: {elapsed:.3f}s")
    for name, value in snapshot_counters("snapshot.").items():
        print(f"{name}: {value}")

    return 0 if result.ok else 1


def cmd_history(settings: ApplicationSettings) -> int:
    store = SnapshotStore(settings.resolve_snapshot_directory())
    snapshots = store.list_snapshots()
    if not snapshots:
        print(f"No snapshots in {store.directory}")
        return 0

    for path in snapshots:
        try:
            count = str(len(store.read_snapshot(path)))
        except PriorSnapshotUnreadable:
            count = "unreadable"
        print(f"{path.name}\t{count}")
    return 0


def cmd_show(args: argparse.Namespace, settings: ApplicationSettings) -> int:
    store = SnapshotStore(settings.resolve_snapshot_directory())

    if args.snapshot:
        path = Path(args.snapshot)
        if not path.is_absolute() and not path.exists():
            path = store.directory / path
    else:
        latest = store.latest_snapshot_path()
        if latest is None:
            print(f"No snapshots in {store.directory}", file=sys.stderr)
            return 1
        path = latest

    try:
        layouts = store.read_snapshot(path)
    except PriorSnapshotUnreadable as e:
        print(e.message, file=sys.stderr)
        return 1

    print(f"{path.name}: {len(layouts)} layout(s)")
    for key, label in sorted(layouts.items(), key=lambda item: item[1]):
        print(f"  {label}\t{key}")
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        set_log_level(args.log_level)

    try:
        settings = _settings_from_args(args)
    except (OSError, ValueError) as e:
        logger.error("Could not load settings: %s", e)
        return 2

    if args.command == "run":
        return cmd_run(args, settings)
    if args.command == "once":
        return cmd_once(settings)
    if args.command == "history":
        return cmd_history(settings)
    if args.command == "show":
        return cmd_show(args, settings)

    parser.error(f"unknown command {args.command!r}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
