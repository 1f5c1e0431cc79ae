"""Layout Watch - snapshot and diff Visual Studio window layouts"""

from __future__ import annotations

__version__ = "1.0.0"

# Lazy imports so `import layoutwatch` stays cheap for the CLI
def __getattr__(name: str):
    """
    Lazy imports to avoid loading requests/tenacity when only the core is used.
    """
    if name == "LayoutMonitor":
        from layoutwatch.monitor.orchestrator import LayoutMonitor

        return LayoutMonitor

    if name in ("LayoutMapping", "DiffResult"):
        from layoutwatch.monitor import types

        if name == "LayoutMapping":
            return types.LayoutMapping
        if name == "DiffResult":
            return types.DiffResult

    if name == "SnapshotStore":
        from layoutwatch.monitor.snapshot_store import SnapshotStore

        return SnapshotStore

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "DiffResult",
    "LayoutMapping",
    "LayoutMonitor",
    "SnapshotStore",
]
