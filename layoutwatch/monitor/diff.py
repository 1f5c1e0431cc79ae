"""Membership diff between two layout mappings and the save policy built on it."""

from __future__ import annotations

from layoutwatch.monitor.types import DiffResult, LayoutMapping


def diff_layouts(previous: LayoutMapping, current: LayoutMapping) -> DiffResult:
    """
    Case-insensitive key difference.

    ``added`` holds keys as spelled in ``current``; ``removed`` holds
    ``(key, label)`` pairs from ``previous`` so notifications can use the
    last known display name. Label changes are not reported.
    """
    previous_keys = previous.folded_keys()
    current_keys = current.folded_keys()

    added = frozenset(current.original_key(folded) for folded in current_keys - previous_keys)
    removed = frozenset(
        (previous.original_key(folded), previous[folded]) for folded in previous_keys - current_keys
    )
    return DiffResult(added=added, removed=removed)


def should_persist(previous: LayoutMapping | None, diff: DiffResult | None) -> bool:
    """Save on the first run (no previous snapshot) or when membership changed."""
    if previous is None:
        return True
    return diff is not None and diff.has_changes
