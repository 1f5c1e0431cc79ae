"""
Module: types
Purpose: Value types shared by the extractor, diff engine, snapshot store and
orchestrator.

Keeping them in a leaf module with no package imports besides ``errors``
prevents circular imports between the monitor modules.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from layoutwatch.errors import CycleErrorKind


def fold_key(key: str) -> str:
    """Normalize a layout key for case-insensitive comparison."""
    return key.casefold()


class LayoutMapping(Mapping[str, str]):
    """
    Immutable key -> label mapping with case-insensitive keys.

    Built with ``from_pairs``; a later pair for the same key (ignoring case)
    replaces the label but keeps the first-seen spelling of the key.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, tuple[str, str]] | None = None):
        # folded key -> (original key, label)
        self._entries: dict[str, tuple[str, str]] = dict(entries or {})

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> LayoutMapping:
        entries: dict[str, tuple[str, str]] = {}
        for key, label in pairs:
            folded = fold_key(key)
            existing = entries.get(folded)
            entries[folded] = (existing[0] if existing else key, label)
        return cls(entries)

    @classmethod
    def empty(cls) -> LayoutMapping:
        return cls()

    def __getitem__(self, key: str) -> str:
        return self._entries[fold_key(key)][1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and fold_key(key) in self._entries

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"LayoutMapping({dict(self.items())!r})"

    def folded_keys(self) -> frozenset[str]:
        return frozenset(self._entries)

    def original_key(self, folded: str) -> str:
        return self._entries[folded][0]

    def sorted_labels(self) -> list[str]:
        """Labels sorted ordinally, the order the current list is logged in."""
        return sorted(label for _, label in self._entries.values())


@dataclass(frozen=True)
class DiffResult:
    """Membership change between two mappings. Labels of removed entries come from the previous mapping."""

    added: frozenset[str] = frozenset()
    removed: frozenset[tuple[str, str]] = frozenset()

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)

    def removed_labels(self) -> list[str]:
        return sorted(label for _, label in self.removed)

    def added_labels(self, current: LayoutMapping) -> list[str]:
        return sorted(current.get(key, key) for key in self.added)


class CycleStatus(str, Enum):
    """How a monitoring cycle ended."""

    UNCHANGED = "unchanged"
    SAVED = "saved"
    SKIPPED = "skipped"  # non-fatal condition ended the cycle early
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class CycleResult:
    status: CycleStatus
    error_kind: CycleErrorKind | None = None
    message: str | None = None
    snapshot_path: Path | None = None
    diff: DiffResult | None = None
    notified: list[str] = field(default_factory=list)
    warnings: list[CycleErrorKind] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (CycleStatus.UNCHANGED, CycleStatus.SAVED, CycleStatus.SKIPPED)
