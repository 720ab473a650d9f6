"""Mutable state for a single reconciliation run.

A ``RunContext`` is created at the start of every run and threaded through
each stage of the pipeline. It owns the keep-set built during
materialization, the run statistics, and the deletion budget consumed by
the pruner. Nothing here is module level, so repeated runs inside one
process never share state.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from .models import RunStatistics
from .utils import ensure_directory


def _keep_key(path: str | os.PathLike[str]) -> str:
    return os.path.normpath(os.fspath(path)).lower()


class KeepSet:
    """Stream-file paths the current run intends to retain.

    Paths are stored as materialized and looked up case-insensitively.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def add(self, path: str | os.PathLike[str]) -> None:
        self._entries[_keep_key(path)] = os.fspath(path)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return _keep_key(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries.values())

    def write(self, path: Path) -> Path:
        """Write the retained paths to ``path``, one per line, sorted."""
        ensure_directory(path.parent)
        with path.open("w", encoding="utf-8") as handle:
            for entry in sorted(self._entries.values()):
                handle.write(entry + "\n")
        return path


@dataclass
class RunContext:
    """State threaded through one run.

    Attributes:
        delete_limit: Maximum number of stream files the pruner may delete this run
        keep_set: Stream files written (or rewritten) by this run
        stats: Counters and messages reported at the end of the run
        deletions: Stream files deleted so far this run
        limit_reached_roots: Roots whose walk stopped on the deletion budget
    """

    delete_limit: int
    keep_set: KeepSet = field(default_factory=KeepSet)
    stats: RunStatistics = field(default_factory=RunStatistics)
    deletions: int = 0
    limit_reached_roots: list[Path] = field(default_factory=list)

    @property
    def deletion_budget_exhausted(self) -> bool:
        return self.deletions >= self.delete_limit

    def record_deletion(self) -> None:
        self.deletions += 1
        self.stats.register_removed()
