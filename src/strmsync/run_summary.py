"""Run recaps and statistics formatting.

Formats the end-of-run recap: duration, per-counter totals, group filter
breakdown, and condensed error and warning listings.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from .logging_utils import LogBlockBuilder

if TYPE_CHECKING:
    from .models import RunStatistics

LOGGER = logging.getLogger(__name__)


def summarize_messages(entries: List[str], *, limit: int = 5) -> List[str]:
    """Summarize messages by grouping duplicates and showing top N.

    Args:
        entries: List of message strings to summarize.
        limit: Maximum number of unique messages to show.

    Returns:
        List of summary lines with duplicate counts and verbose prompt.
    """
    if not entries:
        return []
    counter = Counter(entries)
    ordered = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    lines: List[str] = []
    for text, count in ordered[:limit]:
        prefix = f"{count}× " if count > 1 else ""
        lines.append(f"{prefix}{text}")
    remaining = len(ordered) - limit
    if remaining > 0:
        lines.append(f"... {remaining} more (use --verbose for full list)")
    return lines


def summarize_groups(counts: Dict[str, int], *, limit: int = 10) -> List[str]:
    if not counts:
        return []
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    lines = []
    for group, value in ordered[:limit]:
        suffix = "entry" if value == 1 else "entries"
        lines.append(f"{group}: {value} {suffix}")
    remaining = len(ordered) - limit
    if remaining > 0:
        lines.append(f"... {remaining} more groups")
    return lines


def log_run_recap(
    stats: RunStatistics,
    duration: float,
    *,
    name: Optional[str] = None,
    failed_roots: Sequence[Path] = (),
    keep_report: Optional[Path] = None,
    verbose: bool = False,
) -> None:
    """Log the end-of-run recap block.

    Errors raise the block to ``ERROR`` level and warnings to ``WARNING``;
    otherwise it is logged at ``INFO``.
    """
    builder = LogBlockBuilder("Run Recap")
    fields: Dict[str, object] = {}
    if name:
        fields["Name"] = name
    fields["Duration"] = f"{duration:.2f}s"
    fields.update(stats.as_counts())
    fields["Errors"] = len(stats.errors)
    fields["Warnings"] = len(stats.warnings)
    if keep_report is not None:
        fields["Keep Report"] = keep_report
    builder.add_fields(fields)

    if stats.filtered_by_group:
        builder.add_section("Filtered Groups", summarize_groups(stats.filtered_by_group))
    if failed_roots:
        builder.add_section("Pruning Aborted", [str(root) for root in failed_roots])

    limit = len(stats.errors) + len(stats.warnings) if verbose else 5
    if stats.errors:
        builder.add_section("Errors", summarize_messages(stats.errors, limit=limit))
    if stats.warnings:
        builder.add_section("Warnings", summarize_messages(stats.warnings, limit=limit))

    if stats.errors:
        level = logging.ERROR
    elif stats.warnings:
        level = logging.WARNING
    else:
        level = logging.INFO
    LOGGER.log(level, builder.render())
