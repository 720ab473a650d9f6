"""Removal of stale stream files and empty directories.

Each library root is walked depth first. Stream files missing from the
run's keep-set (compared case-insensitively) are deleted, and directories
left empty are removed bottom-up. The root itself is never removed.

Deletions are capped by the run's deletion budget: once it is spent the
walk stops deleting and does not descend any further, which bounds the
damage a truncated or empty catalog can do.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from .destination_builder import STREAM_FILE_SUFFIX
from .logging_utils import render_fields_block
from .processing_state import RunContext

LOGGER = logging.getLogger(__name__)


def _is_empty(directory: Path) -> bool:
    with os.scandir(directory) as iterator:
        return next(iterator, None) is None


def _note_limit_reached(root: Path, context: RunContext, stopped_at: Path, *, stale_file: bool) -> None:
    if root in context.limit_reached_roots:
        return
    context.limit_reached_roots.append(root)
    if stale_file:
        outcome = f"stale file {stopped_at} left for the next run"
    else:
        outcome = f"walk stopped before {stopped_at}, remaining directories not visited"
    context.stats.register_warning(f"Deletion limit of {context.delete_limit} reached in {root}: {outcome}")
    LOGGER.warning(
        render_fields_block(
            "Pruning Stopped At Deletion Limit",
            {
                "Root": root,
                "Limit": context.delete_limit,
                "Stopped At": stopped_at,
                "Reason": "stale file kept" if stale_file else "directories not visited",
            },
            pad_top=True,
        )
    )


def _prune_directory(directory: Path, root: Path, context: RunContext) -> None:
    with os.scandir(directory) as iterator:
        entries = sorted(iterator, key=lambda entry: entry.name)

    subdirectories: list[Path] = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            subdirectories.append(Path(entry.path))
            continue
        if not entry.name.endswith(STREAM_FILE_SUFFIX):
            continue

        path = Path(entry.path)
        if path in context.keep_set:
            continue
        if context.deletion_budget_exhausted:
            _note_limit_reached(root, context, path, stale_file=True)
            break

        path.unlink()
        context.record_deletion()
        LOGGER.info(render_fields_block("Removed Stream File", {"Path": path}, pad_top=True))

    for subdirectory in subdirectories:
        if context.deletion_budget_exhausted:
            _note_limit_reached(root, context, subdirectory, stale_file=False)
            break
        _prune_directory(subdirectory, root, context)

    if directory != root and _is_empty(directory):
        directory.rmdir()
        context.stats.register_empty_dir_removed()
        LOGGER.info(render_fields_block("Removed Empty Directory", {"Path": directory}, pad_top=True))


def prune_root(root: Path, context: RunContext) -> bool:
    """Prune one library root.

    Returns ``False`` when a filesystem error aborted the walk. The error is
    logged and recorded on the run statistics.
    """
    LOGGER.debug(render_fields_block("Pruning Library Root", {"Root": root}, pad_top=True))
    try:
        _prune_directory(root, root, context)
    except OSError as exc:
        LOGGER.error(
            render_fields_block(
                "Pruning Aborted",
                {"Root": root, "Path": exc.filename or root, "Error": exc.strerror or exc},
                pad_top=True,
            )
        )
        context.stats.register_error(f"Pruning of {root} aborted: {exc}")
        return False
    return True


def prune_roots(roots: Iterable[Path], context: RunContext) -> list[Path]:
    """Prune every root independently; returns the roots whose walk failed."""
    return [root for root in roots if not prune_root(root, context)]
