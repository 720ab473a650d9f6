"""Stream file creation.

Writes one pointer file per catalog entry and records it in the run's
keep-set. Files are always rewritten so a changed URL replaces the old
pointer in place. Failures affect only the entry being written.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .logging_utils import render_fields_block
from .models import TargetPath
from .processing_state import RunContext
from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)


def prepare_roots(roots: Iterable[Path], context: RunContext) -> None:
    for root in roots:
        try:
            ensure_directory(root)
        except OSError as exc:
            message = f"Unable to create library root {root}: {exc}"
            LOGGER.error(render_fields_block("Library Root Unavailable", {"Path": root, "Error": exc}, pad_top=True))
            context.stats.register_error(message)


def write_stream_file(path: Path, url: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(url)


def materialize_stream(target: TargetPath, url: str, context: RunContext) -> bool:
    """Ensure ``target`` exists on disk with ``url`` as its only content.

    Returns ``True`` when the stream file was written.
    """
    directory = target.directory
    if not directory.is_dir():
        try:
            ensure_directory(directory)
        except OSError as exc:
            LOGGER.error(
                render_fields_block(
                    "Directory Creation Failed",
                    {"Path": directory, "Error": exc},
                    pad_top=True,
                )
            )
            context.stats.register_error(f"Unable to create directory {directory}: {exc}")
            return False
        context.stats.register_directory_created()
        LOGGER.info(render_fields_block("Created Directory", {"Path": directory}, pad_top=True))

    # Retained even when the write below fails.
    context.keep_set.add(target.file_path)
    try:
        write_stream_file(target.file_path, url)
    except OSError as exc:
        LOGGER.error(
            render_fields_block(
                "Stream File Write Failed",
                {"Path": target.file_path, "Error": exc},
                pad_top=True,
            )
        )
        context.stats.register_error(f"Unable to write stream file {target.file_path}: {exc}")
        return False

    context.stats.register_kept()
    LOGGER.debug(render_fields_block("Keeping Stream File", {"Path": target.file_path, "URL": url}, pad_top=True))
    return True
