"""Target path building for classified catalog entries.

Paths are a pure function of the classified target, the grouping flag and
the library roots; the filesystem is never consulted, so the same catalog
always resolves to the same files.

    movies:   <movies_root>/[<group>/]<name>/<name>.strm
    episodes: <tv_root>/[<group>/]<show>/<season>/<full name>.strm
"""

from __future__ import annotations

from pathlib import Path

from .group_filter import DEFAULT_GROUP
from .models import ClassifiedTarget, MediaKind, TargetPath
from .utils import sanitize_name

STREAM_FILE_SUFFIX = ".strm"


def group_segment(group_label: str, default_group: str = DEFAULT_GROUP) -> str:
    return sanitize_name(group_label) or sanitize_name(default_group) or DEFAULT_GROUP


def build_target_path(
    target: ClassifiedTarget,
    *,
    tv_root: Path,
    movies_root: Path,
    use_group: bool = False,
    default_group: str = DEFAULT_GROUP,
) -> TargetPath:
    """Resolve the directory and stream-file path for ``target``.

    Raises:
        ValueError: If a name sanitizes to an empty path segment.
    """
    file_stem = sanitize_name(target.display_name)
    if not file_stem:
        raise ValueError(f"display name {target.display_name!r} produces an empty file name")

    if target.kind is MediaKind.EPISODE:
        base = tv_root
        show_segment = sanitize_name(target.name_prefix)
        if not show_segment:
            raise ValueError(f"show name {target.name_prefix!r} produces an empty directory name")
        tail = (show_segment, target.season or "")
    else:
        base = movies_root
        tail = (file_stem,)

    if use_group:
        base = base / group_segment(target.group_label, default_group)

    directory = base.joinpath(*tail)
    return TargetPath(directory=directory, file_path=directory / f"{file_stem}{STREAM_FILE_SUFFIX}")


def format_relative_destination(destination: Path, roots: tuple[Path, ...]) -> str:
    """Format ``destination`` relative to whichever root contains it."""
    for root in roots:
        try:
            return str(destination.relative_to(root))
        except ValueError:
            continue
    return str(destination)
