from __future__ import annotations

import re

from .models import ClassifiedTarget, MediaKind, StreamRecord
from .utils import normalize_name, sanitize_name

SEASON_EPISODE_PATTERN = re.compile(r"S\d{1,2}E\d{1,3}")


class ClassificationError(ValueError):
    """Raised when a record's display name cannot produce a usable title."""


def classify(record: StreamRecord, group_label: str) -> ClassifiedTarget:
    """Classify ``record`` as an episode or a movie.

    A display name containing a season/episode marker such as ``S01E02`` is
    an episode of the show named by the text before the first marker; its
    season is the first three characters of the marker. Anything else is a
    movie.

    Raises:
        ClassificationError: If the show prefix or movie name is empty once
            normalized or sanitized.
    """
    display_name = record.display_name
    match = SEASON_EPISODE_PATTERN.search(display_name)

    if match is None:
        canonical = normalize_name(display_name)
        if not canonical or not sanitize_name(display_name):
            raise ClassificationError(f"Invalid movie name: {display_name!r}")
        return ClassifiedTarget(
            kind=MediaKind.MOVIE,
            canonical_name=canonical,
            display_name=display_name,
            name_prefix=display_name,
            group_label=group_label,
        )

    prefix = display_name[: match.start()]
    canonical = normalize_name(prefix)
    if not canonical or not sanitize_name(prefix):
        raise ClassificationError(f"Invalid TV show name format: {display_name!r}")
    return ClassifiedTarget(
        kind=MediaKind.EPISODE,
        canonical_name=canonical,
        display_name=display_name,
        name_prefix=prefix,
        group_label=group_label,
        season=match.group(0)[:3],
    )
