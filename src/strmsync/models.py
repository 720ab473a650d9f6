from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class MediaKind(str, Enum):
    EPISODE = "episode"
    MOVIE = "movie"


@dataclass(frozen=True, slots=True)
class StreamRecord:
    """One catalog entry: where to play it from and what it is called."""

    url: str
    display_name: str
    group_label: str = ""


@dataclass(frozen=True, slots=True)
class ClassifiedTarget:
    """A record after group filtering and TV/movie classification.

    ``canonical_name`` is the human readable show or movie title. ``name_prefix``
    and ``display_name`` keep the raw text the path segments are sanitized from.
    ``season`` is only set for episodes.
    """

    kind: MediaKind
    canonical_name: str
    display_name: str
    name_prefix: str
    group_label: str
    season: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.kind is MediaKind.EPISODE) != (self.season is not None):
            raise ValueError(f"season must be set for episodes only, got {self.kind.value} with season={self.season!r}")


@dataclass(frozen=True, slots=True)
class TargetPath:
    directory: Path
    file_path: Path


@dataclass(slots=True)
class RunStatistics:
    directories_created: int = 0
    files_kept: int = 0
    files_removed: int = 0
    empty_dirs_removed: int = 0
    rejected_entries: int = 0
    filtered_entries: int = 0
    invalid_entries: int = 0
    json_sources_processed: int = 0
    m3u_sources_processed: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    filtered_by_group: Dict[str, int] = field(default_factory=dict)

    def register_directory_created(self) -> None:
        self.directories_created += 1

    def register_kept(self) -> None:
        self.files_kept += 1

    def register_removed(self) -> None:
        self.files_removed += 1

    def register_empty_dir_removed(self) -> None:
        self.empty_dirs_removed += 1

    def register_rejected(self) -> None:
        self.rejected_entries += 1

    def register_filtered(self, group_label: str) -> None:
        self.filtered_entries += 1
        self.filtered_by_group[group_label] = self.filtered_by_group.get(group_label, 0) + 1

    def register_invalid(self, message: str) -> None:
        self.invalid_entries += 1
        self.register_error(message)

    def register_source(self, source_format: str) -> None:
        if source_format == "json":
            self.json_sources_processed += 1
        elif source_format == "m3u":
            self.m3u_sources_processed += 1

    def register_warning(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def register_error(self, message: str) -> None:
        self.errors.append(message)

    def as_counts(self) -> Dict[str, int]:
        return {
            "Directories Created": self.directories_created,
            "Stream Files Kept": self.files_kept,
            "Stream Files Removed": self.files_removed,
            "Empty Directories Removed": self.empty_dirs_removed,
            "Rejected Extensions": self.rejected_entries,
            "Filtered By Group": self.filtered_entries,
            "Invalid Entries": self.invalid_entries,
            "JSON Sources": self.json_sources_processed,
            "M3U Sources": self.m3u_sources_processed,
        }
