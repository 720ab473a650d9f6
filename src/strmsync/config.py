from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from .catalog import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from .group_filter import DEFAULT_GROUP, ensure_disjoint, group_keys
from .logging_utils import render_fields_block
from .utils import load_yaml_file, validate_url
from .validation import collect_unknown_keys

LOGGER = logging.getLogger(__name__)

SOURCE_FORMATS = ("json", "m3u")
DEFAULT_FILE_TYPES = [
    "avi",
    "flv",
    "m4v",
    "mkv",
    "mkv2",
    "mkv5",
    "mkvv",
    "mp4",
    "mp41",
    "mp42",
    "mp44",
    "mpg",
    "wmv",
]
DEFAULT_DELETE_LIMIT = 25
DOWNLOAD_DIR_NAME = "Download"
LOG_DIR_NAME = "Log"
KEEP_REPORT_NAME = "keep_files.txt"


@dataclass
class SourceConfig:
    url: str
    format: str  # json | m3u


@dataclass
class LoggingSettings:
    level: str = "INFO"
    file: Path | None = None


@dataclass
class KeepReportSettings:
    enabled: bool = False
    path: Path | None = None


@dataclass
class Settings:
    tv_shows_dir: Path
    movies_dir: Path
    name: str | None = None
    file_types: list[str] = field(default_factory=lambda: list(DEFAULT_FILE_TYPES))
    delete_limit: int = DEFAULT_DELETE_LIMIT
    use_group: bool = False
    default_group: str = DEFAULT_GROUP
    include_groups: list[str] = field(default_factory=list)
    exclude_groups: list[str] = field(default_factory=list)
    request_timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    working_dir: Path = field(default_factory=lambda: Path("."))
    download_dir: Path | None = None
    retain_downloads: bool = False
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    keep_report: KeepReportSettings = field(default_factory=KeepReportSettings)

    @property
    def roots(self) -> tuple[Path, Path]:
        return (self.tv_shows_dir, self.movies_dir)

    @property
    def effective_download_dir(self) -> Path:
        return self.download_dir or self.working_dir / DOWNLOAD_DIR_NAME

    @property
    def keep_report_path(self) -> Path:
        return self.keep_report.path or self.working_dir / LOG_DIR_NAME / KEEP_REPORT_NAME


@dataclass
class AppConfig:
    settings: Settings
    sources: list[SourceConfig] = field(default_factory=list)


def _ensure_string_list(value: Any, *, field_name: str) -> list[str]:
    """Accept a list of strings or a comma separated string; drop empties."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be provided as a list of strings")
    result: list[str] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise ValueError(f"'{field_name}[{index}]' must be a string")
        cleaned = entry.strip()
        if cleaned:
            result.append(cleaned)
    return result


def _as_bool(value: Any, *, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValueError(f"'{field_name}' must be a boolean")


def _optional_path(value: Any, *, field_name: str) -> Path | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{field_name}' must be a string path")
    text = value.strip()
    return Path(text).expanduser() if text else None


def _build_sources(data: Any) -> list[SourceConfig]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("'sources' must be provided as a list of mappings")

    sources: list[SourceConfig] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"'sources[{index}]' must be a mapping with 'url' and 'format'")
        url = str(entry.get("url") or "").strip()
        if not url:
            raise ValueError(f"'sources[{index}].url' is required")
        source_format = str(entry.get("format") or "").strip().lower()
        if source_format not in SOURCE_FORMATS:
            raise ValueError(f"'sources[{index}].format' must be one of {', '.join(SOURCE_FORMATS)}, got: {source_format!r}")
        if url.lower().startswith(("http://", "https://")) and not validate_url(url):
            raise ValueError(f"'sources[{index}].url' must be a valid http/https URL, got: {url}")
        sources.append(SourceConfig(url=url, format=source_format))
    return sources


def _build_logging_settings(data: Any) -> LoggingSettings:
    if not data:
        return LoggingSettings()
    if not isinstance(data, dict):
        raise ValueError("'settings.logging' must be provided as a mapping when specified")
    level = str(data.get("level") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"'settings.logging.level' is not a known log level: {level}")
    return LoggingSettings(level=level, file=_optional_path(data.get("file"), field_name="settings.logging.file"))


def _build_keep_report_settings(data: Any) -> KeepReportSettings:
    if not data:
        return KeepReportSettings()
    if not isinstance(data, dict):
        raise ValueError("'settings.keep_report' must be provided as a mapping when specified")
    return KeepReportSettings(
        enabled=_as_bool(data.get("enabled"), field_name="settings.keep_report.enabled", default=False),
        path=_optional_path(data.get("path"), field_name="settings.keep_report.path"),
    )


def _build_settings(data: dict[str, Any]) -> Settings:
    missing = [key for key in ("tv_shows_dir", "movies_dir") if not str(data.get(key) or "").strip()]
    if missing:
        raise ValueError(f"Missing required settings: {', '.join(f'settings.{key}' for key in missing)}")

    file_types = [entry.lower() for entry in _ensure_string_list(data.get("file_types"), field_name="settings.file_types")]

    include_groups = sorted(group_keys(_ensure_string_list(data.get("include_groups"), field_name="settings.include_groups")))
    exclude_groups = sorted(group_keys(_ensure_string_list(data.get("exclude_groups"), field_name="settings.exclude_groups")))
    ensure_disjoint(include_groups, exclude_groups)

    delete_limit_raw = data.get("delete_limit", DEFAULT_DELETE_LIMIT)
    if isinstance(delete_limit_raw, bool):
        raise ValueError("'settings.delete_limit' must be an integer")
    try:
        delete_limit = int(delete_limit_raw)
    except (TypeError, ValueError) as exc:
        raise ValueError("'settings.delete_limit' must be an integer") from exc
    if delete_limit < 0:
        raise ValueError("'settings.delete_limit' must be greater than or equal to 0")

    try:
        request_timeout = float(data.get("request_timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ValueError("'settings.request_timeout' must be a number") from exc
    if request_timeout <= 0:
        raise ValueError("'settings.request_timeout' must be greater than 0")

    default_group = str(data.get("default_group") or DEFAULT_GROUP).strip() or DEFAULT_GROUP
    name = str(data["name"]).strip() if data.get("name") else None

    return Settings(
        tv_shows_dir=Path(str(data["tv_shows_dir"]).strip()).expanduser(),
        movies_dir=Path(str(data["movies_dir"]).strip()).expanduser(),
        name=name or None,
        file_types=file_types or list(DEFAULT_FILE_TYPES),
        delete_limit=delete_limit,
        use_group=_as_bool(data.get("use_group"), field_name="settings.use_group", default=False),
        default_group=default_group,
        include_groups=include_groups,
        exclude_groups=exclude_groups,
        request_timeout=request_timeout,
        user_agent=str(data.get("user_agent") or DEFAULT_USER_AGENT),
        working_dir=_optional_path(data.get("working_dir"), field_name="settings.working_dir") or Path("."),
        download_dir=_optional_path(data.get("download_dir"), field_name="settings.download_dir"),
        retain_downloads=_as_bool(data.get("retain_downloads"), field_name="settings.retain_downloads", default=False),
        logging=_build_logging_settings(data.get("logging")),
        keep_report=_build_keep_report_settings(data.get("keep_report")),
    )


def build_config(data: Mapping[str, Any]) -> AppConfig:
    """Build an ``AppConfig`` from a raw configuration mapping.

    Unrecognized keys are logged as warnings. Structural problems, missing
    required values and overlapping include/exclude groups raise
    ``ValueError``.
    """
    for path in collect_unknown_keys(data):
        LOGGER.warning(render_fields_block("Unrecognized Configuration Key", {"Key": path}, pad_top=True))

    settings_raw = data.get("settings") or {}
    if not isinstance(settings_raw, dict):
        raise ValueError("'settings' must be provided as a mapping")

    settings = _build_settings(settings_raw)
    sources = _build_sources(data.get("sources"))
    if not sources:
        raise ValueError("At least one catalog source is required under 'sources'")
    return AppConfig(settings=settings, sources=sources)


def merge_overrides(
    data: Mapping[str, Any],
    settings_overrides: Mapping[str, Any] | None = None,
    extra_sources: Iterable[Mapping[str, Any]] = (),
) -> dict[str, Any]:
    """Return a copy of ``data`` with command-line overrides applied.

    Nested mappings in ``settings_overrides`` are merged key by key; other
    values replace the file's. ``extra_sources`` are appended to the list.
    """
    merged: dict[str, Any] = deepcopy(dict(data))
    settings = merged.get("settings")
    if not isinstance(settings, dict):
        settings = {}
    for key, value in (settings_overrides or {}).items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = {k: v for k, v in value.items() if v is not None}
            if not value:
                continue
            existing = settings.get(key)
            if isinstance(existing, dict):
                existing.update(value)
                continue
        settings[key] = deepcopy(value)
    merged["settings"] = settings

    extra = [dict(source) for source in extra_sources]
    if extra:
        sources = merged.get("sources")
        merged["sources"] = (list(sources) if isinstance(sources, list) else []) + extra
    return merged


def build_sample_config(base_dir: Path) -> dict[str, Any]:
    """Return a starter configuration rooted at ``base_dir``."""
    return {
        "settings": {
            "name": "Sample",
            "tv_shows_dir": str(base_dir / "vod_tv"),
            "movies_dir": str(base_dir / "vod_movie"),
            "file_types": list(DEFAULT_FILE_TYPES),
            "delete_limit": DEFAULT_DELETE_LIMIT,
            "use_group": False,
            "default_group": DEFAULT_GROUP,
            "include_groups": [],
            "exclude_groups": [],
            "request_timeout": DEFAULT_TIMEOUT,
            "working_dir": str(base_dir),
            "download_dir": str(base_dir / DOWNLOAD_DIR_NAME),
            "retain_downloads": False,
            "logging": {"level": "INFO", "file": str(base_dir / LOG_DIR_NAME / "strmsync.log")},
            "keep_report": {"enabled": False, "path": str(base_dir / LOG_DIR_NAME / KEEP_REPORT_NAME)},
        },
        "sources": [
            {"url": "https://example.com/catalog.json", "format": "json"},
            {"url": "https://example.com/playlist.m3u", "format": "m3u"},
        ],
    }


def load_config_data(path: Path) -> dict[str, Any]:
    try:
        return load_yaml_file(path)
    except FileNotFoundError as exc:
        raise ValueError(f"Configuration file not found: {path}") from exc
    except OSError as exc:
        raise ValueError(f"Unable to read configuration file {path}: {exc.strerror or exc}") from exc


def load_config(path: Path) -> AppConfig:
    return build_config(load_config_data(path))
