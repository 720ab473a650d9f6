from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml


# Characters that are unsafe in file names on at least one common filesystem
# or media server.
FORBIDDEN_CHARS_PATTERN = re.compile(r"[<>:\"/\\|?*\[\]#%&{}$!'+=@~`]")
TRAILING_FILLER_PATTERN = re.compile(r"[\s_]+$")


def normalize_name(name: str) -> str:
    """Turn a dotted release-style name into a readable title.

    Ellipses are dropped, remaining periods become spaces, and surrounding
    whitespace is trimmed: ``"Show.Name..."`` -> ``"Show Name"``.
    """
    name = name.replace("...", "").replace("..", "")
    name = name.replace(".", " ")
    return name.strip()


def sanitize_name(name: str) -> str:
    """Return ``name`` as a single filesystem-safe path segment.

    Forbidden characters become underscores and periods become underscores.
    Trailing underscores, periods, colons and spaces are stripped, so the
    transform is idempotent.
    """
    sanitized = FORBIDDEN_CHARS_PATTERN.sub("_", name).strip()
    sanitized = sanitized.rstrip("_.:")
    sanitized = sanitized.replace("..", ".")
    sanitized = sanitized.replace(".", "_")
    return TRAILING_FILLER_PATTERN.sub("", sanitized)


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping at the top level")
    return expand_env(data)


def dump_yaml_file(path: Path, data: Dict[str, Any]) -> None:
    ensure_directory(path.parent)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False, allow_unicode=True)


def validate_url(url: Optional[str]) -> bool:
    """Validate that URL is a valid http/https URL."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False
