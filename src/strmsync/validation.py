from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from jsonschema import Draft7Validator

from .group_filter import group_keys
from .utils import validate_url


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


_STRING_LIST = {
    "oneOf": [
        {"type": "array", "items": {"type": "string"}},
        {"type": "string"},
    ]
}
_FLAG = {"type": ["boolean", "integer"], "enum": [True, False, 0, 1]}
_LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "critical", "error", "warning", "info", "debug"]

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "settings": {
            "type": "object",
            "properties": {
                "name": {"type": ["string", "null"]},
                "tv_shows_dir": {"type": "string", "minLength": 1},
                "movies_dir": {"type": "string", "minLength": 1},
                "file_types": _STRING_LIST,
                "delete_limit": {"type": "integer", "minimum": 0},
                "use_group": _FLAG,
                "default_group": {"type": "string"},
                "include_groups": _STRING_LIST,
                "exclude_groups": _STRING_LIST,
                "request_timeout": {"type": "number", "exclusiveMinimum": 0},
                "user_agent": {"type": "string"},
                "working_dir": {"type": "string"},
                "download_dir": {"type": ["string", "null"]},
                "retain_downloads": _FLAG,
                "logging": {
                    "type": "object",
                    "properties": {
                        "level": {"type": "string", "enum": _LOG_LEVELS},
                        "file": {"type": ["string", "null"]},
                    },
                    "additionalProperties": True,
                },
                "keep_report": {
                    "type": "object",
                    "properties": {
                        "enabled": _FLAG,
                        "path": {"type": ["string", "null"]},
                    },
                    "additionalProperties": True,
                },
            },
            "required": ["tv_shows_dir", "movies_dir"],
            "additionalProperties": True,
        },
        "sources": {
            "type": "array",
            "minItems": 1,
            "items": {"$ref": "#/definitions/source"},
        },
    },
    "required": ["settings", "sources"],
    "additionalProperties": True,
    "definitions": {
        "source": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "minLength": 1},
                "format": {"type": "string", "enum": ["json", "m3u", "JSON", "M3U"]},
            },
            "required": ["url", "format"],
            "additionalProperties": True,
        },
    },
}


def _known_keys(schema: Mapping[str, Any]) -> Dict[str, Any]:
    properties = schema.get("properties") or {}
    return dict(properties)


def _resolve(schema: Mapping[str, Any]) -> Mapping[str, Any]:
    ref = schema.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/definitions/"):
        return CONFIG_SCHEMA["definitions"][ref.rsplit("/", 1)[-1]]
    return schema


def _walk_unknown(value: Any, schema: Mapping[str, Any], prefix: str, found: List[str]) -> None:
    schema = _resolve(schema)
    if isinstance(value, dict) and "properties" in schema:
        known = _known_keys(schema)
        for key, child in value.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if key not in known:
                found.append(path)
                continue
            _walk_unknown(child, known[key], path, found)
    elif isinstance(value, list) and isinstance(schema.get("items"), dict):
        for index, child in enumerate(value):
            _walk_unknown(child, schema["items"], f"{prefix}[{index}]", found)


def collect_unknown_keys(data: Mapping[str, Any]) -> List[str]:
    """Return dotted paths of configuration keys the tool does not recognize."""
    found: List[str] = []
    if isinstance(data, Mapping):
        _walk_unknown(dict(data), CONFIG_SCHEMA, "", found)
    return found


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def validate_config_data(data: Dict[str, Any]) -> ValidationReport:
    """Validate configuration data against schema and semantic rules.

    Schema violations and semantic problems (overlapping include/exclude
    groups, malformed source URLs) are errors. Unrecognized keys are
    warnings.
    """
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)

    for error in sorted(validator.iter_errors(data), key=lambda exc: list(exc.absolute_path)):
        report.errors.append(
            ValidationIssue(
                severity="error",
                path=_format_jsonschema_path(error.absolute_path),
                message=error.message,
                code="schema",
            )
        )

    for path in collect_unknown_keys(data):
        report.warnings.append(
            ValidationIssue(
                severity="warning",
                path=path,
                message="Unrecognized configuration key; it will be ignored",
                code="unknown-key",
            )
        )

    _validate_semantics(data, report)
    return report


def _group_values(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return frozenset()
    return group_keys(entry for entry in value if isinstance(entry, str))


def _validate_semantics(data: Dict[str, Any], report: ValidationReport) -> None:
    settings = data.get("settings") if isinstance(data, dict) else None
    if isinstance(settings, dict):
        overlap = sorted(_group_values(settings.get("include_groups")) & _group_values(settings.get("exclude_groups")))
        if overlap:
            report.errors.append(
                ValidationIssue(
                    severity="error",
                    path="settings.include_groups",
                    message=f"Groups listed in both include_groups and exclude_groups: {', '.join(overlap)}",
                    code="group-overlap",
                )
            )

    sources = data.get("sources") if isinstance(data, dict) else None
    if not isinstance(sources, list):
        return
    for index, source in enumerate(sources):
        if not isinstance(source, dict):
            continue
        url = source.get("url")
        if not isinstance(url, str):
            continue
        if url.lower().startswith(("http://", "https://")) and not validate_url(url):
            report.errors.append(
                ValidationIssue(
                    severity="error",
                    path=f"sources[{index}].url",
                    message=f"Source URL is not a valid http/https URL: {url}",
                    code="source-url",
                )
            )

