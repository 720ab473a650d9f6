from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, MutableSequence, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "
FILE_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _coerce_items(fields: FieldMapping) -> list[tuple[str, object]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def _wrap_text(text: str, width: int) -> list[str]:
    if not text:
        return [""]
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width) or [""])
    return lines


class LogBlockBuilder:
    """Builds a titled, aligned multi-line log message."""

    def __init__(
        self,
        title: str,
        *,
        wrap_width: int = DEFAULT_WRAP_WIDTH,
        label_width: int = DEFAULT_LABEL_WIDTH,
        indent: str = DEFAULT_INDENT,
        pad_top: bool = True,
    ) -> None:
        self.title = title
        self.wrap_width = wrap_width
        self.label_width = label_width
        self.indent = indent
        self.lines: MutableSequence[str] = []
        if pad_top:
            self.lines.append("")
        self.lines.append(title)
        self.lines.append("-" * len(title))

    def add_blank_line(self) -> None:
        if self.lines and self.lines[-1] != "":
            self.lines.append("")

    def add_fields(self, fields: FieldMapping | None) -> None:
        items = _coerce_items(fields) if fields else []
        if not items:
            return

        computed_width = max(len(str(key)) for key, _ in items)
        label_width = max(min(computed_width, self.label_width), 8)
        value_width = max(self.wrap_width - len(self.indent) - label_width - 4, 32)

        for key, value in items:
            wrapped = _wrap_text(_stringify(value), value_width)
            self.lines.append(f"{self.indent}{str(key):<{label_width}}: {wrapped[0]}")
            for continuation in wrapped[1:]:
                self.lines.append(f"{self.indent}{'':<{label_width}}  {continuation}")

    def add_section(self, heading: str, items: Iterable[str], *, empty_label: str = "(none)") -> None:
        self.add_blank_line()
        self.lines.append(f"{heading}:")
        materialized = [item for item in items if item is not None]
        if not materialized:
            self.lines.append(f"{self.indent}{empty_label}")
            return

        bullet_indent = self.indent + "- "
        continuation_indent = self.indent + "  "
        bullet_width = max(self.wrap_width - len(bullet_indent), 24)
        for item in materialized:
            wrapped = _wrap_text(_stringify(item), bullet_width)
            self.lines.append(f"{bullet_indent}{wrapped[0]}")
            for continuation in wrapped[1:]:
                self.lines.append(f"{continuation_indent}{continuation}")

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


def resolve_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Map a level name (``"debug"``, ``"INFO"``) or number to a logging level."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def configure_logging(
    level: int,
    log_file: Optional[Path] = None,
    *,
    console_level: Optional[int] = None,
    console: Optional[Console] = None,
) -> None:
    """Install a rich console handler and, optionally, an appending file handler."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(console_level if console_level is not None else level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        root.addHandler(file_handler)

    effective = min(level, console_level) if console_level is not None else level
    root.setLevel(effective)
