from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import List, Optional

from ..logging_utils import render_fields_block
from ..models import RunStatistics, StreamRecord

LOGGER = logging.getLogger(__name__)

EXTINF_MARKER = "#EXTINF:"
TVG_NAME_PATTERN = re.compile(r'tvg-name="([^"]*)"')
GROUP_TITLE_PATTERN = re.compile(r'group-title="([^"]*)"')


def decode_payload(payload: bytes | str) -> str:
    if isinstance(payload, str):
        return payload
    return payload.decode("utf-8-sig", errors="replace")


def _attribute(pattern: re.Pattern[str], line: str) -> str:
    match = pattern.search(line)
    return match.group(1) if match else ""


def has_allowed_extension(url: str, file_types: Sequence[str]) -> bool:
    """Case-insensitive suffix check of ``url`` against ``file_types``."""
    lowered = url.lower()
    return any(lowered.endswith(ext.lower()) for ext in file_types if ext)


def parse_m3u(
    payload: bytes | str,
    file_types: Sequence[str],
    stats: Optional[RunStatistics] = None,
) -> List[StreamRecord]:
    """Parse an extended M3U playlist into stream records.

    Each ``#EXTINF:`` line opens a pending entry whose ``tvg-name`` and
    ``group-title`` attributes become the display name and group label. The
    next non-directive line is its URL. URLs whose suffix is not in
    ``file_types`` are dropped and counted as rejected. A trailing
    ``#EXTINF:`` line with no URL yields nothing.
    """
    records: List[StreamRecord] = []
    pending: Optional[tuple[str, str]] = None

    for raw_line in decode_payload(payload).splitlines():
        line = raw_line.strip()
        if line.startswith(EXTINF_MARKER):
            pending = (_attribute(TVG_NAME_PATTERN, line), _attribute(GROUP_TITLE_PATTERN, line))
            continue
        if pending is None or not line or line.startswith("#"):
            continue

        display_name, group_label = pending
        pending = None
        if not has_allowed_extension(line, file_types):
            LOGGER.debug(
                render_fields_block(
                    "Rejected Playlist Entry",
                    {"Name": display_name, "Group": group_label, "URL": line},
                    pad_top=True,
                )
            )
            if stats is not None:
                stats.register_rejected()
            continue
        records.append(StreamRecord(url=line, display_name=display_name, group_label=group_label))

    return records
