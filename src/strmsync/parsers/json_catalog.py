from __future__ import annotations

import json
from typing import Any, List

from ..models import StreamRecord
from .m3u import decode_payload

URL_FIELD = "url"
NAME_FIELD = "tvg_name"
GROUP_FIELD = "group_title"


def _string_field(entry: dict[str, Any], key: str, index: int) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Catalog entry {index} field '{key}' must be a string, got {type(value).__name__}")
    return value


def parse_json_catalog(payload: bytes | str) -> List[StreamRecord]:
    """Decode a JSON array of ``{url, tvg_name, group_title}`` objects.

    Missing fields default to an empty string. No extension filtering is
    applied to this source.

    Raises:
        ValueError: If the payload is not valid JSON, is not an array, or
            contains an entry that is not an object with string fields.
    """
    try:
        data = json.loads(decode_payload(payload))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON catalog: {exc}") from exc

    if not isinstance(data, list):
        raise ValueError(f"JSON catalog must be an array of records, got {type(data).__name__}")

    records: List[StreamRecord] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Catalog entry {index} must be an object, got {type(entry).__name__}")
        records.append(
            StreamRecord(
                url=_string_field(entry, URL_FIELD, index),
                display_name=_string_field(entry, NAME_FIELD, index),
                group_label=_string_field(entry, GROUP_FIELD, index),
            )
        )
    return records
