"""Playlist source parsers producing ``StreamRecord`` sequences."""

from .json_catalog import parse_json_catalog
from .m3u import has_allowed_extension, parse_m3u

__all__ = [
    "has_allowed_extension",
    "parse_json_catalog",
    "parse_m3u",
]
