"""Catalog loading: fetch each configured source and normalize it.

Sources are fetched over HTTP with a ``requests`` session (or read from a
local path) and decoded by the parser matching their format. Any failure
while fetching or parsing a source is fatal to the run and surfaces as a
``CatalogError``; there is no retry.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional
from urllib.parse import unquote, urlparse

import requests

from .logging_utils import render_fields_block
from .models import RunStatistics, StreamRecord
from .parsers import parse_json_catalog, parse_m3u
from .utils import ensure_directory, validate_url

if TYPE_CHECKING:
    from .config import SourceConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 30.0
DOWNLOAD_PREFIX = "strmsync"


class CatalogError(RuntimeError):
    """Raised when a catalog source cannot be loaded."""


class CatalogFetchError(CatalogError):
    """Raised when a catalog source cannot be downloaded or read."""


class CatalogParseError(CatalogError):
    """Raised when a catalog source cannot be decoded."""


def _local_path(location: str) -> Optional[Path]:
    if validate_url(location):
        return None
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise CatalogFetchError(f"Unsupported catalog location: {location}")
    return Path(location).expanduser()


class CatalogFetcher:
    """Downloads catalog sources and keeps track of saved copies.

    When ``download_dir`` is set, every payload is saved there as
    ``strmsync_<index>_<timestamp>.<format>`` so a run can be inspected
    afterwards. ``cleanup()`` deletes the copies saved by this fetcher.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        download_dir: Optional[Path] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self.download_dir = download_dir
        self.session = session or requests.Session()
        self.saved_files: List[Path] = []

    def fetch(self, location: str) -> bytes:
        local = _local_path(location)
        if local is not None:
            try:
                return local.read_bytes()
            except OSError as exc:
                raise CatalogFetchError(f"Unable to read catalog file {local}: {exc}") from exc

        LOGGER.debug("Catalog GET %s", location)
        try:
            response = self.session.get(
                location,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise CatalogFetchError(f"Unable to download catalog {location}: {exc}") from exc
        return response.content

    def save_copy(self, payload: bytes, index: int, source_format: str) -> Optional[Path]:
        if self.download_dir is None:
            return None
        timestamp = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
        target = self.download_dir / f"{DOWNLOAD_PREFIX}_{index}_{timestamp}.{source_format}"
        try:
            ensure_directory(self.download_dir)
            target.write_bytes(payload)
        except OSError as exc:
            raise CatalogFetchError(f"Unable to save catalog copy {target}: {exc}") from exc
        self.saved_files.append(target)
        LOGGER.debug(render_fields_block("Saved Catalog Copy", {"Path": target}, pad_top=True))
        return target

    def cleanup(self) -> int:
        """Delete saved copies; returns how many were removed."""
        removed = 0
        for path in self.saved_files:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                LOGGER.error(render_fields_block("Download Cleanup Failed", {"Path": path, "Error": exc}, pad_top=True))
                continue
            removed += 1
            LOGGER.debug(render_fields_block("Removed Catalog Copy", {"Path": path}, pad_top=True))
        self.saved_files.clear()
        return removed

    def close(self) -> None:
        self.session.close()


def parse_source(payload: bytes, source_format: str, file_types: Sequence[str], stats: RunStatistics) -> List[StreamRecord]:
    try:
        if source_format == "json":
            return parse_json_catalog(payload)
        if source_format == "m3u":
            return parse_m3u(payload, file_types, stats)
    except ValueError as exc:
        raise CatalogParseError(str(exc)) from exc
    raise CatalogParseError(f"Unsupported catalog format: {source_format}")


def load_catalog(
    sources: Sequence[SourceConfig],
    fetcher: CatalogFetcher,
    *,
    file_types: Sequence[str],
    stats: RunStatistics,
) -> List[StreamRecord]:
    """Fetch and parse every source, JSON sources first, in configured order.

    Raises:
        CatalogError: On the first source that cannot be fetched or parsed.
    """
    ordered = [source for source in sources if source.format == "json"]
    ordered += [source for source in sources if source.format != "json"]

    records: List[StreamRecord] = []
    per_format_index: dict[str, int] = {}
    for source in ordered:
        index = per_format_index.get(source.format, 0)
        per_format_index[source.format] = index + 1
        LOGGER.info(
            render_fields_block(
                "Loading Catalog Source",
                {"Format": source.format.upper(), "Location": source.url},
                pad_top=True,
            )
        )
        payload = fetcher.fetch(source.url)
        fetcher.save_copy(payload, index, source.format)
        try:
            source_records = parse_source(payload, source.format, file_types, stats)
        except CatalogParseError as exc:
            raise CatalogParseError(f"{source.url}: {exc}") from exc
        stats.register_source(source.format)
        LOGGER.debug(
            render_fields_block(
                "Catalog Source Loaded",
                {"Location": source.url, "Records": len(source_records)},
                pad_top=True,
            )
        )
        records.extend(source_records)
    return records
