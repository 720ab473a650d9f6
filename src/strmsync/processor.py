from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from pathlib import Path

from rich.progress import Progress

from .catalog import CatalogFetcher, load_catalog
from .classifier import classify
from .config import AppConfig
from .destination_builder import build_target_path, format_relative_destination
from .group_filter import GroupFilter
from .logging_utils import render_fields_block
from .materializer import materialize_stream, prepare_roots
from .models import StreamRecord
from .processing_state import RunContext
from .pruner import prune_roots
from .run_summary import log_run_recap

LOGGER = logging.getLogger(__name__)


class Processor:
    """Runs one reconciliation pass of the library roots against the catalog.

    Stages run in order: load every source, filter and classify each record,
    write its stream file, then prune both roots against the keep-set built
    along the way.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        fetcher: CatalogFetcher | None = None,
        write_keep_report: bool = False,
        verbose: bool = False,
    ) -> None:
        self.config = config
        settings = config.settings
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or CatalogFetcher(
            timeout=settings.request_timeout,
            user_agent=settings.user_agent,
            download_dir=settings.effective_download_dir,
        )
        self.group_filter = GroupFilter(
            include=settings.include_groups,
            exclude=settings.exclude_groups,
            default_group=settings.default_group,
        )
        self.write_keep_report = write_keep_report or settings.keep_report.enabled
        self.verbose = verbose

    @staticmethod
    def _format_log(event: str, fields: Mapping[str, object] | None = None) -> str:
        return render_fields_block(event, fields or {}, pad_top=True)

    def process_all(self) -> RunContext:
        """Run the full pipeline once and return the run's context.

        Raises:
            CatalogError: If any source cannot be fetched or parsed. The library
                roots are not touched in that case.
        """
        settings = self.config.settings
        context = RunContext(delete_limit=settings.delete_limit)
        run_started = time.perf_counter()

        try:
            records = load_catalog(
                self.config.sources,
                self.fetcher,
                file_types=settings.file_types,
                stats=context.stats,
            )
            LOGGER.info(
                self._format_log(
                    "Catalog Loaded",
                    {
                        "Records": len(records),
                        "Rejected Extensions": context.stats.rejected_entries,
                        "Include Groups": settings.include_groups or "(all)",
                        "Exclude Groups": settings.exclude_groups or "(none)",
                    },
                )
            )

            prepare_roots(settings.roots, context)

            with Progress(disable=not LOGGER.isEnabledFor(logging.INFO)) as progress:
                task_id = progress.add_task("Writing stream files", total=len(records))
                for record in records:
                    self._process_record(record, context)
                    progress.advance(task_id, 1)

            failed_roots = prune_roots(settings.roots, context)
            keep_report = self._write_keep_report(context)

            duration = time.perf_counter() - run_started
            log_run_recap(
                context.stats,
                duration,
                name=settings.name,
                failed_roots=failed_roots,
                keep_report=keep_report,
                verbose=self.verbose,
            )
            return context
        finally:
            self._finish_downloads()

    def _process_record(self, record: StreamRecord, context: RunContext) -> None:
        settings = self.config.settings
        decision = self.group_filter.evaluate(record.group_label)
        if not decision.accepted:
            context.stats.register_filtered(decision.label)
            LOGGER.debug(
                self._format_log(
                    "Skipping Filtered Group",
                    {"Name": record.display_name, "Group": decision.label, "Reason": decision.reason},
                )
            )
            return

        try:
            if not record.url.strip():
                raise ValueError("entry has no playback URL")
            target = classify(record, decision.label)
            destination = build_target_path(
                target,
                tv_root=settings.tv_shows_dir,
                movies_root=settings.movies_dir,
                use_group=settings.use_group,
                default_group=settings.default_group,
            )
        except ValueError as exc:
            context.stats.register_invalid(f"{record.display_name!r}: {exc}")
            LOGGER.error(
                self._format_log(
                    "Invalid Catalog Entry",
                    {"Name": record.display_name, "URL": record.url, "Error": exc},
                )
            )
            return

        LOGGER.debug(
            self._format_log(
                "Classified Catalog Entry",
                {
                    "Name": record.display_name,
                    "Kind": target.kind.value,
                    "Title": target.canonical_name,
                    "Season": target.season or "-",
                    "Destination": format_relative_destination(destination.file_path, settings.roots),
                },
            )
        )
        materialize_stream(destination, record.url, context)

    def _write_keep_report(self, context: RunContext) -> Path | None:
        if not self.write_keep_report:
            return None
        path = self.config.settings.keep_report_path
        try:
            context.keep_set.write(path)
        except OSError as exc:
            LOGGER.error(self._format_log("Keep Report Failed", {"Path": path, "Error": exc}))
            context.stats.register_error(f"Unable to write keep report {path}: {exc}")
            return None
        LOGGER.info(self._format_log("Keep Report Written", {"Path": path, "Entries": len(context.keep_set)}))
        return path

    def _finish_downloads(self) -> None:
        if self.config.settings.retain_downloads:
            if self.fetcher.saved_files:
                LOGGER.info(
                    self._format_log(
                        "Catalog Copies Retained",
                        {"Directory": self.fetcher.download_dir, "Files": len(self.fetcher.saved_files)},
                    )
                )
        else:
            removed = self.fetcher.cleanup()
            if removed:
                LOGGER.debug(self._format_log("Catalog Copies Removed", {"Files": removed}))
        if self._owns_fetcher:
            self.fetcher.close()
