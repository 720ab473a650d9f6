from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from rich.console import Console

from .banner import build_banner_info, print_startup_banner
from .catalog import CatalogError
from .config import build_config, build_sample_config, load_config_data, merge_overrides
from .logging_utils import configure_logging, render_fields_block, resolve_level
from .processor import Processor
from .utils import dump_yaml_file
from .validation import validate_config_data
from .validation_output import ValidationFormatter
from .version import __version__

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

CONFIG_ENV_VAR = "STRMSYNC_CONFIG"
SAMPLE_CONFIG_NAME = "strmsync.sample.yaml"
COMMANDS = ("run", "validate-config", "sample-config")

EXIT_OK = 0
EXIT_RUN_ERRORS = 1
EXIT_CONFIG_ERROR = 2
EXIT_CATALOG_ERROR = 3
EXIT_INTERRUPTED = 130


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"Path to the YAML configuration file (default: ${CONFIG_ENV_VAR})",
    )


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    overrides = parser.add_argument_group("configuration overrides")
    overrides.add_argument("--name", help="Name shown in the banner and run recap")
    overrides.add_argument("--tv-shows-dir", help="Root directory for TV episode stream files")
    overrides.add_argument("--movies-dir", help="Root directory for movie stream files")
    overrides.add_argument("--json-url", action="append", default=[], metavar="URL", help="Add a JSON catalog source (repeatable)")
    overrides.add_argument("--m3u-url", action="append", default=[], metavar="URL", help="Add an M3U playlist source (repeatable)")
    overrides.add_argument("--file-types", help="Comma separated list of accepted playlist URL extensions")
    overrides.add_argument("--delete-limit", type=int, help="Maximum stream files deleted per run")
    overrides.add_argument("--use-group", action="store_true", help="Add a group folder under each library root")
    overrides.add_argument("--default-group", help="Group used when an entry has none")
    overrides.add_argument("--exclude-group", help="Comma separated list of groups to skip")
    overrides.add_argument("--include-group", help="Comma separated list of groups to process exclusively")
    overrides.add_argument("--download-dir", help="Directory where fetched catalogs are saved")
    overrides.add_argument("--retain-downloads", action="store_true", help="Keep fetched catalog copies after the run")
    overrides.add_argument("--log-file", help="Append log output to this file")

    output = parser.add_argument_group("output")
    output.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    verbosity = output.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log per-entry decisions (DEBUG)")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    output.add_argument(
        "--write-keep-report",
        nargs="?",
        const="",
        default=None,
        metavar="PATH",
        help="Write the kept stream-file paths after the run (optionally to PATH)",
    )
    output.add_argument("--no-banner", action="store_true", help="Do not print the startup banner")
    output.add_argument("--save-config", type=Path, metavar="PATH", help="Write the effective configuration to PATH")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strmsync",
        description="Reconcile a tree of .strm stream files against JSON and M3U catalogs.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run one reconciliation pass (default)")
    _add_config_argument(run_parser)
    _add_run_arguments(run_parser)

    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    _add_config_argument(validate_parser)

    sample_parser = subparsers.add_parser("sample-config", help="Write a sample configuration file")
    sample_parser.add_argument("path", nargs="?", type=Path, default=Path(SAMPLE_CONFIG_NAME))
    sample_parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Directory the sample's library, download and log paths live under (default: current directory)",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    args_list = list(sys.argv[1:] if argv is None else argv)
    if not args_list or (args_list[0] not in COMMANDS and args_list[0] not in ("-h", "--help", "--version")):
        args_list = ["run", *args_list]
    return build_parser().parse_args(args_list)


def _resolve_config_path(args: argparse.Namespace) -> Optional[Path]:
    if getattr(args, "config", None):
        return args.config
    env_value = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_value) if env_value else None


def build_overrides(args: argparse.Namespace) -> Tuple[Dict[str, Any], List[Dict[str, str]]]:
    """Translate command-line flags into settings overrides and extra sources."""
    keep_report: Optional[Dict[str, Any]] = None
    if args.write_keep_report is not None:
        keep_report = {"enabled": True}
        if args.write_keep_report:
            keep_report["path"] = args.write_keep_report

    settings: Dict[str, Any] = {
        "name": args.name,
        "tv_shows_dir": args.tv_shows_dir,
        "movies_dir": args.movies_dir,
        "file_types": args.file_types,
        "delete_limit": args.delete_limit,
        "use_group": True if args.use_group else None,
        "default_group": args.default_group,
        "exclude_groups": args.exclude_group,
        "include_groups": args.include_group,
        "download_dir": args.download_dir,
        "retain_downloads": True if args.retain_downloads else None,
        "logging": {"file": args.log_file, "level": args.log_level.upper() if args.log_level else None},
        "keep_report": keep_report,
    }
    sources = [{"url": url, "format": "json"} for url in args.json_url]
    sources += [{"url": url, "format": "m3u"} for url in args.m3u_url]
    return settings, sources


def _console_level(args: argparse.Namespace, configured: str) -> int:
    if args.log_level:
        return resolve_level(args.log_level)
    if args.verbose:
        return logging.DEBUG
    if args.quiet:
        return logging.WARNING
    return resolve_level(configured)


def run_run(args: argparse.Namespace) -> int:
    try:
        early_level = _console_level(args, "INFO")
    except ValueError as exc:
        CONSOLE.print(f"[bold red]{exc}[/bold red]")
        return EXIT_CONFIG_ERROR
    configure_logging(early_level)

    config_path = _resolve_config_path(args)
    try:
        data = load_config_data(config_path) if config_path else {}
        settings_overrides, extra_sources = build_overrides(args)
        merged = merge_overrides(data, settings_overrides, extra_sources)
        config = build_config(merged)
    except (ValueError, yaml.YAMLError) as exc:
        LOGGER.error(
            render_fields_block(
                "Configuration Error",
                {"Config": config_path or "(command line only)", "Error": exc},
                pad_top=True,
            )
        )
        return EXIT_CONFIG_ERROR

    settings = config.settings
    level = _console_level(args, settings.logging.level)
    configure_logging(level, settings.logging.file)

    if args.save_config:
        dump_yaml_file(args.save_config, merged)
        LOGGER.info(render_fields_block("Configuration Saved", {"Path": args.save_config}, pad_top=True))

    if not args.no_banner:
        print_startup_banner(build_banner_info(config, verbose=args.verbose), CONSOLE)

    processor = Processor(config, verbose=args.verbose)
    try:
        context = processor.process_all()
    except CatalogError as exc:
        LOGGER.error(render_fields_block("Catalog Error", {"Error": exc}, pad_top=True))
        return EXIT_CATALOG_ERROR

    return EXIT_RUN_ERRORS if context.stats.errors else EXIT_OK


def run_validate_config(args: argparse.Namespace) -> int:
    config_path = _resolve_config_path(args)
    if config_path is None:
        CONSOLE.print(f"[bold red]No configuration file given; use --config or set {CONFIG_ENV_VAR}.[/bold red]")
        return 1
    try:
        data = load_config_data(config_path)
    except (ValueError, yaml.YAMLError) as exc:
        CONSOLE.print(f"[bold red]Failed to load configuration:[/bold red] {exc}")
        return 1

    report = validate_config_data(data)
    ValidationFormatter(console=CONSOLE).format_report(report)
    return 0 if report.is_valid else 1


def run_sample_config(args: argparse.Namespace) -> int:
    target: Path = args.path
    if target.exists():
        CONSOLE.print(f"[bold red]Refusing to overwrite existing file:[/bold red] {target}")
        return 1
    base_dir = (args.base_dir or Path.cwd()).expanduser()
    dump_yaml_file(target, build_sample_config(base_dir))
    CONSOLE.print(f"[bold green]✓ Sample configuration written to {target}[/bold green]")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    handlers = {
        "run": run_run,
        "validate-config": run_validate_config,
        "sample-config": run_sample_config,
    }
    try:
        return handlers[args.command](args)
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
