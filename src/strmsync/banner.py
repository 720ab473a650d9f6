from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import AppConfig
from .version import __version__


@dataclass
class BannerInfo:
    version: str
    name: str | None
    verbose: bool
    tv_shows_dir: str
    movies_dir: str
    json_sources: int
    m3u_sources: int
    delete_limit: int
    use_group: bool
    keep_report: bool


def build_banner_info(config: AppConfig, verbose: bool = False, keep_report: bool = False) -> BannerInfo:
    """Build a BannerInfo instance from AppConfig and runtime settings."""
    settings = config.settings
    return BannerInfo(
        version=__version__,
        name=settings.name,
        verbose=verbose,
        tv_shows_dir=str(settings.tv_shows_dir),
        movies_dir=str(settings.movies_dir),
        json_sources=sum(1 for source in config.sources if source.format == "json"),
        m3u_sources=sum(1 for source in config.sources if source.format == "m3u"),
        delete_limit=settings.delete_limit,
        use_group=settings.use_group,
        keep_report=keep_report or settings.keep_report.enabled,
    )


def print_startup_banner(info: BannerInfo, console: Console) -> None:
    """Print a styled startup banner showing version and configuration."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Version", f"[bold]{info.version}[/bold]")
    if info.name:
        table.add_row("Name", info.name)
    if info.verbose:
        table.add_row("Mode", "[cyan]VERBOSE[/cyan]")

    table.add_row("TV Shows", info.tv_shows_dir)
    table.add_row("Movies", info.movies_dir)
    table.add_row("Sources", f"[bold]{info.json_sources}[/bold] JSON · [bold]{info.m3u_sources}[/bold] M3U")
    table.add_row("Delete Limit", str(info.delete_limit))

    features = []
    if info.use_group:
        features.append("[green]Group Folders[/green]")
    if info.keep_report:
        features.append("[green]Keep Report[/green]")
    if features:
        table.add_row("Features", " · ".join(features))

    panel = Panel(
        table,
        title="[bold white]STRMSYNC[/bold white]",
        border_style="blue",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)
    console.print()
