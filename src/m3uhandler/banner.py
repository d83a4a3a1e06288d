from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import AppConfig
from .utils import url_host
from .version import __version__


@dataclass
class BannerInfo:
    version: str
    run_once: bool
    verbose: bool
    output_dir: str
    interval_hours: float
    include_live: bool
    delete_missing: bool
    movie_layout: str
    source_hosts: List[str] = field(default_factory=list)


def build_banner_info(config: AppConfig, *, run_once: bool = False, verbose: bool = False) -> BannerInfo:
    """Build a BannerInfo from the daemon configuration; only source hosts are kept."""
    settings = config.settings
    return BannerInfo(
        version=__version__,
        run_once=run_once,
        verbose=verbose,
        output_dir=str(settings.output_dir),
        interval_hours=settings.interval_hours,
        include_live=settings.include_live,
        delete_missing=settings.delete_missing,
        movie_layout=settings.movie_layout.value,
        source_hosts=[f"{source.label} ({url_host(source.url)})" for source in config.sources],
    )


def print_startup_banner(info: BannerInfo, console: Console) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Version", f"[bold]{info.version}[/bold]")

    mode_parts = ["[cyan]ONCE[/cyan]" if info.run_once else f"[cyan]EVERY {info.interval_hours:g}H[/cyan]"]
    if info.verbose:
        mode_parts.append("[cyan]VERBOSE[/cyan]")
    table.add_row("Mode", " ".join(mode_parts))

    table.add_row("Output", info.output_dir)
    table.add_row("Movie Layout", info.movie_layout)
    table.add_row("Sources", "\n".join(info.source_hosts) or "[yellow](none)[/yellow]")

    features = []
    if info.include_live:
        features.append("[green]Live[/green]")
    if info.delete_missing:
        features.append("[green]Delete Missing[/green]")
    if features:
        table.add_row("Features", " · ".join(features))

    panel = Panel(
        table,
        title="[bold white]M3U HANDLER[/bold white]",
        border_style="blue",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)
    console.print()
