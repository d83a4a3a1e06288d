from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from .banner import build_banner_info, print_startup_banner
from .config import (
    AppConfig,
    Settings,
    SourceConfig,
    build_config,
    default_config_path,
    load_config,
    save_config,
)
from .converter import Converter
from .daemon import PeriodicRunner
from .errors import ConfigError, InputNotFoundError
from .logging_utils import configure_logging, redact_secrets
from .models import CATEGORY_ALIASES, MovieLayout, RunOptions
from .summary_table import SummaryTableRenderer
from .utils import url_host, validate_url
from .version import __version__

CONSOLE = Console()
LOGGER = logging.getLogger(__name__)


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got '{value}'") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return number


def _http_url(value: str) -> str:
    if not validate_url(value):
        raise argparse.ArgumentTypeError("expected an http(s) URL")
    return value


def _setup_logging(args: argparse.Namespace) -> None:
    verbose = getattr(args, "verbose", False)
    configure_logging(logging.DEBUG if verbose else logging.INFO, log_file=getattr(args, "log_file", None))


def run_convert(args: argparse.Namespace) -> int:
    _setup_logging(args)
    layout = MovieLayout.FLAT if args.movies_flat else MovieLayout.parse(args.movie_layout)
    options = RunOptions(
        include_live=args.include_live,
        overwrite=args.overwrite,
        dry_run=args.dry_run,
        movie_layout=layout,
        delete_missing=args.delete_missing,
        ignored_log_path=args.ignored_log,
        default_category=args.default_type,
    )
    started = time.perf_counter()
    try:
        summary = Converter(args.output, options).run(args.input)
    except InputNotFoundError as exc:
        LOGGER.error("%s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("Conversion failed: %s", exc)
        return 1

    if args.json:
        CONSOLE.print_json(data=summary.as_dict())
        return 0

    renderer = SummaryTableRenderer(CONSOLE)
    if CONSOLE.is_terminal:
        renderer.print_summary_table(summary, duration=time.perf_counter() - started)
    else:
        CONSOLE.print(renderer.render_summary_plain_text(summary), markup=False, highlight=False)
    return 0


def _daemon_config(args: argparse.Namespace) -> AppConfig:
    """Load the YAML config (when present) and layer the command-line overrides on top."""
    config_path: Optional[Path] = args.config
    if config_path is None and not args.url:
        config_path = default_config_path()

    if config_path is not None:
        config = load_config(config_path)
    else:
        config = AppConfig(settings=Settings())

    if args.url:
        config.sources = [SourceConfig(label="playlist", url=args.url)]

    settings = config.settings
    if args.output is not None:
        settings.output_dir = args.output
    if args.include_live:
        settings.include_live = True
    if args.movies_flat:
        settings.movie_layout = MovieLayout.FLAT
    if args.no_delete_missing:
        settings.delete_missing = False
    if args.interval_hours is not None:
        settings.interval_hours = args.interval_hours
    elif args.interval_seconds is not None:
        settings.interval_hours = args.interval_seconds / 3600

    if not config.sources:
        raise ConfigError("No sources configured; pass --url or add 'sources' to the config file")
    return config


def run_daemon(args: argparse.Namespace) -> int:
    _setup_logging(args)
    try:
        config = _daemon_config(args)
    except ConfigError as exc:
        LOGGER.error("Failed to load config: %s", redact_secrets(exc))
        return 1

    print_startup_banner(build_banner_info(config, run_once=args.once, verbose=args.verbose), CONSOLE)

    runner = PeriodicRunner(config)
    runner.install_signal_handlers()
    try:
        state = runner.run_forever(once=args.once)
    finally:
        runner.fetcher.close()

    if any(status.last_error for status in state.sources.values()):
        return 1
    return 0


def run_config_init(args: argparse.Namespace) -> int:
    _setup_logging(args)
    sources: List[dict] = [{"label": "playlist", "url": args.url}]
    if args.url_tv:
        sources.append({"label": "tv", "url": args.url_tv, "default_type": "tvshows"})
    if args.url_movies:
        sources.append({"label": "movies", "url": args.url_movies, "default_type": "movies"})

    data = {
        "settings": {
            "output_dir": str(args.out),
            "include_live": args.include_live,
            "movie_layout": (MovieLayout.FLAT if args.movies_flat else MovieLayout.BY_YEAR).value,
            "interval_hours": args.interval_hours,
        },
        "sources": sources,
    }
    try:
        config = build_config(data)
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", redact_secrets(exc))
        return 1

    path = args.config or default_config_path()
    try:
        save_config(config, path)
    except OSError as exc:
        LOGGER.error("Unable to write %s: %s", path, exc)
        return 1
    CONSOLE.print(f"[green]Saved config to[/green] {path}")
    _print_config(config, path)
    return 0


def _print_config(config: AppConfig, path: Path) -> None:
    settings = config.settings
    table = Table(title=str(path), show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value")
    table.add_row("Output", str(settings.output_dir))
    table.add_row("Interval", f"{settings.interval_hours:g}h")
    table.add_row("Include Live", "yes" if settings.include_live else "no")
    table.add_row("Movie Layout", settings.movie_layout.value)
    table.add_row("Delete Missing", "yes" if settings.delete_missing else "no")
    for source in config.sources:
        detail = url_host(source.url)
        if source.default_type:
            detail = f"{detail} type={source.default_type}"
        if source.paged:
            detail = f"{detail} (paged)"
        table.add_row(f"Source {source.label}", detail)
    CONSOLE.print(table)


def run_config_show(args: argparse.Namespace) -> int:
    _setup_logging(args)
    path = args.config or default_config_path()
    try:
        config = load_config(path)
    except ConfigError as exc:
        LOGGER.error("%s", redact_secrets(exc))
        return 1
    _print_config(config, path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")
    common.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")

    parser = argparse.ArgumentParser(
        prog="m3uhandler",
        description="Convert M3U playlists into .strm files for media servers.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", parents=[common], help="Convert a local playlist file")
    convert.add_argument("-i", "--input", type=Path, required=True, help="Playlist file (.m3u/.m3u8)")
    convert.add_argument("-o", "--output", type=Path, default=Path("output"), help="Output root")
    convert.add_argument("--include-live", action="store_true", help="Also write live channels")
    convert.add_argument("--overwrite", action="store_true", help="Rewrite existing .strm files")
    convert.add_argument("--dry-run", action="store_true", help="Report without touching the disk")
    layout = convert.add_mutually_exclusive_group()
    layout.add_argument("--movies-flat", action="store_true", help="Write movies directly under Movies/")
    layout.add_argument(
        "--movie-layout",
        choices=[member.value for member in MovieLayout],
        default=MovieLayout.BY_YEAR.value,
        help="Movie folder layout",
    )
    convert.add_argument(
        "--default-type",
        choices=sorted(CATEGORY_ALIASES),
        default=None,
        help="Category for entries without a tvg-type attribute",
    )
    convert.add_argument("--delete-missing", action="store_true", help="Remove stale .strm files afterwards")
    convert.add_argument("--ignored-log", type=Path, default=None, help="Append rejected entries to this file")
    convert.add_argument("--json", action="store_true", help="Print the run summary as JSON instead of a table")
    convert.set_defaults(handler=run_convert)

    daemon = subparsers.add_parser("daemon", parents=[common], help="Fetch and convert on an interval")
    daemon.add_argument("--config", type=Path, default=None, help="YAML config file")
    daemon.add_argument("--url", type=_http_url, default=None, help="Single playlist URL (overrides sources)")
    daemon.add_argument("-o", "--output", type=Path, default=None, help="Output root")
    daemon.add_argument("--include-live", action="store_true", help="Also write live channels")
    daemon.add_argument("--movies-flat", action="store_true", help="Write movies directly under Movies/")
    daemon.add_argument("--no-delete-missing", action="store_true", help="Keep stale .strm files")
    interval = daemon.add_mutually_exclusive_group()
    interval.add_argument("--interval-hours", type=_positive_float, default=None)
    interval.add_argument("--interval-seconds", type=_positive_float, default=None)
    daemon.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    daemon.set_defaults(handler=run_daemon)

    config = subparsers.add_parser("config", help="Create or inspect the YAML config")
    config_sub = config.add_subparsers(dest="config_command", required=True)

    init = config_sub.add_parser("init", parents=[common], help="Write a new config file")
    init.add_argument("--config", type=Path, default=None, help="Where to write the config")
    init.add_argument("--url", type=_http_url, required=True, help="Main playlist URL")
    init.add_argument("--url-tv", type=_http_url, default=None, help="TV shows playlist URL")
    init.add_argument("--url-movies", type=_http_url, default=None, help="Movies playlist URL")
    init.add_argument("--out", type=Path, default=Path("output"), help="Output root")
    init.add_argument("--interval-hours", type=_positive_float, default=24.0)
    init.add_argument("--include-live", action="store_true")
    init.add_argument("--movies-flat", action="store_true")
    init.set_defaults(handler=run_config_init)

    show = config_sub.add_parser("show", parents=[common], help="Show the config without credentials")
    show.add_argument("--config", type=Path, default=None, help="Config file to read")
    show.set_defaults(handler=run_config_show)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
