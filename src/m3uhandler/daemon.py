"""Periodic fetch-and-convert driver.

Each cycle fetches every configured source in order and converts it into the
shared output root. Deletion of stale marker files only ever happens on the
last source of a cycle, using the paths produced by every source of that
cycle, and is skipped entirely when an earlier source failed.
"""

from __future__ import annotations

import logging
import signal
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .config import AppConfig, Settings, SourceConfig
from .converter import Converter
from .errors import M3UHandlerError
from .fetcher import PlaylistFetcher
from .logging_utils import redact_secrets, render_fields_block, secrets_from_urls
from .models import RunSummary
from .reconciler import ManagedFileSet
from .run_summary import format_inline_summary, has_activity
from .utils import url_host

LOGGER = logging.getLogger(__name__)

SLEEP_CHUNK_SECONDS = 1.0


@dataclass
class SourceStatus:
    last_run: Optional[datetime] = None
    last_result: Optional[RunSummary] = None
    last_error: Optional[str] = None


@dataclass
class JobState:
    """Mutable status of the periodic job, owned by whoever drives it.

    Attributes:
        running: Whether a ``run_forever`` loop is active
        stop_requested: Stop after the current cycle
        signal_count: Number of shutdown signals received
        cycles: Completed cycles since start
        sources: Per-source outcome of the most recent attempt
    """

    running: bool = False
    stop_requested: bool = False
    signal_count: int = 0
    cycles: int = 0
    sources: Dict[str, SourceStatus] = field(default_factory=dict)

    def request_stop(self) -> None:
        self.stop_requested = True

    def status_for(self, label: str) -> SourceStatus:
        return self.sources.setdefault(label, SourceStatus())


def source_label(source: SourceConfig) -> str:
    """Log-safe name for ``source``: its label and host, never the path or query."""
    return f"{source.label} ({url_host(source.url)})"


def run_source(
    source: SourceConfig,
    settings: Settings,
    fetcher: PlaylistFetcher,
    *,
    delete_missing: bool,
    managed: Optional[ManagedFileSet] = None,
) -> RunSummary:
    """Fetch ``source`` into a temporary playlist file and convert it."""
    text = fetcher.fetch_source(source)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        prefix=f"m3uhandler-{source.label}-",
        suffix=".m3u8",
        delete=False,
    ) as handle:
        handle.write(text)
        playlist_path = Path(handle.name)

    try:
        converter = Converter(settings.output_dir, settings.run_options(source, delete_missing=delete_missing))
        return converter.run(playlist_path, input_label=source_label(source), managed=managed)
    finally:
        playlist_path.unlink(missing_ok=True)


def run_cycle(config: AppConfig, state: JobState, fetcher: PlaylistFetcher) -> Dict[str, RunSummary]:
    """Process every source once, sequentially, deferring deletion to the last one."""
    settings = config.settings
    secrets = secrets_from_urls(source.url for source in config.sources)
    managed = ManagedFileSet()
    results: Dict[str, RunSummary] = {}
    failures = 0

    for index, source in enumerate(config.sources):
        is_last = index == len(config.sources) - 1
        delete_missing = settings.delete_missing and is_last and failures == 0
        if settings.delete_missing and is_last and failures:
            LOGGER.warning(
                render_fields_block(
                    "Skipping Delete-Missing",
                    {"Reason": f"{failures} earlier source(s) failed this cycle"},
                )
            )

        status = state.status_for(source.label)
        status.last_run = datetime.now(timezone.utc)
        try:
            summary = run_source(source, settings, fetcher, delete_missing=delete_missing, managed=managed)
        except (M3UHandlerError, OSError) as exc:
            failures += 1
            status.last_error = redact_secrets(exc, secrets)
            LOGGER.error("%s failed: %s", source.label, status.last_error)
            continue

        status.last_error = None
        status.last_result = summary
        results[source.label] = summary
        level = logging.INFO if has_activity(summary) else logging.DEBUG
        LOGGER.log(level, format_inline_summary(source.label, summary))

    state.cycles += 1
    return results


class PeriodicRunner:
    """Runs ``run_cycle`` on an interval until stopped."""

    def __init__(
        self,
        config: AppConfig,
        *,
        state: Optional[JobState] = None,
        fetcher: Optional[PlaylistFetcher] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.state = state or JobState()
        self.fetcher = fetcher or PlaylistFetcher(timeout=config.settings.fetch_timeout)
        self._sleep = sleep

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

    def _handle_signal(self, signum: int, _frame: object) -> None:
        self.state.signal_count += 1
        self.state.request_stop()
        name = signal.Signals(signum).name
        if self.state.signal_count >= 2:
            LOGGER.error("Received %s again; forcing exit", name)
            raise SystemExit(1)
        LOGGER.warning("Received %s; will stop after the current cycle", name)

    def run_forever(self, *, once: bool = False) -> JobState:
        state = self.state
        state.running = True
        state.stop_requested = False
        try:
            while True:
                LOGGER.info("Updating %d source(s)", len(self.config.sources))
                run_cycle(self.config, state, self.fetcher)
                if once or state.stop_requested:
                    break
                self._wait(self.config.settings.interval_seconds)
                if state.stop_requested:
                    break
        finally:
            state.running = False
        return state

    def _wait(self, seconds: float) -> None:
        # A stop request ends the wait within one chunk
        remaining = seconds
        while remaining > 0 and not self.state.stop_requested:
            chunk = min(SLEEP_CHUNK_SECONDS, remaining)
            self._sleep(chunk)
            remaining -= chunk


__all__ = ["JobState", "PeriodicRunner", "SourceStatus", "run_cycle", "run_source", "source_label"]
