from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from rich.progress import Progress

from .classifier import classify_entry
from .ignored_log import IgnoredEntryRecorder
from .logging_utils import redact_secrets, render_fields_block
from .models import ConversionStats, RejectReason, RunOptions, RunSummary
from .parser import iter_playlist_entries
from .reconciler import ManagedFileSet, reconcile_output
from .run_summary import log_run_recap
from .writer import WriteAction, write_marker_file

LOGGER = logging.getLogger(__name__)


class Converter:
    """Converts one playlist into ``.strm`` marker files under ``output_root``."""

    def __init__(self, output_root: Path, options: Optional[RunOptions] = None) -> None:
        self.output_root = Path(output_root)
        self.options = options or RunOptions()

    def run(
        self,
        input_path: Path,
        *,
        input_label: Optional[str] = None,
        managed: Optional[ManagedFileSet] = None,
    ) -> RunSummary:
        """Run a full conversion of ``input_path``.

        Raises ``InputNotFoundError`` before touching the output when the
        playlist is missing; ``OSError`` from marker writes propagates.

        ``managed`` lets a caller that feeds several playlists into the same
        output root share one set of produced paths, so that the deleting run
        keeps the files written by the earlier ones.
        """
        input_path = Path(input_path)
        options = self.options
        label = redact_secrets(input_label or input_path)
        stats = ConversionStats()
        if managed is None and options.delete_missing:
            managed = ManagedFileSet()
        run_started = time.perf_counter()

        recorder = IgnoredEntryRecorder(options.ignored_log_path, input_label=label, dry_run=options.dry_run)

        def _on_orphan(line_number: int, target: str) -> None:
            LOGGER.debug(
                render_fields_block(
                    "Ignoring Target Without Metadata",
                    {"Line": line_number, "Target": redact_secrets(target)},
                )
            )
            stats.register_ignored(RejectReason.ORPHAN_TARGET)
            recorder.record(RejectReason.ORPHAN_TARGET, target=target)

        entries = iter_playlist_entries(input_path, on_orphan=_on_orphan)

        with recorder, Progress(disable=not LOGGER.isEnabledFor(logging.INFO)) as progress:
            task_id = progress.add_task("Converting", total=None)
            for entry in entries:
                result = classify_entry(entry, options)
                progress.advance(task_id, 1)

                if not result.accepted:
                    stats.register_ignored(result.reason)
                    recorder.record(result.reason, entry=entry, category=result.category)
                    LOGGER.debug(
                        render_fields_block(
                            "Ignoring Entry",
                            {
                                "Name": entry.display_name,
                                "Type": entry.type_hint or options.default_category or "(none)",
                                "Reason": result.reason.value if result.reason else "",
                            },
                        )
                    )
                    continue

                if managed is not None:
                    managed.add(result.relative_path)

                destination = self.output_root.joinpath(*result.relative_path.parts)
                outcome = write_marker_file(
                    destination,
                    entry.target,
                    overwrite=options.overwrite,
                    dry_run=options.dry_run,
                )
                if outcome.counts_as_written:
                    stats.register_written(destination, entry.target, category=result.category)
                    if outcome.action is WriteAction.DRY_RUN:
                        LOGGER.debug("Dry-run: would write %s", result.relative_path)
                else:
                    stats.register_skipped()

        if managed is not None and options.delete_missing:
            reconcile = reconcile_output(self.output_root, managed, dry_run=options.dry_run)
            stats.register_deleted(reconcile.deleted)
            stats.register_delete_failure(reconcile.failed)
            LOGGER.debug(
                "Reconciled %s: %d stale marker(s) deleted, %d empty folder(s) pruned",
                self.output_root,
                reconcile.deleted,
                reconcile.pruned_directories,
            )
            if reconcile.failed:
                LOGGER.warning(
                    render_fields_block(
                        "Reconciliation Incomplete",
                        {
                            "Failed": reconcile.failed,
                            "Example": next(o.path for o in reconcile.outcomes if not o.deleted),
                        },
                    )
                )

        summary = stats.freeze(dry_run=options.dry_run)
        log_run_recap(
            summary,
            time.perf_counter() - run_started,
            input_label=label,
            output_root=self.output_root,
            ignored_by_reason=stats.ignored_by_reason,
            written_by_category=stats.written_by_category,
        )
        return summary


def convert(input_path: Path, output_root: Path, options: Optional[RunOptions] = None) -> RunSummary:
    """Convert ``input_path`` into marker files under ``output_root``."""
    return Converter(output_root, options).run(input_path)


__all__ = ["Converter", "convert"]
