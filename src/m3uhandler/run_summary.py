"""Run summaries and recaps for conversion runs.

This module formats a finished ``RunSummary`` (plus the per-reason ignore
counts collected during the run) into the log blocks emitted at the end of a
conversion and at the end of each periodic cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from .logging_utils import render_fields_block

if TYPE_CHECKING:
    from .models import RunSummary

LOGGER = logging.getLogger(__name__)


def has_activity(summary: RunSummary) -> bool:
    """Check whether a run wrote, skipped, ignored or deleted anything."""
    return bool(
        summary.written
        or summary.skipped
        or summary.ignored
        or summary.deleted
        or summary.delete_failed
    )


def summarize_counts(counts: Mapping[str, int]) -> List[tuple[str, str]]:
    """Order ``{key: count}`` largest first as ``(key, "N entries")`` pairs."""
    lines: List[tuple[str, str]] = []
    for key, value in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        suffix = "entry" if value == 1 else "entries"
        lines.append((key, f"{value} {suffix}"))
    return lines


def summary_fields(summary: RunSummary) -> Dict[str, object]:
    written_label = "Would Write" if summary.dry_run else "Written"
    fields: Dict[str, object] = {
        written_label: summary.written,
        "Skipped (exists)": summary.skipped,
        "Ignored": summary.ignored,
        "Deleted": summary.deleted,
    }
    if summary.delete_failed:
        fields["Delete Failures"] = summary.delete_failed
    if summary.last_written is not None:
        fields["Last Written"] = summary.last_written.path
    return fields


def log_run_recap(
    summary: RunSummary,
    duration: float,
    *,
    input_label: str,
    output_root: Path,
    ignored_by_reason: Optional[Mapping[str, int]] = None,
    written_by_category: Optional[Mapping[str, int]] = None,
    level: int = logging.INFO,
) -> None:
    fields: Dict[str, object] = {"Input": input_label, "Output": output_root}
    fields.update(summary_fields(summary))
    fields["Duration"] = f"{duration:.2f}s"
    if summary.dry_run:
        fields["Mode"] = "dry-run (no filesystem changes)"
    LOGGER.log(level, render_fields_block("Conversion Summary", fields))

    if written_by_category and LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug(render_fields_block("Written By Category", summarize_counts(written_by_category)))
    if ignored_by_reason and LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug(render_fields_block("Ignored Entries By Reason", summarize_counts(ignored_by_reason)))


def format_inline_summary(label: str, summary: RunSummary) -> str:
    """One-line recap used by the periodic driver after each source."""
    return (
        f"{label} done. written={summary.written} skipped={summary.skipped} "
        f"ignored={summary.ignored} deleted={summary.deleted}"
    )
