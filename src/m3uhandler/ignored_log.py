"""Newline-delimited JSON log of rejected playlist entries.

Each run appends a ``# ---- run ...`` header followed by one JSON object per
rejected or unparsable entry. Failures to write the log never abort a run;
they are reported as warnings and the recorder disables itself.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import IO, Any, Dict, Optional

from .logging_utils import render_fields_block
from .models import REJECT_DETAILS, PlaylistEntry, RejectReason
from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)


def build_record(
    reason: RejectReason,
    *,
    entry: Optional[PlaylistEntry] = None,
    category: Optional[str] = None,
    target: str = "",
) -> Dict[str, Any]:
    if entry is not None:
        target = entry.target
    return {
        "display_name": entry.display_name if entry else "",
        "type": category or (entry.type_hint if entry else ""),
        "group_title": entry.group_title if entry else "",
        "tvg_name": entry.tvg_name if entry else "",
        "url": target,
        "reason": reason.value,
        "detail": REJECT_DETAILS.get(reason, ""),
    }


class IgnoredEntryRecorder:
    """Appends rejected entries to ``path`` for the lifetime of one run."""

    def __init__(self, path: Optional[Path], *, input_label: str, dry_run: bool = False) -> None:
        self.path = path
        self.input_label = input_label
        self.enabled = path is not None and not dry_run
        self.records_written = 0
        self._handle: Optional[IO[str]] = None

    def __enter__(self) -> "IgnoredEntryRecorder":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def open(self) -> None:
        if not self.enabled or self.path is None:
            return
        started = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        try:
            ensure_directory(self.path.parent)
            self._handle = self.path.open("a", encoding="utf-8")
            self._handle.write(f"\n# ---- run {started} input={self.input_label} ----\n")
        except OSError as exc:
            self._disable(exc)

    def record(
        self,
        reason: RejectReason,
        *,
        entry: Optional[PlaylistEntry] = None,
        category: Optional[str] = None,
        target: str = "",
    ) -> None:
        if self._handle is None:
            return
        payload = build_record(reason, entry=entry, category=category, target=target)
        try:
            self._handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
        except OSError as exc:
            self._disable(exc)
            return
        self.records_written += 1

    def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as exc:
            self._disable(exc)

    def _disable(self, exc: OSError) -> None:
        LOGGER.warning(
            render_fields_block(
                "Ignored-Entry Log Unavailable",
                {"Path": self.path, "Error": exc},
            )
        )
        self.enabled = False
        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                handle.close()
            except OSError:
                LOGGER.debug("Failed to close ignored-entry log %s", self.path)


__all__ = ["IgnoredEntryRecorder", "build_record"]
