from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .utils import ensure_directory


class WriteAction(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped-exists"
    DRY_RUN = "dry-run"


@dataclass(frozen=True, slots=True)
class WriteResult:
    action: WriteAction
    path: Path

    @property
    def counts_as_written(self) -> bool:
        return self.action in (WriteAction.WRITTEN, WriteAction.DRY_RUN)


def marker_content(target: str) -> str:
    """Media server scanners expect exactly the locator followed by one newline."""
    return f"{target}\n"


def write_marker_file(path: Path, target: str, *, overwrite: bool = False, dry_run: bool = False) -> WriteResult:
    """Write a ``.strm`` marker for ``target`` at ``path`` honouring the idempotency flags.

    ``OSError`` is propagated to the caller.
    """
    if dry_run:
        return WriteResult(WriteAction.DRY_RUN, path)
    if not overwrite and path.exists():
        return WriteResult(WriteAction.SKIPPED, path)

    ensure_directory(path.parent)
    with path.open("w", encoding="utf-8", newline="\n") as handle:
        handle.write(marker_content(target))
    return WriteResult(WriteAction.WRITTEN, path)
