"""Delete-missing reconciliation of the output tree.

After a run, marker files under the category roots that were not produced by
that run are removed, and directories left empty are pruned. Failures are
collected as per-item outcomes so one locked file cannot abort the sweep.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional, Set

from .logging_utils import render_fields_block
from .models import CATEGORY_ROOTS, MARKER_SUFFIX

LOGGER = logging.getLogger(__name__)


class ManagedFileSet:
    """Relative marker paths produced by classification during the current run."""

    def __init__(self, paths: Iterable[PurePosixPath | str] = ()) -> None:
        self._paths: Set[str] = set()
        for path in paths:
            self.add(path)

    def add(self, path: PurePosixPath | str) -> None:
        self._paths.add(PurePosixPath(path).as_posix())

    def __contains__(self, path: object) -> bool:
        if isinstance(path, (str, PurePosixPath)):
            return PurePosixPath(path).as_posix() in self._paths
        return False

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self):
        return iter(sorted(self._paths))


@dataclass(frozen=True, slots=True)
class DeleteOutcome:
    path: Path
    deleted: bool
    is_directory: bool = False
    error: Optional[str] = None


@dataclass(slots=True)
class ReconcileResult:
    outcomes: List[DeleteOutcome] = field(default_factory=list)

    @property
    def deleted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.deleted and not outcome.is_directory)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.deleted)

    @property
    def pruned_directories(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.deleted and outcome.is_directory)


def _is_marker_file(entry: os.DirEntry) -> bool:
    return entry.is_file(follow_symlinks=False) and entry.name.lower().endswith(MARKER_SUFFIX)


class Reconciler:
    def __init__(self, output_root: Path, managed: ManagedFileSet) -> None:
        self.output_root = output_root
        self.managed = managed
        self.result = ReconcileResult()

    def run(self) -> ReconcileResult:
        for root_name in CATEGORY_ROOTS.values():
            root = self.output_root / root_name
            if root.is_dir() and not root.is_symlink():
                self._sweep(root)
        return self.result

    def _relative_key(self, path: Path) -> str:
        return path.relative_to(self.output_root).as_posix()

    def _sweep(self, directory: Path) -> None:
        try:
            entries = list(os.scandir(directory))
        except OSError as exc:
            LOGGER.warning("Unable to list %s during reconciliation: %s", directory, exc)
            return

        for entry in entries:
            path = Path(entry.path)
            try:
                is_directory = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_directory = False

            if is_directory:
                self._sweep(path)
                self._prune_if_empty(path)
            elif _is_marker_file(entry) and self._relative_key(path) not in self.managed:
                self._delete_file(path)

    def _delete_file(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as exc:
            LOGGER.debug(render_fields_block("Stale Marker Delete Failed", {"Path": path, "Error": exc}))
            self.result.outcomes.append(DeleteOutcome(path=path, deleted=False, error=str(exc)))
            return
        LOGGER.debug(render_fields_block("Deleted Stale Marker", {"Path": path}))
        self.result.outcomes.append(DeleteOutcome(path=path, deleted=True))

    def _prune_if_empty(self, directory: Path) -> None:
        try:
            if any(directory.iterdir()):
                return
            directory.rmdir()
        except OSError as exc:
            self.result.outcomes.append(
                DeleteOutcome(path=directory, deleted=False, is_directory=True, error=str(exc))
            )
            return
        self.result.outcomes.append(DeleteOutcome(path=directory, deleted=True, is_directory=True))


def reconcile_output(output_root: Path, managed: ManagedFileSet, *, dry_run: bool = False) -> ReconcileResult:
    """Delete stale marker files under the category roots of ``output_root``.

    Never deletes anything in dry-run mode, since the managed set is then a
    simulation rather than the state actually on disk.
    """
    if dry_run:
        LOGGER.debug("Dry-run: skipping reconciliation of %s", output_root)
        return ReconcileResult()
    return Reconciler(output_root, managed).run()


__all__ = ["DeleteOutcome", "ManagedFileSet", "ReconcileResult", "Reconciler", "reconcile_output"]
