from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from m3uhandler.reconciler import ManagedFileSet, reconcile_output


def touch(root: Path, relative: str, content: str = "http://x\n") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def output_root(tmp_path) -> Path:
    root = tmp_path / "out"
    touch(root, "TV Shows/Show/Season 01/Show S01E01.strm", "http://keep\n")
    touch(root, "TV Shows/Show/Season 01/Show S01E02.strm")
    touch(root, "TV Shows/Show/Season 02/Show S02E01.strm")
    touch(root, "Movies/2010/Inception (2010).strm")
    return root


def test_managed_file_set_normalizes_paths() -> None:
    managed = ManagedFileSet(["TV Shows/Show/a.strm"])
    managed.add(PurePosixPath("Movies/2010/b.strm"))

    assert "TV Shows/Show/a.strm" in managed
    assert PurePosixPath("Movies/2010/b.strm") in managed
    assert "Movies/2010/c.strm" not in managed
    assert 42 not in managed
    assert len(managed) == 2
    assert list(managed) == ["Movies/2010/b.strm", "TV Shows/Show/a.strm"]


def test_deletes_unmanaged_markers_and_prunes_empty_dirs(output_root) -> None:
    managed = ManagedFileSet(["TV Shows/Show/Season 01/Show S01E01.strm"])

    result = reconcile_output(output_root, managed)

    assert result.deleted == 3
    assert result.failed == 0
    kept = output_root / "TV Shows/Show/Season 01/Show S01E01.strm"
    assert kept.read_text(encoding="utf-8") == "http://keep\n"
    assert not (output_root / "TV Shows/Show/Season 01/Show S01E02.strm").exists()
    assert not (output_root / "TV Shows/Show/Season 02").exists()
    assert not (output_root / "Movies/2010").exists()
    assert result.pruned_directories == 2


def test_category_roots_are_kept_when_emptied(output_root) -> None:
    reconcile_output(output_root, ManagedFileSet())

    assert (output_root / "TV Shows").is_dir()
    assert (output_root / "Movies").is_dir()
    assert list((output_root / "TV Shows").iterdir()) == []


def test_only_marker_files_inside_category_roots_are_touched(output_root) -> None:
    poster = touch(output_root, "Movies/2010/poster.jpg", "img")
    outside = touch(output_root, "notes.strm")
    foreign = touch(output_root, "Other/Thing.strm")

    result = reconcile_output(output_root, ManagedFileSet())

    assert poster.exists()
    assert outside.exists()
    assert foreign.exists()
    assert (output_root / "Movies/2010").is_dir()
    assert result.deleted == 4


def test_dry_run_deletes_nothing(output_root) -> None:
    result = reconcile_output(output_root, ManagedFileSet(), dry_run=True)

    assert result.outcomes == []
    assert (output_root / "TV Shows/Show/Season 02/Show S02E01.strm").exists()


def test_missing_output_root_is_a_no_op(tmp_path) -> None:
    result = reconcile_output(tmp_path / "nope", ManagedFileSet())
    assert result.outcomes == []


def test_delete_failures_are_reported_per_item(output_root, monkeypatch) -> None:
    original_unlink = Path.unlink

    def fake_unlink(self, missing_ok=False):
        if self.name == "Show S01E02.strm":
            raise PermissionError("locked")
        return original_unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(Path, "unlink", fake_unlink)
    managed = ManagedFileSet(["TV Shows/Show/Season 01/Show S01E01.strm"])

    result = reconcile_output(output_root, managed)

    assert result.failed == 1
    assert result.deleted == 2
    failure = next(outcome for outcome in result.outcomes if not outcome.deleted)
    assert failure.path.name == "Show S01E02.strm"
    assert "locked" in failure.error
    assert (output_root / "TV Shows/Show/Season 01/Show S01E02.strm").exists()
