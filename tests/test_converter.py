from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from m3uhandler import Converter, InputNotFoundError, MovieLayout, RunOptions, convert
from m3uhandler.reconciler import ManagedFileSet

MIXED_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-type="movies" group-title="Action 1999",The Matrix (1999)
http://example.com/movie/1.mkv
#EXTINF:-1 tvg-type="tvshows" group-title="Drama",Breaking Bad S01E01
http://example.com/series/1.mkv
#EXTINF:-1 tvg-type="tvshows" group-title="Drama",Breaking Bad S01E02
http://example.com/series/2.mkv
#EXTINF:-1 tvg-type="live" group-title="News",CNN
http://example.com/live/1.ts
#EXTINF:-1 tvg-type="radio",Radio One
http://example.com/radio/1
http://example.com/orphan
"""


def write_playlist(path: Path, *entries: tuple[str, str, str]) -> Path:
    lines = ["#EXTM3U"]
    for type_, name, target in entries:
        lines.append(f'#EXTINF:-1 tvg-type="{type_}",{name}')
        lines.append(target)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def all_files(root: Path) -> list[str]:
    if not root.exists():
        return []
    return sorted(path.relative_to(root).as_posix() for path in root.rglob("*") if path.is_file())


@pytest.fixture
def mixed_playlist(tmp_path) -> Path:
    path = tmp_path / "mixed.m3u"
    path.write_text(MIXED_PLAYLIST, encoding="utf-8")
    return path


def test_movie_scenario(tmp_path) -> None:
    playlist = write_playlist(tmp_path / "in.m3u", ("movie", "Title (2023)", "http://example.com/title.mkv"))
    out = tmp_path / "out"

    summary = convert(playlist, out, RunOptions(movie_layout=MovieLayout.BY_YEAR))

    marker = out / "Movies" / "2023" / "Title (2023).strm"
    assert marker.read_text(encoding="utf-8") == "http://example.com/title.mkv\n"
    assert summary.written == 1
    assert summary.last_written.path == marker
    assert summary.last_written.target == "http://example.com/title.mkv"


def test_live_scenario_records_exclusion(tmp_path) -> None:
    playlist = write_playlist(tmp_path / "in.m3u", ("live", "CNN", "http://example.com/live.ts"))
    log_path = tmp_path / "ignored.ndjson"

    summary = convert(playlist, tmp_path / "out", RunOptions(include_live=False, ignored_log_path=log_path))

    assert summary.ignored == 1
    assert summary.written == 0
    records = [
        json.loads(line)
        for line in log_path.read_text(encoding="utf-8").splitlines()
        if line and not line.startswith("#")
    ]
    assert len(records) == 1
    assert records[0]["reason"] == "live-excluded"
    assert records[0]["url"] == "http://example.com/live.ts"


def test_mixed_playlist_counts(mixed_playlist, tmp_path) -> None:
    out = tmp_path / "out"

    summary = convert(mixed_playlist, out)

    assert summary.written == 3
    assert summary.ignored == 3
    assert summary.skipped == 0
    assert all_files(out) == [
        "Movies/1999/The Matrix (1999).strm",
        "TV Shows/Breaking Bad/Season 01/Breaking Bad S01E01.strm",
        "TV Shows/Breaking Bad/Season 01/Breaking Bad S01E02.strm",
    ]


def test_orphan_targets_are_logged(mixed_playlist, tmp_path) -> None:
    log_path = tmp_path / "ignored.ndjson"

    convert(mixed_playlist, tmp_path / "out", RunOptions(ignored_log_path=log_path))

    reasons = sorted(
        json.loads(line)["reason"]
        for line in log_path.read_text(encoding="utf-8").splitlines()
        if line and not line.startswith("#")
    )
    assert reasons == ["live-excluded", "orphan-target", "unsupported-type"]


def test_second_run_without_overwrite_skips_everything(mixed_playlist, tmp_path) -> None:
    out = tmp_path / "out"
    first = convert(mixed_playlist, out)

    second = convert(mixed_playlist, out, RunOptions(overwrite=False))

    assert second.written == 0
    assert second.skipped == first.written
    assert second.ignored == first.ignored


def test_overwrite_rewrites_existing_markers(tmp_path) -> None:
    out = tmp_path / "out"
    write_playlist(tmp_path / "a.m3u", ("movies", "Heat (1995)", "http://old"))
    convert(tmp_path / "a.m3u", out)
    write_playlist(tmp_path / "a.m3u", ("movies", "Heat (1995)", "http://new"))

    summary = convert(tmp_path / "a.m3u", out, RunOptions(overwrite=True))

    assert summary.written == 1
    assert (out / "Movies/1995/Heat (1995).strm").read_text(encoding="utf-8") == "http://new\n"


def test_dry_run_creates_nothing_but_reports_same_counts(mixed_playlist, tmp_path) -> None:
    dry_out = tmp_path / "dry"
    log_path = tmp_path / "ignored.ndjson"

    dry = convert(mixed_playlist, dry_out, RunOptions(dry_run=True, ignored_log_path=log_path))
    real = convert(mixed_playlist, tmp_path / "real")

    assert not dry_out.exists()
    assert not log_path.exists()
    assert dry.dry_run is True
    assert (dry.written, dry.ignored) == (real.written, real.ignored)


def test_dry_run_never_deletes(tmp_path) -> None:
    out = tmp_path / "out"
    stale = out / "Movies" / "2000" / "Old (2000).strm"
    stale.parent.mkdir(parents=True)
    stale.write_text("http://old\n", encoding="utf-8")
    playlist = write_playlist(tmp_path / "in.m3u", ("movies", "New (2020)", "http://new"))

    summary = convert(playlist, out, RunOptions(dry_run=True, delete_missing=True))

    assert summary.deleted == 0
    assert stale.exists()


def test_delete_missing_removes_stale_and_keeps_current(tmp_path) -> None:
    out = tmp_path / "out"
    playlist = tmp_path / "in.m3u"
    write_playlist(
        playlist,
        ("movies", "Heat (1995)", "http://heat"),
        ("movies", "Alien (1979)", "http://alien"),
    )
    convert(playlist, out)
    kept = out / "Movies/1995/Heat (1995).strm"
    kept_mtime = kept.stat().st_mtime_ns

    write_playlist(playlist, ("movies", "Heat (1995)", "http://heat"))
    summary = convert(playlist, out, RunOptions(delete_missing=True))

    assert summary.deleted == 1
    assert summary.skipped == 1
    assert not (out / "Movies/1979").exists()
    assert kept.read_text(encoding="utf-8") == "http://heat\n"
    assert kept.stat().st_mtime_ns == kept_mtime


def test_tv_episode_removal_scenario(tmp_path) -> None:
    out = tmp_path / "out"
    playlist = tmp_path / "in.m3u"
    season = out / "TV Shows" / "Show" / "Season 01"

    write_playlist(playlist, ("tvshows", "Show S01E01", "http://e1"))
    convert(playlist, out)
    write_playlist(playlist, ("tvshows", "Show S01E01", "http://e1"), ("tvshows", "Show S01E02", "http://e2"))
    convert(playlist, out)
    assert (season / "Show S01E02.strm").exists()

    write_playlist(playlist, ("tvshows", "Show S01E01", "http://e1"))
    summary = convert(playlist, out, RunOptions(delete_missing=True))

    assert summary.deleted == 1
    assert not (season / "Show S01E02.strm").exists()
    assert (season / "Show S01E01.strm").exists()


def test_delete_missing_prunes_emptied_season_directory(tmp_path) -> None:
    out = tmp_path / "out"
    playlist = tmp_path / "in.m3u"
    write_playlist(playlist, ("tvshows", "Show S01E01", "http://e1"), ("tvshows", "Show S02E01", "http://e2"))
    convert(playlist, out)

    write_playlist(playlist, ("tvshows", "Show S01E01", "http://e1"))
    convert(playlist, out, RunOptions(delete_missing=True))

    assert not (out / "TV Shows/Show/Season 02").exists()
    assert (out / "TV Shows/Show/Season 01").is_dir()


def test_shared_managed_set_protects_earlier_runs(tmp_path) -> None:
    out = tmp_path / "out"
    movies = write_playlist(tmp_path / "movies.m3u", ("movies", "Heat (1995)", "http://heat"))
    shows = write_playlist(tmp_path / "shows.m3u", ("tvshows", "Show S01E01", "http://e1"))
    managed = ManagedFileSet()

    Converter(out, RunOptions()).run(movies, managed=managed)
    summary = Converter(out, RunOptions(delete_missing=True)).run(shows, managed=managed)

    assert summary.deleted == 0
    assert (out / "Movies/1995/Heat (1995).strm").exists()


def test_missing_input_fails_before_touching_output(tmp_path) -> None:
    out = tmp_path / "out"
    log_path = tmp_path / "ignored.ndjson"

    with pytest.raises(InputNotFoundError):
        convert(tmp_path / "missing.m3u", out, RunOptions(delete_missing=True, ignored_log_path=log_path))

    assert not out.exists()
    assert not log_path.exists()


def test_default_category_applies_to_untyped_entries(tmp_path) -> None:
    playlist = tmp_path / "in.m3u"
    playlist.write_text("#EXTM3U\n#EXTINF:-1,Dark S01E01\nhttp://dark\n", encoding="utf-8")

    summary = convert(playlist, tmp_path / "out", RunOptions(default_category="tvshows"))

    assert summary.written == 1
    assert (tmp_path / "out/TV Shows/Dark/Season 01/Dark S01E01.strm").exists()


def test_run_logs_written_counts_per_category(mixed_playlist, tmp_path, caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="m3uhandler"):
        convert(mixed_playlist, tmp_path / "out", RunOptions(include_live=True))

    assert "Written By Category" in caplog.text
    assert "tvshows : 2 entries" in caplog.text
    assert "movies  : 1 entry" in caplog.text
    assert "live    : 1 entry" in caplog.text
