from __future__ import annotations

import json
import logging

from m3uhandler.ignored_log import IgnoredEntryRecorder, build_record
from m3uhandler.models import PlaylistEntry, RejectReason


def _entry() -> PlaylistEntry:
    return PlaylistEntry(
        attributes={"tvg-type": "live", "group-title": "News", "tvg-name": "CNN HD"},
        display_name="CNN",
        target="http://example.com/live/1",
    )


def _content_lines(path) -> list[str]:
    return [line for line in path.read_text(encoding="utf-8").splitlines() if line]


class TestBuildRecord:
    def test_record_from_entry(self) -> None:
        record = build_record(RejectReason.LIVE_EXCLUDED, entry=_entry(), category="live")
        assert record == {
            "display_name": "CNN",
            "type": "live",
            "group_title": "News",
            "tvg_name": "CNN HD",
            "url": "http://example.com/live/1",
            "reason": "live-excluded",
            "detail": "Live entries are excluded (include_live is off)",
        }

    def test_record_for_orphan_target(self) -> None:
        record = build_record(RejectReason.ORPHAN_TARGET, target="http://orphan")
        assert record["url"] == "http://orphan"
        assert record["display_name"] == ""
        assert record["reason"] == "orphan-target"


class TestIgnoredEntryRecorder:
    def test_writes_header_and_records(self, tmp_path) -> None:
        path = tmp_path / "logs" / "ignored.ndjson"

        with IgnoredEntryRecorder(path, input_label="playlist.m3u") as recorder:
            recorder.record(RejectReason.LIVE_EXCLUDED, entry=_entry(), category="live")

        lines = _content_lines(path)
        assert lines[0].startswith("# ---- run ")
        assert lines[0].endswith("input=playlist.m3u ----")
        assert "Z input=" in lines[0]
        assert json.loads(lines[1])["reason"] == "live-excluded"
        assert recorder.records_written == 1

    def test_appends_across_runs(self, tmp_path) -> None:
        path = tmp_path / "ignored.ndjson"
        for _ in range(2):
            with IgnoredEntryRecorder(path, input_label="x") as recorder:
                recorder.record(RejectReason.UNSUPPORTED_TYPE, target="http://a")

        headers = [line for line in _content_lines(path) if line.startswith("#")]
        assert len(headers) == 2
        assert len(_content_lines(path)) == 4

    def test_dry_run_writes_nothing(self, tmp_path) -> None:
        path = tmp_path / "ignored.ndjson"
        with IgnoredEntryRecorder(path, input_label="x", dry_run=True) as recorder:
            recorder.record(RejectReason.UNSUPPORTED_TYPE, target="http://a")
        assert not path.exists()
        assert recorder.records_written == 0

    def test_no_path_disables_recorder(self) -> None:
        recorder = IgnoredEntryRecorder(None, input_label="x")
        assert recorder.enabled is False
        with recorder:
            recorder.record(RejectReason.UNSUPPORTED_TYPE, target="http://a")
        assert recorder.records_written == 0

    def test_unwritable_path_warns_and_disables(self, tmp_path, caplog) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        path = blocker / "ignored.ndjson"

        with caplog.at_level(logging.WARNING, logger="m3uhandler.ignored_log"):
            with IgnoredEntryRecorder(path, input_label="x") as recorder:
                recorder.record(RejectReason.UNSUPPORTED_TYPE, target="http://a")

        assert recorder.enabled is False
        assert recorder.records_written == 0
        assert "Ignored-Entry Log Unavailable" in caplog.text
