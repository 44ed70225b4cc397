"""Tests for the telemetry log, emitter and analysis."""
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from cmdproxy.errors import TelemetryStoreError
from cmdproxy.models import RunRecord, VersionProbe, event_from_dict
from cmdproxy.notifications import NotificationKind
from cmdproxy.telemetry.analysis import analyze
from cmdproxy.telemetry.emitter import emit
from cmdproxy.telemetry.store import TelemetryStore


# ── Store ────────────────────────────────────────────────────────────


def test_log_telemetry_appends_jsonl(tmp_path):
    store = TelemetryStore(str(tmp_path / "telemetry"))
    store.log_telemetry(RunRecord(duration_ms=12, exit_code=0))
    store.log_telemetry(RunRecord(duration_ms=30, exit_code=101, errors=("E0308",)))

    files = store.log_files()
    assert len(files) == 1
    with open(files[0], encoding="utf-8") as f:
        lines = [json.loads(line) for line in f if line.strip()]
    assert [r["kind"] for r in lines] == ["rustc_run", "rustc_run"]
    assert lines[0]["event"] == {"duration_ms": 12, "exit_code": 0}
    assert lines[1]["event"]["errors"] == ["E0308"]
    assert all("ts" in r and r["version"] == 1 for r in lines)


def test_load_events_skips_malformed_lines(tmp_path):
    store = TelemetryStore(str(tmp_path))
    store.log_telemetry(VersionProbe("1.42.0", "abc", "2020-03-09"))
    with open(store.log_files()[0], "a", encoding="utf-8") as f:
        f.write("{not json\n\n")

    records = store.load_events()
    assert len(records) == 1
    assert records[0]["kind"] == "rustc_version"


def test_prune_keeps_newest_files(tmp_path):
    for day in ("2020-01-01", "2020-01-02", "2020-01-03"):
        (tmp_path / f"log-{day}.jsonl").write_text("{}\n", encoding="utf-8")
    store = TelemetryStore(str(tmp_path), max_files=2)

    store.log_telemetry(RunRecord(duration_ms=1, exit_code=0))

    names = [os.path.basename(p) for p in store.log_files()]
    assert len(names) == 2
    assert "log-2020-01-01.jsonl" not in names
    assert "log-2020-01-02.jsonl" not in names


def test_unwritable_dir_raises_store_error(tmp_path):
    blocker = tmp_path / "telemetry"
    blocker.write_text("not a directory", encoding="utf-8")
    store = TelemetryStore(str(blocker))

    with pytest.raises(TelemetryStoreError):
        store.log_telemetry(RunRecord(duration_ms=1, exit_code=0))


def test_clear_removes_logs(tmp_path):
    store = TelemetryStore(str(tmp_path))
    store.log_telemetry(RunRecord(duration_ms=1, exit_code=0))
    assert store.clear() == 1
    assert store.log_files() == []
    assert store.load_events() == []


# ── Emitter ──────────────────────────────────────────────────────────


def test_emit_writes_and_reports_success(tmp_path):
    notes = []
    store = TelemetryStore(str(tmp_path))
    assert emit(RunRecord(duration_ms=5, exit_code=0), store, notes.append) is True
    assert notes == []
    assert len(store.load_events()) == 1


def test_emit_failure_becomes_notification(tmp_path):
    blocker = tmp_path / "telemetry"
    blocker.write_text("x", encoding="utf-8")
    notes = []

    written = emit(RunRecord(duration_ms=5, exit_code=0), TelemetryStore(str(blocker)), notes.append)

    assert written is False
    assert len(notes) == 1
    assert notes[0].kind == NotificationKind.TELEMETRY_WRITE_ERROR
    assert isinstance(notes[0].error, TelemetryStoreError)
    assert "unable to write telemetry" in notes[0].message


# ── Models / analysis ────────────────────────────────────────────────


def test_run_record_omits_absent_errors():
    assert "errors" not in RunRecord(duration_ms=3, exit_code=0).to_dict()


def test_event_from_dict_rejects_unknown_kind():
    with pytest.raises(ValueError):
        event_from_dict("something_else", {})


def test_analyze_counts_runs_and_errors(tmp_path):
    store = TelemetryStore(str(tmp_path))
    store.log_telemetry(RunRecord(duration_ms=100, exit_code=0))
    store.log_telemetry(RunRecord(duration_ms=200, exit_code=101, errors=("E0308", "E0499")))
    store.log_telemetry(RunRecord(duration_ms=300, exit_code=101, errors=("E0308",)))
    store.log_telemetry(VersionProbe("1.42.0", "abc", "2020-03-09"))
    store.log_telemetry(VersionProbe("1.42.0", "abc", "2020-03-09"))

    analysis = analyze(store.load_events())

    assert analysis.runs == 3
    assert analysis.successful_runs == 1
    assert analysis.failed_runs == 2
    assert analysis.mean_duration_ms == 200
    assert analysis.error_counts[0] == ("E0308", 2)
    assert analysis.versions == ["1.42.0 (abc 2020-03-09)"]


def test_analyze_empty():
    analysis = analyze([])
    assert analysis.runs == 0
    assert analysis.to_dict()["error_counts"] == {}


def test_analyze_skips_records_without_event_dict():
    records = [
        {"kind": "rustc_run", "event": ["not", "a", "dict"]},
        {"kind": "rustc_run"},
        {"kind": "rustc_run", "event": {"duration_ms": 4, "exit_code": 0}},
    ]
    analysis = analyze(records)
    assert analysis.runs == 1
    assert analysis.successful_runs == 1


def test_prune_failure_does_not_fail_the_write(tmp_path, monkeypatch):
    (tmp_path / "log-2020-01-01.jsonl").write_text("{}\n", encoding="utf-8")
    store = TelemetryStore(str(tmp_path), max_files=1)

    def refuse(path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(os, "remove", refuse)
    notes = []

    assert emit(RunRecord(duration_ms=2, exit_code=0), store, notes.append) is True
    assert notes == []
    assert len(store.log_files()) == 2
    assert any(r["kind"] == "rustc_run" for r in store.load_events())
