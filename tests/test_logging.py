"""Tests for session logging and log analysis."""

import json

from quickjot.logging import SessionLogger, analyze_logs, get_logger, log_event, set_logger


def read_events(session: SessionLogger) -> list[dict]:
    return [json.loads(line) for line in session.log_file.read_text().splitlines()]


def test_session_writes_jsonl(tmp_path):
    session = SessionLogger("test", logs_dir=tmp_path)
    session.log_text_processed("local", item_count=2, confidence=0.9, rules=["keyword_todo"])
    session.log_fallback("schema_invalid", "items: field required")
    summary = session.finalize()

    events = read_events(session)
    assert [e["event"] for e in events] == [
        "session_start", "text_processed", "fallback_used", "session_complete",
    ]
    assert events[1]["rules"] == ["keyword_todo"]
    assert summary["texts_processed"] == 1
    assert summary["items_produced"] == 2
    assert summary["fallbacks"] == 1
    assert summary["avg_confidence"] == 0.9


def test_queue_metrics(tmp_path):
    session = SessionLogger("test", logs_dir=tmp_path)
    session.log_job_enqueued("abc", 2)
    session.log_queue_flushed(success=1, failed=1, total=2)
    session.log_job_failed("def", 3, "ConnectionError: offline")

    summary = session.finalize()

    assert summary["jobs_enqueued"] == 1
    assert summary["jobs_saved"] == 1
    assert summary["jobs_failed"] == 1


def test_failures_flush_immediately(tmp_path):
    session = SessionLogger("test", logs_dir=tmp_path)
    session.log_job_failed("abc", 3, "offline")

    assert read_events(session)[-1]["event"] == "job_failed_permanently"


def test_global_logger():
    assert get_logger() is None
    log_event("ignored", {})


def test_log_event_goes_to_current_session(tmp_path):
    session = SessionLogger("test", logs_dir=tmp_path)
    set_logger(session)
    log_event("custom", {"value": 1})
    session.finalize()

    assert any(e["event"] == "custom" and e["value"] == 1 for e in read_events(session))


def test_analyze_logs(tmp_path):
    first = SessionLogger("a", session_id="20250115_090000_000001", logs_dir=tmp_path)
    first.log_text_processed("local", 1, 0.8)
    first.log_fallback("remote_error", "timeout")
    first.finalize()

    second = SessionLogger("b", session_id="20250115_090000_000002", logs_dir=tmp_path)
    second.log_text_processed("remote", 2, 1.0)
    second.finalize()

    report = analyze_logs(logs_dir=tmp_path)

    assert report["sessions_analyzed"] == 2
    assert report["texts_processed"] == 2
    assert report["items_produced"] == 3
    assert report["avg_confidence"] == 0.9
    assert report["fallback_rate"] == 50.0
    assert report["common_fallback_reasons"] == [("remote_error", 1)]


def test_analyze_missing_logs(tmp_path):
    assert "error" in analyze_logs(logs_dir=tmp_path / "missing")
    assert "error" in analyze_logs(logs_dir=tmp_path)
