"""Structured logging for QuickJot pipeline analysis.

Logs processing sessions to ~/.quickjot/logs/ in JSON-lines format for
analysis of classification quality, remote fallbacks and queue health.

Example usage:
    from quickjot.logging import SessionLogger, set_logger

    logger = SessionLogger("cli")
    set_logger(logger)
    logger.log_text_processed(source="local", item_count=2, confidence=0.86)
    logger.log_fallback(reason="schema_invalid", detail="items: field required")
    logger.finalize()
"""

import atexit
import json
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from quickjot.config import CONFIG_DIR

LOGS_DIR = CONFIG_DIR / "logs"


def _preview(text: str, limit: int = 100) -> str:
    return text[:limit] + "..." if len(text) > limit else text


@dataclass
class SessionMetrics:
    """Aggregated metrics for a processing session."""

    texts_processed: int = 0
    items_produced: int = 0
    fallbacks: int = 0
    segments_dropped: int = 0
    alternatives_rescored: int = 0
    jobs_enqueued: int = 0
    jobs_saved: int = 0
    jobs_failed: int = 0
    confidence_sum: float = 0.0


@dataclass
class SessionLogger:
    """Session-based logger for pipeline and queue events."""

    source: str
    session_id: str = field(default_factory=lambda: datetime.now().strftime("%Y%m%d_%H%M%S_%f"))
    logs_dir: Path = field(default_factory=lambda: LOGS_DIR)
    log_file: Path = field(init=False)
    metrics: SessionMetrics = field(default_factory=SessionMetrics)
    _started: datetime = field(default_factory=datetime.now)
    # Buffer log events to reduce file I/O
    _log_buffer: list[dict[str, Any]] = field(default_factory=list)
    _BUFFER_SIZE: int = field(default=10, repr=False)
    _buffer_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.logs_dir / f"session_{self.session_id}.jsonl"
        self._write_event("session_start", {
            "source": self.source,
            "timestamp": self._started.isoformat(),
        })

    def log_text_processed(
        self,
        source: str,
        item_count: int,
        confidence: float,
        rules: list[str] | None = None,
    ) -> None:
        """Log a completed classification (local or remote)."""
        self.metrics.texts_processed += 1
        self.metrics.items_produced += item_count
        self.metrics.confidence_sum += confidence
        self._write_event("text_processed", {
            "source": source,
            "item_count": item_count,
            "confidence": confidence,
            "rules": rules or [],
        })

    def log_segments_dropped(self, segments: list[str]) -> None:
        """Log low-signal segments the segmenter discarded."""
        self.metrics.segments_dropped += len(segments)
        self._write_event("segments_dropped", {
            "count": len(segments),
            "segments": [_preview(s, 40) for s in segments[:10]],
        })

    def log_fallback(self, reason: str, detail: str | None = None) -> None:
        """Log a remote classifier result replaced by the local pipeline."""
        self.metrics.fallbacks += 1
        self._write_event("fallback_used", {
            "reason": reason,
            "detail": _preview(detail or ""),
        })

    def log_alternatives_rescored(
        self,
        alternative_count: int,
        chosen_index: int,
        chosen_score: float,
        transcript: str,
    ) -> None:
        """Log speech alternative selection."""
        self.metrics.alternatives_rescored += 1
        self._write_event("alternatives_rescored", {
            "alternative_count": alternative_count,
            "chosen_index": chosen_index,
            "chosen_score": round(chosen_score, 3),
            "transcript_preview": _preview(transcript),
        })

    def log_job_enqueued(self, job_id: str, item_count: int) -> None:
        """Log a save job written to the offline queue."""
        self.metrics.jobs_enqueued += 1
        self._write_event("job_enqueued", {"job_id": job_id, "item_count": item_count})

    def log_queue_flushed(self, success: int, failed: int, total: int) -> None:
        """Log flush statistics."""
        self.metrics.jobs_saved += success
        self._write_event("queue_flushed", {
            "success": success,
            "failed": failed,
            "total": total,
        })

    def log_job_failed(self, job_id: str, retry_count: int, reason: str) -> None:
        """Log a job dropped after exhausting its retries."""
        self.metrics.jobs_failed += 1
        self._write_event("job_failed_permanently", {
            "job_id": job_id,
            "retry_count": retry_count,
            "reason": _preview(reason),
        })

    def log_error(self, error_type: str, message: str, details: dict | None = None) -> None:
        """Log an error event."""
        self._write_event("error", {
            "error_type": error_type,
            "message": message,
            "details": details or {},
        })

    def finalize(self) -> dict:
        """Finalize session and write summary.

        Returns:
            Summary metrics dict
        """
        elapsed = (datetime.now() - self._started).total_seconds()
        avg_conf = (
            self.metrics.confidence_sum / self.metrics.texts_processed
            if self.metrics.texts_processed > 0 else 0
        )

        summary = {
            "duration_seconds": round(elapsed, 2),
            "texts_processed": self.metrics.texts_processed,
            "items_produced": self.metrics.items_produced,
            "avg_confidence": round(avg_conf, 3),
            "fallbacks": self.metrics.fallbacks,
            "segments_dropped": self.metrics.segments_dropped,
            "alternatives_rescored": self.metrics.alternatives_rescored,
            "jobs_enqueued": self.metrics.jobs_enqueued,
            "jobs_saved": self.metrics.jobs_saved,
            "jobs_failed": self.metrics.jobs_failed,
        }

        self._write_event("session_complete", summary)
        self._flush_logs()
        return summary

    def _write_event(self, event_type: str, data: dict) -> None:
        """Buffer a JSON event and flush when buffer is full.

        Thread-safe: the queue flush and connectivity threads log concurrently.
        """
        event = {
            "event": event_type,
            "ts": datetime.now().isoformat(),
            **data,
        }

        with self._buffer_lock:
            self._log_buffer.append(event)

            critical_events = {
                "session_start", "session_complete", "error", "job_failed_permanently",
            }
            buffer_full = len(self._log_buffer) >= self._BUFFER_SIZE
            should_flush = buffer_full or event_type in critical_events

        # Flush outside the lock to avoid holding lock during I/O
        if should_flush:
            self._flush_logs()

    def _flush_logs(self) -> None:
        """Flush buffered log events to disk."""
        with self._buffer_lock:
            if not self._log_buffer:
                return
            events_to_write = self._log_buffer.copy()

        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                for event in events_to_write:
                    try:
                        f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
                    except (TypeError, ValueError) as e:
                        f.write(json.dumps({
                            "event": "serialization_error",
                            "ts": datetime.now().isoformat(),
                            "error": str(e),
                            "original_event_type": event.get("event", "unknown")
                        }) + "\n")

            # Only clear after a successful write (events may arrive mid-write)
            with self._buffer_lock:
                self._log_buffer = [e for e in self._log_buffer if e not in events_to_write]

        except OSError as e:
            # Keep buffer intact for retry
            print(f"Warning: Failed to flush logs to {self.log_file}: {e}", file=sys.stderr)


# Global logger instance for current session (thread-safe)
_current_logger: SessionLogger | None = None
_logger_lock = threading.Lock()


def get_logger() -> SessionLogger | None:
    """Get the current session logger (thread-safe)."""
    with _logger_lock:
        return _current_logger


def set_logger(logger: SessionLogger | None) -> None:
    """Set the current session logger (thread-safe)."""
    global _current_logger
    with _logger_lock:
        _current_logger = logger


def log_event(event_type: str, data: dict) -> None:
    """Log to current session if active (thread-safe)."""
    with _logger_lock:
        if _current_logger:
            _current_logger._write_event(event_type, data)


def _flush_on_exit():
    """Flush any pending log events on process exit."""
    with _logger_lock:
        if _current_logger and _current_logger._log_buffer:
            try:
                _current_logger._flush_logs()
            except Exception:
                pass  # Best-effort flush on exit


atexit.register(_flush_on_exit)


def analyze_logs(limit: int = 10, logs_dir: Path | None = None) -> dict[str, Any]:
    """Analyze recent log sessions for patterns.

    Returns aggregated insights across sessions.
    """
    logs_dir = logs_dir or LOGS_DIR
    if not logs_dir.exists():
        return {"error": "No logs directory found"}

    log_files = sorted(logs_dir.glob("session_*.jsonl"), reverse=True)[:limit]
    if not log_files:
        return {"error": "No log files found"}

    summaries = []
    fallback_reasons: dict[str, int] = {}

    for log_file in log_files:
        try:
            file_content = log_file.read_text(encoding="utf-8")
        except OSError:
            continue

        for line in file_content.splitlines():
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue

            if event.get("event") == "fallback_used":
                reason = event.get("reason", "unknown")
                fallback_reasons[reason] = fallback_reasons.get(reason, 0) + 1
            elif event.get("event") == "session_complete":
                summaries.append(event)

    texts = sum(s.get("texts_processed", 0) for s in summaries)
    fallbacks = sum(s.get("fallbacks", 0) for s in summaries)
    with_texts = [s for s in summaries if s.get("texts_processed", 0) > 0]
    avg_confidence = (
        sum(s.get("avg_confidence", 0) for s in with_texts) / len(with_texts)
        if with_texts else 0
    )

    return {
        "sessions_analyzed": len(log_files),
        "texts_processed": texts,
        "items_produced": sum(s.get("items_produced", 0) for s in summaries),
        "avg_confidence": round(avg_confidence, 3),
        "fallback_rate": round(fallbacks / texts * 100, 1) if texts else None,
        "jobs_saved": sum(s.get("jobs_saved", 0) for s in summaries),
        "jobs_failed": sum(s.get("jobs_failed", 0) for s in summaries),
        "common_fallback_reasons": sorted(fallback_reasons.items(), key=lambda x: -x[1])[:10],
    }
