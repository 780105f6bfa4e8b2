"""Durable offline queue for item saves.

Jobs live as a JSON list under a single store key. Every mutation is a
locked read-modify-write of that list (thread lock, plus a cross-process
file lock for file-backed stores), and at most one flush runs at a time.

Job lifecycle:
    pending -> in-flight -> removed            (save succeeded)
                         -> pending, retry+1   (save failed, under the cap)
                         -> failed permanently (cap reached: dropped,
                                                dead-lettered, counted)
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from quickjot.config import QuickJotConfig, _file_lock
from quickjot.logging import get_logger
from quickjot.queue.store import BlobStore, FileBlobStore, sanitize_key

logger = logging.getLogger(__name__)

QUEUE_KEY = "quickjot:pending-saves"
DEFAULT_MAX_RETRIES = 3
DEAD_LETTER_FILE = "dead_letter.jsonl"

TrySave = Callable[[list[dict[str, Any]]], Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


class SaveJob(BaseModel):
    """A batch of serialized items waiting to be saved."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    payload: list[dict[str, Any]]
    created_at: int = Field(default_factory=_now_ms, alias="createdAt", description="Epoch milliseconds")
    retry_count: int = Field(default=0, ge=0, alias="retryCount")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1, alias="maxRetries")


_JOBS = TypeAdapter(list[SaveJob])


@dataclass
class FlushStats:
    success: int = 0
    failed: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class QueueStats:
    pending_count: int
    oldest_job: int | None
    total_retries: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PersistenceQueue:
    """Offline save queue over a BlobStore."""

    def __init__(
        self,
        store: BlobStore,
        key: str = QUEUE_KEY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        dead_letter_path: Path | None = None,
    ):
        self.store = store
        self.key = key
        self.max_retries = max_retries
        self.dead_letter_path = dead_letter_path
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._lock_name = f"queue_{sanitize_key(key)}"

    @classmethod
    def from_config(cls, config: QuickJotConfig) -> PersistenceQueue:
        dead_letter = config.queue_dir / DEAD_LETTER_FILE if config.queue.dead_letter else None
        return cls(
            FileBlobStore(config.queue_dir),
            key=config.queue.key,
            max_retries=config.queue.max_retries,
            dead_letter_path=dead_letter,
        )

    # =========================================================================
    # Store access
    # =========================================================================

    @contextmanager
    def _locked(self):
        with self._lock:
            if isinstance(self.store, FileBlobStore):
                with _file_lock(self._lock_name):
                    yield
            else:
                yield

    def _read(self) -> list[SaveJob]:
        raw = self.store.get(self.key)
        if not raw:
            return []
        try:
            return _JOBS.validate_json(raw)
        except ValidationError as e:
            logger.warning("Corrupt queue blob under %r, treating as empty: %s", self.key, e)
            return []

    def _write(self, jobs: list[SaveJob]) -> None:
        self.store.set(self.key, _JOBS.dump_json(jobs, by_alias=True).decode("utf-8"))

    # =========================================================================
    # Job operations
    # =========================================================================

    def enqueue(self, payload: list[dict[str, Any]]) -> str:
        """Durably append a save job and return its id."""
        job = SaveJob(payload=payload, max_retries=self.max_retries)
        with self._locked():
            jobs = self._read()
            jobs.append(job)
            self._write(jobs)

        session = get_logger()
        if session:
            session.log_job_enqueued(job.id, len(payload))
        logger.debug("Enqueued job %s (%d items)", job.id, len(payload))
        return job.id

    def pending_jobs(self) -> list[SaveJob]:
        with self._locked():
            return self._read()

    def remove_job(self, job_id: str) -> bool:
        """Remove a job by id. Returns False if it was not queued."""
        with self._locked():
            jobs = self._read()
            kept = [j for j in jobs if j.id != job_id]
            if len(kept) == len(jobs):
                return False
            self._write(kept)
            return True

    def update_job_retry(self, job_id: str, retry_count: int) -> bool:
        """Set a job's retry count. Returns False if it was not queued."""
        with self._locked():
            jobs = self._read()
            for job in jobs:
                if job.id == job_id:
                    job.retry_count = retry_count
                    self._write(jobs)
                    return True
            return False

    def clear_queue(self) -> int:
        """Drop every pending job. Returns how many were dropped."""
        with self._locked():
            count = len(self._read())
            self.store.delete(self.key)
        return count

    def get_queue_stats(self) -> QueueStats:
        jobs = self.pending_jobs()
        return QueueStats(
            pending_count=len(jobs),
            oldest_job=min((j.created_at for j in jobs), default=None),
            total_retries=sum(j.retry_count for j in jobs),
        )

    # =========================================================================
    # Flush
    # =========================================================================

    def flush(self, try_save: TrySave, blocking: bool = True) -> FlushStats | None:
        """Attempt every pending job once, in queue order.

        Args:
            try_save: Called with each job's payload; any exception is a failure
            blocking: Wait for a running flush to finish instead of skipping

        Returns:
            FlushStats, or None when skipped because another flush was running
        """
        if not self._flush_lock.acquire(blocking=blocking):
            logger.debug("Flush already in progress, skipping")
            return None

        try:
            jobs = self.pending_jobs()
            stats = FlushStats(total=len(jobs))

            for job in jobs:
                if job.retry_count >= job.max_retries:
                    stats.failed += 1
                    self._fail_permanently(job, "retry limit already reached")
                    continue

                try:
                    try_save(job.payload)
                except Exception as e:
                    retry_count = job.retry_count + 1
                    reason = f"{type(e).__name__}: {e}"
                    if retry_count >= job.max_retries:
                        stats.failed += 1
                        job.retry_count = retry_count
                        self._fail_permanently(job, reason)
                    else:
                        logger.info("Save failed for job %s (attempt %d): %s", job.id, retry_count, reason)
                        self.update_job_retry(job.id, retry_count)
                    continue

                self.remove_job(job.id)
                stats.success += 1

            session = get_logger()
            if session:
                session.log_queue_flushed(stats.success, stats.failed, stats.total)
            return stats
        finally:
            self._flush_lock.release()

    # =========================================================================
    # Dead letters
    # =========================================================================

    def _fail_permanently(self, job: SaveJob, reason: str) -> None:
        logger.warning("Dropping job %s after %d attempts: %s", job.id, job.retry_count, reason)
        self.remove_job(job.id)

        if self.dead_letter_path is not None:
            record = {
                "job": job.model_dump(by_alias=True),
                "reason": reason,
                "failed_at": datetime.now().isoformat(),
            }
            with self._locked():
                self.dead_letter_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.dead_letter_path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")

        session = get_logger()
        if session:
            session.log_job_failed(job.id, job.retry_count, reason)

    def dead_letters(self) -> list[dict[str, Any]]:
        """Jobs dropped after exhausting their retries, oldest first."""
        if self.dead_letter_path is None or not self.dead_letter_path.exists():
            return []

        records = []
        for line in self.dead_letter_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable dead-letter line")
        return records
