"""
job_status.py — Thread-safe holder for the current (or last) scan job.
Writers swap in a modified copy under the lock; readers get copies.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScanJob:
    state: JobState = JobState.IDLE
    message: str = "Idle"
    current_video: str = ""
    videos_processed: int = 0
    total_videos: int = 0
    spam_found: int = 0
    spam_deleted: int = 0
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_seconds: int | None = field(default=None, compare=False)

    @property
    def is_running(self) -> bool:
        return self.state == JobState.RUNNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "state": self.state.value,
            "message": self.message,
            "currentVideo": self.current_video,
            "videosProcessed": self.videos_processed,
            "totalVideos": self.total_videos,
            "spamFound": self.spam_found,
            "spamDeleted": self.spam_deleted,
            "error": self.error,
            "durationSeconds": self.duration_seconds,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatusStore:
    """Single-flight guard plus the published ScanJob snapshot."""

    def __init__(self, clock: Callable[[], datetime] = _now):
        self._lock = threading.Lock()
        self._clock = clock
        self._job = ScanJob()

    def start(self) -> bool:
        """Publish a fresh Running job; False if one is already running."""
        with self._lock:
            if self._job.is_running:
                return False
            self._job = ScanJob(
                state=JobState.RUNNING,
                message="Initializing scan...",
                started_at=self._clock(),
            )
            return True

    def update(self, mutator: Callable[[ScanJob], None]) -> bool:
        with self._lock:
            if not self._job.is_running:
                logger.warning("Ignoring status update: no scan is running.")
                return False
            draft = replace(self._job)
            mutator(draft)
            draft.state = JobState.RUNNING
            self._job = draft
            return True

    def set_message(self, message: str) -> bool:
        def _apply(job: ScanJob) -> None:
            job.message = message
        return self.update(_apply)

    def finish(self, state: JobState, message: str, error: str | None = None) -> bool:
        """Move the running job to Completed or Failed. Only the first call counts."""
        if state not in (JobState.COMPLETED, JobState.FAILED):
            raise ValueError(f"finish() needs a terminal state, got {state}")
        with self._lock:
            if not self._job.is_running:
                return False
            self._job = replace(
                self._job,
                state=state,
                message=message,
                error=error,
                current_video="",
                finished_at=self._clock(),
            )
            return True

    def snapshot(self) -> ScanJob:
        with self._lock:
            job = replace(self._job)
        if job.started_at is not None:
            end = job.finished_at if job.finished_at is not None else self._clock()
            job.duration_seconds = max(0, round((end - job.started_at).total_seconds()))
        return job
