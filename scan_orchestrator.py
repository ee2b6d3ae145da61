"""
scan_orchestrator.py — Runs a channel-wide spam sweep as a background job.
Enumerates uploads, scans each video's comment threads, deletes flagged
comments, and publishes progress to a JobStatusStore.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable

import config
from blocklist import BlocklistMatcher
from comment_deleter import delete_comments
from comment_scanner import scan_video
from job_status import JobState, JobStatusStore, ScanJob
from oauth_helper import CredentialError
from video_enumerator import list_channel_videos
from youtube_client import YouTubeClient

logger = logging.getLogger(__name__)

# Structured JSONL events; the handler is attached by the entry point.
json_logger = logging.getLogger("sweeper.json")


def log_event(event_type: str, **kwargs):
    """Write a structured JSON log entry."""
    entry = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "event": event_type,
        "instance_id": config.INSTANCE_ID,
        **kwargs,
    }
    json_logger.info(json.dumps(entry, ensure_ascii=False))


class ScanOrchestrator:
    """Single-flight driver for the enumerate → scan → delete pipeline."""

    def __init__(
        self,
        store: JobStatusStore,
        matcher: BlocklistMatcher,
        client_factory: Callable[[str], object] = YouTubeClient.from_access_token,
        delete_workers: int = config.DELETE_WORKERS,
    ):
        self.store = store
        self.matcher = matcher
        self.client_factory = client_factory
        self.delete_workers = delete_workers
        self._thread: threading.Thread | None = None

    def start(self, credential: str, channel_id: str) -> bool:
        """
        Launch a scan in the background.
        Returns False (conflict) if one is already running; raises
        ConfigurationError / CredentialError before touching any state.
        """
        channel_id = config.require_channel_id(channel_id)
        if not credential:
            raise CredentialError("No valid YouTube access token.")

        if not self.store.start():
            logger.info("Scan request rejected: a scan is already in progress.")
            log_event("scan_rejected", channel_id=channel_id)
            return False

        try:
            self._thread = threading.Thread(
                target=self.run,
                args=(credential, channel_id),
                name="comment-sweep",
                daemon=True,
            )
            self._thread.start()
        except Exception as e:
            logger.exception("Could not launch scan thread")
            self.store.finish(JobState.FAILED, f"Scan failed: {e}", error=str(e))
            log_event("scan_failed", channel_id=channel_id, error=str(e))
            raise
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the background scan ends. True if it has finished."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _report(self, message: str) -> None:
        logger.info(message)
        self.store.set_message(message)

    def run(self, credential: str, channel_id: str) -> None:
        """Pipeline body. Assumes store.start() already succeeded."""
        log_event("scan_started", channel_id=channel_id)
        try:
            self._sweep(credential, channel_id)
        except Exception as e:
            logger.error("Error during background scan: %s", e, exc_info=True)
            error = str(e) or "An unknown error occurred during the scan."
            self.store.finish(JobState.FAILED, f"Scan failed: {error}", error=error)
            log_event("scan_failed", channel_id=channel_id, error=error)
        finally:
            if self.store.finish(
                JobState.FAILED,
                "Scan stopped unexpectedly.",
                error="Scan stopped unexpectedly.",
            ):
                log_event("scan_failed", channel_id=channel_id, error="stopped unexpectedly")
            final = self.store.snapshot()
            logger.info("Scan finished. Final Status: %s", final.message)

    def _sweep(self, credential: str, channel_id: str) -> None:
        client = self.client_factory(credential)

        videos = list_channel_videos(client, channel_id, self._report)
        total = len(videos)

        def _set_total(job: ScanJob) -> None:
            job.total_videos = total
            job.message = f"Found {total} videos. Starting comment analysis..."
        self.store.update(_set_total)

        spam_found = 0
        spam_deleted = 0
        for index, video in enumerate(videos, start=1):
            def _enter(job: ScanJob, index=index, video=video) -> None:
                job.videos_processed = index
                job.current_video = video.label
            self.store.update(_enter)

            if not video.id:
                self._report(f"Skipping item {index} (no video ID found)")
                continue

            self._report(f"[{index}/{total}] Analyzing comments for: {video.title}")
            flagged = scan_video(client, video.id, self.matcher, self._report)

            def _found(job: ScanJob, count=len(flagged)) -> None:
                job.spam_found += count
            self.store.update(_found)
            spam_found += len(flagged)

            if not flagged:
                self._report(f"[{index}/{total}] No spam found for: {video.title}")
                continue

            self._report(f"[{index}/{total}] Deleting {len(flagged)} spam comments for: {video.title}")
            outcome = delete_comments(client, flagged, self._report, workers=self.delete_workers)

            def _deleted(job: ScanJob, count=outcome.succeeded) -> None:
                job.spam_deleted += count
            self.store.update(_deleted)
            spam_deleted += outcome.succeeded

        summary = (
            f"Scan completed. Processed {total} videos. Found {spam_found} spam comments, "
            f"successfully deleted {spam_deleted}."
        )
        self.store.finish(JobState.COMPLETED, summary)
        log_event(
            "scan_completed",
            channel_id=channel_id,
            videos=total,
            spam_found=spam_found,
            spam_deleted=spam_deleted,
        )
