"""
comment_scanner.py — Find blocklisted top-level comments on one video.
A failed page fetch never propagates: the video is skipped with whatever
was flagged before the failure.
"""

import logging
from dataclasses import dataclass
from typing import Callable

import config
from blocklist import BlocklistMatcher
from youtube_client import PageFetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommentRef:
    id: str
    display_text: str


def _noop(message: str) -> None:
    pass


def _top_level_comment(thread: dict) -> CommentRef | None:
    top = (thread.get("snippet") or {}).get("topLevelComment") or {}
    comment_id = top.get("id")
    if not comment_id:
        return None
    text = (top.get("snippet") or {}).get("textDisplay") or ""
    return CommentRef(id=comment_id, display_text=text)


def scan_video(
    client,
    video_id: str,
    matcher: BlocklistMatcher,
    on_progress: Callable[[str], None] | None = None,
    page_size: int = config.COMMENT_PAGE_SIZE,
) -> list[str]:
    """Return ids of flagged top-level comments on `video_id`."""
    notify = on_progress or _noop
    flagged: list[str] = []
    seen = 0
    cursor = None

    notify(f"Fetching comments for video ID: {video_id}...")
    while True:
        try:
            threads, cursor = client.list_comment_threads(video_id, page_size, cursor)
        except PageFetchError as e:
            if e.comments_disabled:
                logger.info("Comments are disabled for video %s.", video_id)
                notify(f"Comments are disabled for video {video_id}. Skipping.")
            else:
                logger.warning("Abandoning comment scan for %s: %s", video_id, e)
                notify(f"Error fetching comments for {video_id}: {e}")
            return flagged
        except Exception as e:
            logger.error("Unexpected error scanning %s: %s", video_id, e, exc_info=True)
            notify(f"Error fetching comments for {video_id}: {e}")
            return flagged

        seen += len(threads)
        for thread in threads:
            comment = _top_level_comment(thread)
            if comment and matcher.is_spam(comment.display_text):
                logger.debug("Spam on %s: %r (%s)", video_id, comment.display_text[:80], comment.id)
                flagged.append(comment.id)
        notify(f"Fetched {seen} comment threads for {video_id}...")

        if not cursor:
            break

    notify(
        f"Finished fetching comments for {video_id}. "
        f"Found {len(flagged)} potential spam comments."
    )
    return flagged
