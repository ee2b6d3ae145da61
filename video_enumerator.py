"""
video_enumerator.py — List every video in a channel's uploads playlist.
"""

import logging
from dataclasses import dataclass
from typing import Callable

import config
from youtube_client import ResolutionError

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str], None]


@dataclass(frozen=True)
class VideoRef:
    id: str
    title: str

    @property
    def label(self) -> str:
        return f"{self.title} ({self.id or 'no id'})"


def _noop(message: str) -> None:
    pass


def _to_video_ref(item: dict) -> VideoRef:
    snippet = item.get("snippet") or {}
    resource = snippet.get("resourceId") or {}
    return VideoRef(
        id=resource.get("videoId") or "",
        title=snippet.get("title") or "Unknown Title",
    )


def list_channel_videos(
    client, channel_id: str, on_progress: ProgressFn | None = None,
    page_size: int = config.VIDEO_PAGE_SIZE,
) -> list[VideoRef]:
    """
    Resolve the uploads playlist for `channel_id` and walk all its pages.
    Raises ResolutionError if the playlist is missing; page errors propagate.
    """
    notify = on_progress or _noop
    notify(f"Fetching channel details for ID: {channel_id}...")

    uploads_id = client.list_channel_uploads(channel_id)
    if not uploads_id:
        raise ResolutionError(f"Could not find uploads playlist ID for channel {channel_id}")
    notify(f"Found uploads playlist ID: {uploads_id}. Fetching videos...")

    videos: list[VideoRef] = []
    cursor = None
    pages = 0
    while True:
        items, cursor = client.list_playlist_items(uploads_id, page_size, cursor)
        pages += 1
        videos.extend(_to_video_ref(item) for item in items)
        notify(f"Fetched {len(videos)} videos so far...")
        if not cursor:
            break

    logger.info("Channel %s: %d videos across %d page(s).", channel_id, len(videos), pages)
    notify(f"Finished fetching {len(videos)} total videos.")
    return videos
