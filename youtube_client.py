"""
youtube_client.py — YouTube Data API v3 adapter for the sweeper.
Wraps the four calls the scan needs and turns HttpError into typed errors.
"""

import json
import logging
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

import config

logger = logging.getLogger(__name__)

COMMENTS_DISABLED_REASON = "commentsDisabled"


class YouTubeAPIError(Exception):
    """Base class for failed YouTube Data API calls."""

    def __init__(self, message: str, reason: str = "", status: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.status = status


class ResolutionError(YouTubeAPIError):
    """The channel has no resolvable uploads playlist."""


class PageFetchError(YouTubeAPIError):
    """A list page could not be fetched."""

    @property
    def comments_disabled(self) -> bool:
        return self.reason == COMMENTS_DISABLED_REASON


class DeleteError(YouTubeAPIError):
    """A single comment could not be deleted."""


def _error_details(e: HttpError) -> tuple[str, str, int | None]:
    """Pull (reason, message, status) out of an API error payload."""
    status = getattr(e.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    reason = ""
    message = str(e)
    content = e.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        payload = json.loads(content or "{}")
    except (TypeError, ValueError):
        return reason, message, status
    error = payload.get("error", {}) if isinstance(payload, dict) else {}
    if isinstance(error, dict):
        message = error.get("message") or message
        errors = error.get("errors") or []
        if errors and isinstance(errors[0], dict):
            reason = errors[0].get("reason", "") or ""
    return reason, message, status


class YouTubeClient:
    """Thin wrapper over a `youtube` v3 service resource."""

    def __init__(self, service):
        self.service = service

    @classmethod
    def from_access_token(cls, access_token: str) -> "YouTubeClient":
        creds = Credentials(token=access_token, scopes=config.YOUTUBE_SCOPES)
        service = build("youtube", "v3", credentials=creds, cache_discovery=False)
        return cls(service)

    def list_channel_uploads(self, channel_id: str) -> str | None:
        """Return the uploads playlist id for a channel, or None."""
        try:
            resp = self.service.channels().list(
                part="contentDetails",
                id=channel_id,
            ).execute()
        except HttpError as e:
            reason, message, status = _error_details(e)
            raise ResolutionError(f"Error fetching channel {channel_id}: {message}", reason, status) from e

        items = resp.get("items") or []
        if not items:
            return None
        related = items[0].get("contentDetails", {}).get("relatedPlaylists", {})
        return related.get("uploads") or None

    def list_playlist_items(
        self, playlist_id: str, page_size: int, cursor: str | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        params = {
            "part": "snippet",
            "playlistId": playlist_id,
            "maxResults": page_size,
        }
        if cursor:
            params["pageToken"] = cursor
        try:
            resp = self.service.playlistItems().list(**params).execute()
        except HttpError as e:
            reason, message, status = _error_details(e)
            raise PageFetchError(f"Error fetching videos: {message}", reason, status) from e
        return resp.get("items") or [], resp.get("nextPageToken") or None

    def list_comment_threads(
        self, video_id: str, page_size: int, cursor: str | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        params = {
            "part": "snippet",
            "videoId": video_id,
            "maxResults": page_size,
        }
        if cursor:
            params["pageToken"] = cursor
        try:
            resp = self.service.commentThreads().list(**params).execute()
        except HttpError as e:
            reason, message, status = _error_details(e)
            raise PageFetchError(
                f"Error fetching comments for {video_id}: {message}", reason, status,
            ) from e
        return resp.get("items") or [], resp.get("nextPageToken") or None

    def delete_comment(self, comment_id: str) -> None:
        try:
            self.service.comments().delete(id=comment_id).execute()
        except HttpError as e:
            reason, message, status = _error_details(e)
            raise DeleteError(f"Failed to delete comment {comment_id}: {message}", reason, status) from e
