"""
config.py — Central configuration for the channel comment sweeper.
Loads credentials from .env and defines constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ── Load environment ──────────────────────────────────────────────
load_dotenv(Path(__file__).parent / ".env")


class ConfigurationError(Exception):
    """Required setting is missing; no scan can start."""


# ── Channel ───────────────────────────────────────────────────────
YOUTUBE_CHANNEL_ID = os.getenv("YOUTUBE_CHANNEL_ID", "").strip()

# ── Blocklist ─────────────────────────────────────────────────────
BLOCKLIST_FILE = os.getenv(
    "BLOCKLIST_FILE",
    str(Path(__file__).parent / "blockedword.json"),
)

# ── YouTube Data API paging ───────────────────────────────────────
VIDEO_PAGE_SIZE = 50        # playlistItems.list maxResults ceiling
COMMENT_PAGE_SIZE = 100     # commentThreads.list maxResults ceiling
DELETE_WORKERS = max(1, int(os.getenv("DELETE_WORKERS", "1")))
STATUS_POLL_SECONDS = int(os.getenv("STATUS_POLL_SECONDS", "5"))

# ── YouTube OAuth ─────────────────────────────────────────────────
YOUTUBE_CLIENT_ID = os.getenv("YOUTUBE_CLIENT_ID", "")
YOUTUBE_CLIENT_SECRET = os.getenv("YOUTUBE_CLIENT_SECRET", "")
YOUTUBE_REDIRECT_URI = os.getenv("YOUTUBE_REDIRECT_URI", "http://localhost:8090/oauth/callback")
OAUTH_REQUIRE_HTTPS = os.getenv("OAUTH_REQUIRE_HTTPS", "true").lower() == "true"
# force-ssl is the only scope that allows comments.delete
YOUTUBE_SCOPES = ["https://www.googleapis.com/auth/youtube.force-ssl"]
TOKEN_REFRESH_MARGIN_SECONDS = 60

CREDENTIALS_FILE = Path(os.getenv(
    "CREDENTIALS_FILE",
    str(Path(__file__).parent / "secrets" / "credentials.json"),
))

# ── Telegram ──────────────────────────────────────────────────────
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
ADMIN_TELEGRAM_IDS = [
    int(x.strip()) for x in os.getenv("ADMIN_TELEGRAM_IDS", "").split(",")
    if x.strip().isdigit()
]
TELEGRAM_RATE_LIMIT_PER_MIN = int(os.getenv("TELEGRAM_RATE_LIMIT_PER_MIN", "20"))

# ── Instance ──────────────────────────────────────────────────────
INSTANCE_ID = os.getenv("INSTANCE_ID", "sweeper_01")

# ── Display Timezone ──────────────────────────────────────────────
DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", "Asia/Jakarta")

# ── Logging ───────────────────────────────────────────────────────
LOG_DIR = Path(os.getenv("LOG_DIR", str(Path(__file__).parent / "logs")))


def require_channel_id(channel_id: str | None = None) -> str:
    """Return the channel to sweep, or raise ConfigurationError if none is set."""
    value = (channel_id if channel_id is not None else YOUTUBE_CHANNEL_ID) or ""
    value = value.strip()
    if not value:
        raise ConfigurationError("YOUTUBE_CHANNEL_ID environment variable is not set.")
    return value
