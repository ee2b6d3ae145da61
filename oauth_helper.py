"""
oauth_helper.py — OAuth handshake and token management for the channel owner.
Handles the YouTube authorization-code flow, token refresh, and file storage.
The scan only ever sees an access token or a CredentialError.
"""

import fcntl
import json
import logging
import os
import secrets
import time
import urllib.parse
from datetime import datetime, timezone

import requests

import config

logger = logging.getLogger(__name__)

ACCOUNT_KEY = "youtube"
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
YOUTUBE_CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"


class CredentialError(Exception):
    """No usable bearer credential; the caller must re-authorize."""


# ── Credential storage ───────────────────────────────────────────

def _load_credentials() -> dict:
    """Load stored credentials from JSON file. ASSUMES LOCK IS HELD if used internally."""
    cred_path = config.CREDENTIALS_FILE
    if not cred_path.exists():
        return {"accounts": {}, "oauth_states": {}}
    try:
        with open(cred_path, "r") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError):
        return {"accounts": {}, "oauth_states": {}}


def _save_credentials(data: dict):
    """Save credentials to JSON file. ASSUMES LOCK IS HELD if used internally."""
    cred_path = config.CREDENTIALS_FILE
    cred_path.parent.mkdir(parents=True, exist_ok=True)
    with open(cred_path, "w") as f:
        json.dump(data, f, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.chmod(str(cred_path), 0o600)


def _update_creds_transactional(update_fn):
    """Read-modify-write the credentials file under an exclusive flock."""
    cred_path = config.CREDENTIALS_FILE
    cred_path.parent.mkdir(parents=True, exist_ok=True)

    # flock on a sibling file; the data file is rewritten in place
    lock_path = cred_path.with_suffix(".lock")
    with open(lock_path, "w") as lf:
        fcntl.flock(lf, fcntl.LOCK_EX)
        try:
            creds = _load_credentials()
            updated_creds = update_fn(creds)
            _save_credentials(updated_creds)
        finally:
            fcntl.flock(lf, fcntl.LOCK_UN)


# ── Account ──────────────────────────────────────────────────────

def get_account() -> dict | None:
    """Full stored account including tokens (internal use only)."""
    return _load_credentials().get("accounts", {}).get(ACCOUNT_KEY)


def get_account_summary() -> dict | None:
    """Account info safe to show in chat (no tokens)."""
    account = get_account()
    if not account:
        return None
    return {
        "account_name": account.get("account_name", "unknown"),
        "channel_id": account.get("channel_id", ""),
        "status": account.get("status", "unknown"),
        "token_valid": account.get("token_valid", False),
        "connected_at": account.get("connected_at", ""),
        "last_refresh": account.get("last_refresh", ""),
    }


def save_account(account_data: dict):
    def _update(creds):
        creds.setdefault("accounts", {})[ACCOUNT_KEY] = account_data
        return creds

    _update_creds_transactional(_update)
    logger.info("Saved YouTube account: %s", account_data.get("account_name"))


def mark_account_invalid(reason: str = ""):
    def _update(creds):
        account = creds.get("accounts", {}).get(ACCOUNT_KEY)
        if account:
            account["token_valid"] = False
            account["status"] = "token_invalid"
            account["invalid_reason"] = reason
        return creds

    _update_creds_transactional(_update)
    logger.warning("Marked YouTube account as invalid: %s", reason)


# ── YouTube OAuth ─────────────────────────────────────────────────

def generate_youtube_oauth_url() -> tuple[str, str]:
    """
    Generate a YouTube OAuth2 authorization URL.
    Returns (url, state_token).
    """
    redirect = config.YOUTUBE_REDIRECT_URI
    if config.OAUTH_REQUIRE_HTTPS and redirect.startswith("http://"):
        logger.warning(
            "SECURITY: OAuth redirect URI uses HTTP (%s). "
            "Set OAUTH_REQUIRE_HTTPS=false or update YOUTUBE_REDIRECT_URI to HTTPS.",
            redirect,
        )

    state = secrets.token_urlsafe(32)

    def _update(creds):
        creds.setdefault("oauth_states", {})[state] = {
            "platform": "youtube",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        return creds

    _update_creds_transactional(_update)

    params = {
        "client_id": config.YOUTUBE_CLIENT_ID,
        "redirect_uri": redirect,
        "response_type": "code",
        "scope": " ".join(config.YOUTUBE_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    url = GOOGLE_AUTH_URL + "?" + urllib.parse.urlencode(params)
    return url, state


def parse_redirect_url(url: str) -> tuple[str | None, str | None]:
    """Extract (code, state) from the pasted OAuth redirect URL."""
    params = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
    return params.get("code", [None])[0], params.get("state", [None])[0]


def exchange_youtube_code(code: str, state: str) -> dict:
    """
    Exchange an authorization code for access + refresh tokens.
    Returns account info dict on success, {"error": ...} otherwise.
    """
    creds = _load_credentials()
    if state not in creds.get("oauth_states", {}):
        return {"error": "invalid_state"}

    resp = requests.post(GOOGLE_TOKEN_URL, data={
        "code": code,
        "client_id": config.YOUTUBE_CLIENT_ID,
        "client_secret": config.YOUTUBE_CLIENT_SECRET,
        "redirect_uri": config.YOUTUBE_REDIRECT_URI,
        "grant_type": "authorization_code",
    }, timeout=15)

    if resp.status_code != 200:
        return {"error": f"token_exchange_failed: {resp.text[:200]}"}

    tokens = resp.json()

    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    ch_resp = requests.get(
        YOUTUBE_CHANNELS_URL,
        params={"part": "snippet", "mine": "true"},
        headers=headers, timeout=15,
    )

    channel_name = "unknown"
    channel_id = "unknown"
    if ch_resp.status_code == 200:
        items = ch_resp.json().get("items", [])
        if items:
            channel_name = items[0]["snippet"]["title"]
            channel_id = items[0]["id"]

    now = datetime.now(timezone.utc).isoformat()
    account_data = {
        "platform": "youtube",
        "account_name": channel_name,
        "channel_id": channel_id,
        "access_token": tokens["access_token"],
        "refresh_token": tokens.get("refresh_token", ""),
        "expires_at": int(time.time()) + int(tokens.get("expires_in", 3600)),
        "token_valid": True,
        "status": "active",
        "connected_at": now,
        "last_refresh": now,
    }

    def _update_final(creds):
        creds.setdefault("accounts", {})[ACCOUNT_KEY] = account_data
        creds.get("oauth_states", {}).pop(state, None)
        return creds

    _update_creds_transactional(_update_final)
    logger.info("Connected YouTube channel %s (%s)", channel_name, channel_id)

    return {"account_name": channel_name, "channel_id": channel_id, "platform": "youtube"}


def refresh_youtube_token() -> bool:
    """Refresh the stored access token. Marks the account invalid on failure."""
    account = get_account()
    if not account:
        return False

    refresh_token = account.get("refresh_token")
    if not refresh_token:
        mark_account_invalid("no_refresh_token")
        return False

    try:
        resp = requests.post(GOOGLE_TOKEN_URL, data={
            "client_id": config.YOUTUBE_CLIENT_ID,
            "client_secret": config.YOUTUBE_CLIENT_SECRET,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }, timeout=15)
    except requests.RequestException as e:
        logger.error("Error refreshing access token: %s", e)
        mark_account_invalid(f"refresh_error: {e}")
        return False

    if resp.status_code != 200:
        mark_account_invalid(f"refresh_failed: {resp.status_code}")
        return False

    tokens = resp.json()
    account["access_token"] = tokens["access_token"]
    account["expires_at"] = int(time.time()) + int(tokens.get("expires_in", 3600))
    # Google may rotate the refresh token
    account["refresh_token"] = tokens.get("refresh_token") or refresh_token
    account["last_refresh"] = datetime.now(timezone.utc).isoformat()
    account["token_valid"] = True
    account["status"] = "active"
    save_account(account)
    logger.info("Access token refreshed.")
    return True


def get_access_token() -> str:
    """
    Return a usable access token, refreshing it if it is about to expire.
    Raises CredentialError when there is none.
    """
    account = get_account()
    if not account or not account.get("access_token"):
        raise CredentialError("Unauthorized: no YouTube account connected.")
    if not account.get("token_valid"):
        raise CredentialError("Refresh token failed. Please log in again.")

    expires_at = int(account.get("expires_at") or 0)
    if time.time() < expires_at - config.TOKEN_REFRESH_MARGIN_SECONDS:
        return account["access_token"]

    logger.info("Refreshing access token...")
    if not refresh_youtube_token():
        raise CredentialError("Refresh token failed. Please log in again.")
    return get_account()["access_token"]
