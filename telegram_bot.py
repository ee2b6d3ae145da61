"""
telegram_bot.py — Admin Telegram bot for controlling the comment sweeper.
Starts scans, shows the live job snapshot, and runs the OAuth connect flow.
Includes per-admin rate limiting and timezone-aware display.
"""

import collections
import logging
import time as _time
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

import config
import oauth_helper
from job_status import JobState, ScanJob
from scan_orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)

ORCHESTRATOR_KEY = "orchestrator"

_STATE_ICONS = {
    JobState.IDLE: "💤",
    JobState.RUNNING: "🔄",
    JobState.COMPLETED: "✅",
    JobState.FAILED: "❌",
}


# ── Timezone display helper ──────────────────────────────────────

def _to_display_tz(dt: datetime | None) -> str:
    if dt is None:
        return "N/A"
    try:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        local = dt.astimezone(ZoneInfo(config.DISPLAY_TIMEZONE))
        return local.strftime("%Y-%m-%d %H:%M %Z")
    except Exception:
        return dt.strftime("%Y-%m-%d %H:%M UTC")


def _format_duration(seconds: int | None) -> str:
    if seconds is None:
        return "N/A"
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_status(job: ScanJob) -> str:
    """Render a snapshot as plain text (titles may contain Markdown characters)."""
    icon = _STATE_ICONS.get(job.state, "❔")
    lines = [
        f"{icon} Sweep status: {job.state.value}",
        f"Message: {job.message}",
    ]
    if job.current_video:
        lines.append(f"Current video: {job.current_video}")
    lines.append(f"Videos: {job.videos_processed}/{job.total_videos}")
    lines.append(f"Spam found: {job.spam_found} | Deleted: {job.spam_deleted}")
    if job.started_at is not None:
        lines.append(f"Started: {_to_display_tz(job.started_at)}")
        label = "Duration" if job.is_running else "Duration (last run)"
        lines.append(f"{label}: {_format_duration(job.duration_seconds)}")
    if job.error:
        lines.append(f"Error: {job.error}")
    return "\n".join(lines)


# ── Rate limiter ─────────────────────────────────────────────────

_rate_log: dict[int, list[float]] = collections.defaultdict(list)


def _rate_limit_check(user_id: int) -> bool:
    """Returns True if the user is within rate limits, False if exceeded."""
    now = _time.time()
    window = 60.0
    limit = config.TELEGRAM_RATE_LIMIT_PER_MIN
    _rate_log[user_id] = [t for t in _rate_log[user_id] if now - t < window]
    if len(_rate_log[user_id]) >= limit:
        logger.warning("Rate limit exceeded for user %d (%d/%d per min)", user_id, len(_rate_log[user_id]), limit)
        return False
    _rate_log[user_id].append(now)
    return True


def is_admin(user_id: int) -> bool:
    """Check if a Telegram user is an authorized admin."""
    if not config.ADMIN_TELEGRAM_IDS:
        logger.warning("ADMIN_TELEGRAM_IDS is empty; refusing admin access by default.")
        return False
    return user_id in config.ADMIN_TELEGRAM_IDS


def admin_only(func):
    """Decorator to restrict commands to admin users with rate limiting."""
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
        uid = update.effective_user.id
        if not is_admin(uid):
            await update.effective_message.reply_text("Unauthorized. Admin access required.")
            return
        if not _rate_limit_check(uid):
            await update.effective_message.reply_text("⏱ Please slow down. Rate limit exceeded.")
            return
        return await func(update, context)
    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper


def _orchestrator(context: ContextTypes.DEFAULT_TYPE) -> ScanOrchestrator:
    return context.bot_data[ORCHESTRATOR_KEY]


async def _reply_unauthorized(update: Update, exc: Exception):
    await update.effective_message.reply_text(
        f"🔒 Unauthorized: {exc}\nUse /connect to authorize the channel again."
    )


# ── Command Handlers ──────────────────────────────────────────────

@admin_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/start — Welcome message."""
    user = update.effective_user
    await update.effective_message.reply_text(
        f"👋 Hi {user.first_name}!\n\n" + cmd_help_text()
    )


@admin_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/help — Show usage instructions."""
    await update.effective_message.reply_text(cmd_help_text())


@admin_only
async def cmd_scan(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/scan — Start a channel-wide spam sweep in the background."""
    try:
        token = oauth_helper.get_access_token()
    except oauth_helper.CredentialError as e:
        await _reply_unauthorized(update, e)
        return

    try:
        accepted = _orchestrator(context).start(token, config.YOUTUBE_CHANNEL_ID)
    except config.ConfigurationError as e:
        logger.error("Cannot start scan: %s", e)
        await update.effective_message.reply_text(f"⚙️ {e}")
        return

    if not accepted:
        await update.effective_message.reply_text(
            "⚠️ Scan is already in progress. Use /scan_status to follow it."
        )
        return

    logger.info("Scan initiated by admin %d.", update.effective_user.id)
    await update.effective_message.reply_text(
        "🚀 Scan initiated. Use /scan_status to follow progress."
    )


@admin_only
async def cmd_scan_status(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/scan_status — Show the current or last sweep snapshot."""
    try:
        oauth_helper.get_access_token()
    except oauth_helper.CredentialError as e:
        await _reply_unauthorized(update, e)
        return

    job = _orchestrator(context).store.snapshot()
    await update.effective_message.reply_text(format_status(job))


@admin_only
async def cmd_connect(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/connect — Start OAuth flow for the channel owner."""
    url, _state = oauth_helper.generate_youtube_oauth_url()
    await update.effective_message.reply_text(
        "🔐 Connect the YouTube channel\n"
        "1. Open the link below and authorize the app.\n"
        "2. You will be redirected to the callback URL. It may fail to load.\n"
        "3. Copy the full URL from your browser address bar.\n"
        "4. Send here: /auth <pasted_url>\n\n"
        f"{url}"
    )


@admin_only
async def cmd_auth(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/auth <url> — Complete OAuth by pasting the redirect URL."""
    args = context.args
    if not args:
        await update.effective_message.reply_text("Usage: /auth <redirect_url_with_code>")
        return

    try:
        code, state = oauth_helper.parse_redirect_url(args[0])
    except ValueError as e:
        await update.effective_message.reply_text(f"Error parsing URL: {e}")
        return
    if not code or not state:
        await update.effective_message.reply_text("❌ Invalid URL. Missing 'code' or 'state'.")
        return

    res = oauth_helper.exchange_youtube_code(code, state)
    if "error" in res:
        await update.effective_message.reply_text(f"❌ Failed: {res['error']}")
        return
    await update.effective_message.reply_text(f"✅ Connected YouTube: {res.get('account_name')}")


@admin_only
async def cmd_account(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/account — Show the connected channel and token state."""
    summary = oauth_helper.get_account_summary()
    if not summary:
        await update.effective_message.reply_text("No YouTube account connected. Use /connect.")
        return
    icon = "✅" if summary["token_valid"] else "❌"
    await update.effective_message.reply_text(
        f"{icon} {summary['account_name']} ({summary['channel_id']})\n"
        f"Status: {summary['status']}\n"
        f"Last refresh: {summary['last_refresh'] or 'N/A'}\n"
        f"Configured channel: {config.YOUTUBE_CHANNEL_ID or 'not set'}"
    )


def cmd_help_text():
    return (
        "🤖 Comment Sweeper\n\n"
        "/scan — Scan every video and delete blocklisted comments\n"
        "/scan_status — Progress of the current or last scan\n"
        "/account — Connected channel\n"
        "/connect — Authorize the channel owner account\n"
        "/auth <url> — Finish authorization with the redirect URL\n"
        "/help — This message"
    )


# ── Bot setup & run ───────────────────────────────────────────────

def create_bot_app(orchestrator: ScanOrchestrator):
    """Create and configure the Telegram bot application."""
    if not config.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN not set in .env")
        return None

    app = Application.builder().token(config.TELEGRAM_BOT_TOKEN).build()
    app.bot_data[ORCHESTRATOR_KEY] = orchestrator

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("scan", cmd_scan))
    app.add_handler(CommandHandler("scan_status", cmd_scan_status))
    app.add_handler(CommandHandler("account", cmd_account))
    app.add_handler(CommandHandler("connect", cmd_connect))
    app.add_handler(CommandHandler("auth", cmd_auth))
    return app


def run_bot(orchestrator: ScanOrchestrator):
    """Start the Telegram bot in polling mode (blocking)."""
    app = create_bot_app(orchestrator)
    if not app:
        logger.error("Cannot start bot. Check config.")
        return

    logger.info("Telegram bot starting...")
    app.run_polling(drop_pending_updates=True)
