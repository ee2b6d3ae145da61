#!/usr/bin/env python3
"""
test_bot.py — Telegram control commands driven with mocked updates.
No bot token or network access required.
"""

import asyncio
import os
import sys
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

sys.path.insert(0, os.path.dirname(__file__))

import config
import oauth_helper
import telegram_bot
from job_status import JobState, JobStatusStore, ScanJob

ADMIN_ID = 123456789


def _make_update(user_id: int = ADMIN_ID):
    update = MagicMock()
    update.effective_user.id = user_id
    update.effective_user.first_name = "Admin"
    update.effective_message.reply_text = AsyncMock()
    return update


def _make_context(orchestrator, args=None):
    context = MagicMock()
    context.bot_data = {telegram_bot.ORCHESTRATOR_KEY: orchestrator}
    context.args = args or []
    return context


def _fake_orchestrator(start_result=True):
    orchestrator = MagicMock()
    orchestrator.start.return_value = start_result
    orchestrator.store = JobStatusStore()
    return orchestrator


def _reply(update) -> str:
    assert update.effective_message.reply_text.called, "No reply sent"
    return update.effective_message.reply_text.call_args[0][0]


def _run(handler, update, context):
    telegram_bot._rate_log.clear()
    with patch.object(config, "ADMIN_TELEGRAM_IDS", [ADMIN_ID]):
        asyncio.run(handler(update, context))


def test_non_admin_is_rejected():
    orchestrator = _fake_orchestrator()
    update = _make_update(user_id=42)
    _run(telegram_bot.cmd_scan, update, _make_context(orchestrator))
    assert "Unauthorized" in _reply(update)
    orchestrator.start.assert_not_called()
    print("  PASS: Non-admin rejected")


def test_scan_accepted():
    orchestrator = _fake_orchestrator(start_result=True)
    update = _make_update()
    with patch.object(oauth_helper, "get_access_token", return_value="tok"), \
            patch.object(config, "YOUTUBE_CHANNEL_ID", "UC_chan"):
        _run(telegram_bot.cmd_scan, update, _make_context(orchestrator))
    orchestrator.start.assert_called_once_with("tok", "UC_chan")
    assert "Scan initiated" in _reply(update)
    print("  PASS: /scan accepted")


def test_scan_conflict():
    orchestrator = _fake_orchestrator(start_result=False)
    update = _make_update()
    with patch.object(oauth_helper, "get_access_token", return_value="tok"), \
            patch.object(config, "YOUTUBE_CHANNEL_ID", "UC_chan"):
        _run(telegram_bot.cmd_scan, update, _make_context(orchestrator))
    assert "already in progress" in _reply(update)
    print("  PASS: /scan conflict")


def test_scan_credential_error_is_unauthorized():
    orchestrator = _fake_orchestrator()
    update = _make_update()
    error = oauth_helper.CredentialError("Refresh token failed. Please log in again.")
    with patch.object(oauth_helper, "get_access_token", side_effect=error):
        _run(telegram_bot.cmd_scan, update, _make_context(orchestrator))
    reply = _reply(update)
    assert "Unauthorized" in reply and "/connect" in reply
    orchestrator.start.assert_not_called()
    print("  PASS: /scan without credential")


def test_scan_missing_channel():
    orchestrator = _fake_orchestrator()
    orchestrator.start.side_effect = config.ConfigurationError("YOUTUBE_CHANNEL_ID environment variable is not set.")
    update = _make_update()
    with patch.object(oauth_helper, "get_access_token", return_value="tok"):
        _run(telegram_bot.cmd_scan, update, _make_context(orchestrator))
    assert "YOUTUBE_CHANNEL_ID" in _reply(update)
    assert orchestrator.store.snapshot().state == JobState.IDLE
    print("  PASS: /scan without channel id")


def test_scan_status_reports_snapshot():
    orchestrator = _fake_orchestrator()
    store = orchestrator.store
    store.start()

    def _progress(job: ScanJob):
        job.total_videos = 4
        job.videos_processed = 2
        job.spam_found = 3
        job.spam_deleted = 2
        job.current_video = "Video *B* (vid_b)"
        job.message = "[2/4] Analyzing comments for: Video *B*"
    store.update(_progress)

    update = _make_update()
    with patch.object(oauth_helper, "get_access_token", return_value="tok"):
        _run(telegram_bot.cmd_scan_status, update, _make_context(orchestrator))
    reply = _reply(update)
    assert "running" in reply
    assert "Videos: 2/4" in reply
    assert "Spam found: 3 | Deleted: 2" in reply
    assert "Video *B* (vid_b)" in reply
    print("  PASS: /scan_status snapshot")


def test_scan_status_credential_error():
    orchestrator = _fake_orchestrator()
    update = _make_update()
    with patch.object(oauth_helper, "get_access_token", side_effect=oauth_helper.CredentialError("expired")):
        _run(telegram_bot.cmd_scan_status, update, _make_context(orchestrator))
    assert "Unauthorized" in _reply(update)
    print("  PASS: /scan_status without credential")


def test_format_status_failed_job():
    job = ScanJob(
        state=JobState.FAILED,
        message="Scan failed: Could not find uploads playlist ID for channel UC_x",
        error="Could not find uploads playlist ID for channel UC_x",
        started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        duration_seconds=75,
    )
    text = telegram_bot.format_status(job)
    assert text.startswith("❌")
    assert "Error: Could not find uploads playlist" in text
    assert "Duration (last run): 1m 15s" in text
    print("  PASS: Failed job formatting")


def test_format_status_running_duration_is_live():
    job = ScanJob(
        state=JobState.RUNNING,
        message="Fetching videos...",
        started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        duration_seconds=5,
    )
    text = telegram_bot.format_status(job)
    assert "Duration: 5s" in text
    assert "last run" not in text
    print("  PASS: Running job duration")


def test_auth_requires_code_and_state():
    orchestrator = _fake_orchestrator()
    update = _make_update()
    _run(telegram_bot.cmd_auth, update, _make_context(orchestrator, args=["http://localhost/?code=abc"]))
    assert "Missing 'code' or 'state'" in _reply(update)

    update = _make_update()
    with patch.object(oauth_helper, "exchange_youtube_code", return_value={"account_name": "My Channel"}) as ex:
        _run(telegram_bot.cmd_auth, update, _make_context(
            orchestrator, args=["http://localhost/?code=abc&state=s1"],
        ))
    ex.assert_called_once_with("abc", "s1")
    assert "Connected YouTube: My Channel" in _reply(update)
    print("  PASS: /auth")


def test_rate_limit():
    telegram_bot._rate_log.clear()
    with patch.object(config, "TELEGRAM_RATE_LIMIT_PER_MIN", 3):
        results = [telegram_bot._rate_limit_check(999) for _ in range(5)]
    assert results == [True, True, True, False, False]
    telegram_bot._rate_log.clear()
    print("  PASS: Rate limit")


if __name__ == "__main__":
    tests = [
        test_non_admin_is_rejected,
        test_scan_accepted,
        test_scan_conflict,
        test_scan_credential_error_is_unauthorized,
        test_scan_missing_channel,
        test_scan_status_reports_snapshot,
        test_scan_status_credential_error,
        test_format_status_failed_job,
        test_format_status_running_duration_is_live,
        test_auth_requires_code_and_state,
        test_rate_limit,
    ]
    print(f"Running {len(tests)} bot tests...\n")
    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAIL: {test.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1
    print(f"\nResults: {passed} passed, {failed} failed out of {len(tests)} tests.")
    sys.exit(1 if failed else 0)
