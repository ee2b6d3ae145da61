#!/usr/bin/env python3
"""
main.py — Entry point for the channel comment sweeper.

Usage:
    python main.py --bot          # Run the Telegram control bot
    python main.py --scan         # Run one sweep in the foreground
    python main.py --account      # Show the connected YouTube account
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

import config
import oauth_helper
from blocklist import BlocklistMatcher
from job_status import JobStatusStore
from scan_orchestrator import ScanOrchestrator

logger = logging.getLogger("sweeper")


def setup_logging():
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_filename = f"sweeper_{datetime.now(timezone.utc).strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(config.LOG_DIR / log_filename, encoding="utf-8"),
        ],
    )
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    # JSON structured log
    json_logger = logging.getLogger("sweeper.json")
    json_handler = logging.FileHandler(
        config.LOG_DIR / log_filename.replace(".log", "_structured.jsonl"),
        encoding="utf-8",
    )
    json_handler.setFormatter(logging.Formatter("%(message)s"))
    json_logger.addHandler(json_handler)
    json_logger.setLevel(logging.INFO)
    json_logger.propagate = False


def build_orchestrator() -> ScanOrchestrator:
    matcher = BlocklistMatcher.from_file(config.BLOCKLIST_FILE)
    return ScanOrchestrator(JobStatusStore(), matcher)


def run_foreground_scan(orchestrator: ScanOrchestrator) -> int:
    """Start a sweep and print the snapshot until it finishes. Returns exit code."""
    try:
        channel_id = config.require_channel_id()
        token = oauth_helper.get_access_token()
    except (config.ConfigurationError, oauth_helper.CredentialError) as e:
        logger.error("%s", e)
        return 1

    if not orchestrator.start(token, channel_id):
        logger.error("Scan is already in progress.")
        return 1

    while not orchestrator.wait(timeout=config.STATUS_POLL_SECONDS):
        job = orchestrator.store.snapshot()
        logger.info(
            "[%d/%d] found=%d deleted=%d: %s",
            job.videos_processed, job.total_videos,
            job.spam_found, job.spam_deleted, job.message,
        )

    final = orchestrator.store.snapshot()
    print(json.dumps(final.to_dict(), indent=2, ensure_ascii=False))
    return 0 if final.error is None else 1


def main():
    parser = argparse.ArgumentParser(description="Channel comment sweeper")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--bot", action="store_true", help="Run the Telegram control bot")
    group.add_argument("--scan", action="store_true", help="Run one sweep in the foreground")
    group.add_argument("--account", action="store_true", help="Show the connected YouTube account")
    args = parser.parse_args()

    setup_logging()

    if args.account:
        print(json.dumps(oauth_helper.get_account_summary(), indent=2))
        return

    if not config.YOUTUBE_CHANNEL_ID:
        logger.error("YOUTUBE_CHANNEL_ID not set. Edit .env file with your channel ID.")
        sys.exit(1)

    orchestrator = build_orchestrator()

    if args.scan:
        sys.exit(run_foreground_scan(orchestrator))

    import telegram_bot
    telegram_bot.run_bot(orchestrator)


if __name__ == "__main__":
    main()
