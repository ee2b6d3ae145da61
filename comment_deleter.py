"""
comment_deleter.py — Best-effort deletion of flagged comments.
Each id gets exactly one attempt; failures are counted, never raised.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionOutcome:
    succeeded: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed


def _noop(message: str) -> None:
    pass


def _try_delete(client, comment_id: str) -> bool:
    try:
        client.delete_comment(comment_id)
        return True
    except Exception as e:
        logger.error("Failed to delete comment %s: %s", comment_id, e)
        return False


def delete_comments(
    client,
    comment_ids: Sequence[str],
    on_progress: Callable[[str], None] | None = None,
    workers: int = 1,
) -> DeletionOutcome:
    """
    Delete every id in `comment_ids`.
    With workers > 1, deletes run on a bounded thread pool; counts stay exact.
    """
    if not comment_ids:
        return DeletionOutcome()

    notify = on_progress or _noop
    total = len(comment_ids)
    succeeded = 0
    failed = 0
    tally_lock = threading.Lock()

    def _record(comment_id: str, ok: bool) -> None:
        nonlocal succeeded, failed
        with tally_lock:
            if ok:
                succeeded += 1
                notify(f"Deleted comment {succeeded}/{total}...")
            else:
                failed += 1
                notify(f"Failed to delete comment {comment_id}. Total failed: {failed}")

    notify(f"Attempting to delete {total} comments...")

    if workers <= 1:
        for comment_id in comment_ids:
            _record(comment_id, _try_delete(client, comment_id))
    else:
        with ThreadPoolExecutor(max_workers=min(workers, total)) as pool:
            futures = {pool.submit(_try_delete, client, cid): cid for cid in comment_ids}
            for future in as_completed(futures):
                _record(futures[future], future.result())

    notify(f"Finished deleting comments. Success: {succeeded}, Failed: {failed}.")
    return DeletionOutcome(succeeded=succeeded, failed=failed)
