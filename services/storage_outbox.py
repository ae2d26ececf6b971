"""
Storage Outbox

Blob and row changes cannot share a transaction, so when the storage half
of a sequence fails after the database half succeeded (or has been rolled
back), the missing blob operation is written to the storage_intents table.
jobs/storage_reconcile.py replays those rows until they succeed.
"""

import logging

from flask import current_app

from models import db, StorageIntent
from services.supabase_storage import delete_file

logger = logging.getLogger(__name__)


def record_pending_delete(bucket: str, path: str, error: str = None) -> StorageIntent:
    """Queue a blob delete for the reconcile job and commit it."""
    intent = StorageIntent(
        bucket=bucket,
        path=path,
        action=StorageIntent.ACTION_DELETE,
        status=StorageIntent.STATUS_PENDING,
        attempts=1,
        last_error=error,
    )
    db.session.add(intent)
    db.session.commit()
    logger.warning(f"Queued delete of {bucket}/{path} for reconciliation")
    return intent


def delete_or_defer(bucket: str, path: str) -> bool:
    """
    Delete a blob now, or queue the delete if storage refuses.

    Returns True when the blob is gone, False when it was deferred.
    """
    if delete_file(bucket, path):
        return True
    record_pending_delete(bucket, path, error='delete failed')
    return False


def process_intent(intent: StorageIntent, max_attempts: int = None) -> bool:
    """
    Retry one pending intent. Marks it done on success and abandoned once
    it has used up its attempts. Does not commit.
    """
    if max_attempts is None:
        max_attempts = current_app.config['STORAGE_RECONCILE_MAX_ATTEMPTS']

    if intent.action != StorageIntent.ACTION_DELETE:
        intent.status = StorageIntent.STATUS_ABANDONED
        intent.last_error = f"Unknown action {intent.action}"
        return False

    intent.attempts += 1
    if delete_file(intent.bucket, intent.path):
        intent.status = StorageIntent.STATUS_DONE
        intent.last_error = None
        return True

    intent.last_error = 'delete failed'
    if intent.attempts >= max_attempts:
        intent.status = StorageIntent.STATUS_ABANDONED
        logger.error(
            f"Giving up on {intent.bucket}/{intent.path} after {intent.attempts} attempts"
        )
    return False
