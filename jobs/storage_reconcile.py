# jobs/storage_reconcile.py
"""
Retry blob operations queued in the storage outbox.
Run periodically via scheduler:

    python -m jobs.storage_reconcile
"""

import logging

logger = logging.getLogger(__name__)


def reconcile_storage(max_attempts: int = None) -> dict:
    """Replay every pending storage intent once. Returns counts by outcome."""
    from models import db, StorageIntent
    from services.storage_outbox import process_intent

    counts = {'done': 0, 'pending': 0, 'abandoned': 0}

    for intent in StorageIntent.pending():
        try:
            process_intent(intent, max_attempts=max_attempts)
            db.session.commit()
        except Exception as e:
            logger.exception(f"Failed to reconcile intent {intent.id}: {e}")
            db.session.rollback()
            counts['pending'] += 1
            continue

        if intent.status == StorageIntent.STATUS_DONE:
            counts['done'] += 1
        elif intent.status == StorageIntent.STATUS_ABANDONED:
            counts['abandoned'] += 1
        else:
            counts['pending'] += 1

    logger.info(
        f"Storage reconcile: {counts['done']} done, {counts['pending']} pending, "
        f"{counts['abandoned']} abandoned"
    )
    return counts


def run_reconcile():
    """Entry point for scheduler/cron."""
    from app import create_app
    app = create_app()
    with app.app_context():
        reconcile_storage()


if __name__ == '__main__':
    run_reconcile()
