"""
Bucket Provisioner

Makes sure the storage buckets the app writes to exist before the first
upload. Safe to call from any request: a lock serializes concurrent callers
and buckets already confirmed in this process are not checked again.
Failures are logged and never raised, so callers proceed optimistically.
"""

import logging
import threading

from flask import current_app

from services.supabase_storage import get_storage, list_files

logger = logging.getLogger(__name__)

_lock = threading.Lock()
# (supabase_url, bucket_name) pairs confirmed to exist
_provisioned = set()


def bucket_settings():
    """Name, size cap and visibility for every bucket the app needs."""
    config = current_app.config
    return [
        {
            'name': config['DOCUMENTS_BUCKET'],
            'file_size_limit': config['DOCUMENTS_MAX_BYTES'],
            'public': False,
        },
        {
            'name': config['SIGNATURES_BUCKET'],
            'file_size_limit': config['SIGNATURES_MAX_BYTES'],
            'public': config['SIGNATURES_BUCKET_PUBLIC'],
        },
    ]


def _cache_key(name):
    return (current_app.config.get('SUPABASE_URL'), name)


def _ensure_bucket(storage, settings) -> dict:
    """Check one bucket and create it if missing. Returns {'exists', 'created'}."""
    name = settings['name']
    try:
        storage.get_bucket(name)
        return {'exists': True, 'created': False}
    except Exception as e:
        logger.info(f"Storage bucket '{name}' needs to be created ({e})")

    try:
        storage.create_bucket(
            name,
            options={
                'public': settings['public'],
                'file_size_limit': settings['file_size_limit'],
            }
        )
    except Exception as e:
        logger.error(f"Failed to create {name} bucket: {e}")
        return {'exists': False, 'created': False}

    logger.info(f"Created {name} bucket successfully")
    return {'exists': False, 'created': True}


def ensure_buckets() -> None:
    """Idempotently make sure the documents and signatures buckets exist."""
    with _lock:
        pending = [b for b in bucket_settings() if _cache_key(b['name']) not in _provisioned]
        if not pending:
            return

        try:
            storage = get_storage()
        except Exception as e:
            logger.error(f"Storage client unavailable, skipping bucket check: {e}")
            return

        for settings in pending:
            result = _ensure_bucket(storage, settings)
            if result['exists'] or result['created']:
                _provisioned.add(_cache_key(settings['name']))


def storage_status() -> dict:
    """
    Check both buckets, creating any that are missing, and count their files.

    Returns a dict keyed by bucket name with 'exists', 'created' and
    'file_count' entries.
    """
    storage = get_storage()
    results = {}

    with _lock:
        for settings in bucket_settings():
            name = settings['name']
            result = _ensure_bucket(storage, settings)
            result['file_count'] = 0

            if result['exists'] or result['created']:
                _provisioned.add(_cache_key(name))
                try:
                    result['file_count'] = len(list_files(name) or [])
                except Exception as e:
                    logger.warning(f"Could not list files in {name}: {e}")

            results[name] = result

    return results


def reset_provisioning_cache():
    """Forget which buckets were confirmed (used when the client pair is rebuilt)."""
    with _lock:
        _provisioned.clear()
