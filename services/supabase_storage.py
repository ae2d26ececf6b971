"""
Supabase Client and Storage Service

Owns the two Supabase clients the application talks to:

- the anon client, used for Supabase Auth (sign in, sign up, code exchange,
  token refresh)
- the service-role client, used for Storage and admin calls such as bucket
  creation and signer invitations

Both are created once per app by init_supabase() and looked up through
current_app.extensions. Files are stored privately and accessed via
signed URLs unless a bucket is configured as public.
"""

import logging
import time

from flask import current_app
from supabase import Client, ClientOptions, create_client
from werkzeug.utils import secure_filename

from services.exceptions import ConfigurationError, StorageError

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'supabase'


class SupabaseClients:
    """
    Process-wide holder for the anon and service-role clients.

    Clients are built lazily on first use and dropped by close().
    """

    def __init__(self, url: str, anon_key: str, service_role_key: str, client_factory=create_client):
        missing = [
            name for name, value in (
                ('SUPABASE_URL', url),
                ('SUPABASE_ANON_KEY', anon_key),
                ('SUPABASE_SERVICE_ROLE_KEY', service_role_key),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} must be set. "
                "Get these from your Supabase project settings."
            )

        self.url = url
        self._anon_key = anon_key
        self._service_role_key = service_role_key
        self._client_factory = client_factory
        self._anon = None
        self._admin = None

    def _build(self, key: str) -> Client:
        # Server-side clients never keep a session of their own
        options = ClientOptions(persist_session=False, auto_refresh_token=False)
        return self._client_factory(self.url, key, options=options)

    @property
    def anon(self) -> Client:
        if self._anon is None:
            self._anon = self._build(self._anon_key)
        return self._anon

    @property
    def admin(self) -> Client:
        if self._admin is None:
            self._admin = self._build(self._service_role_key)
        return self._admin

    def close(self):
        self._anon = None
        self._admin = None


def init_supabase(app, client_factory=create_client) -> SupabaseClients:
    """Create the client holder for an app. Raises ConfigurationError on missing settings."""
    clients = SupabaseClients(
        app.config.get('SUPABASE_URL'),
        app.config.get('SUPABASE_ANON_KEY'),
        app.config.get('SUPABASE_SERVICE_ROLE_KEY'),
        client_factory=client_factory,
    )
    app.extensions[EXTENSION_KEY] = clients
    return clients


def get_clients() -> SupabaseClients:
    return current_app.extensions[EXTENSION_KEY]


def get_auth_client():
    """Supabase Auth API bound to the anon key."""
    return get_clients().anon.auth


def get_storage():
    """Supabase Storage API bound to the service-role key."""
    return get_clients().admin.storage


def get_admin_auth():
    """Supabase Auth admin API (service-role key)."""
    return get_clients().admin.auth.admin


def generate_storage_path(prefix: str, owner_id: str, original_filename: str = None, ext: str = None) -> str:
    """
    Build a collision-free object key.

    Keys look like ``<prefix>/<owner_id>/<timestamp_ms>_<sanitized_filename>``,
    or ``<prefix>/<owner_id>/<timestamp_ms>.<ext>`` when there is no filename
    (drawn signatures).
    """
    timestamp = int(time.time() * 1000)
    if original_filename:
        safe_name = secure_filename(original_filename) or 'file'
        return f"{prefix}/{owner_id}/{timestamp}_{safe_name}"
    return f"{prefix}/{owner_id}/{timestamp}.{ext or 'bin'}"


def upload_file(bucket: str, storage_path: str, file_data: bytes, content_type: str = None) -> dict:
    """
    Upload a file to a Supabase Storage bucket.

    Args:
        bucket: Target bucket name
        storage_path: Path within the bucket
        file_data: The file content as bytes
        content_type: MIME type of the file (optional)

    Returns:
        dict with 'path', 'filename', 'size' keys on success

    Raises:
        StorageError on upload failure
    """
    file_options = {}
    if content_type:
        file_options['content-type'] = content_type

    try:
        get_storage().from_(bucket).upload(
            path=storage_path,
            file=file_data,
            file_options=file_options
        )
    except Exception as e:
        logger.error(f"Upload to {bucket}/{storage_path} failed: {e}")
        raise StorageError(f"Upload failed: {e}", bucket=bucket, path=storage_path) from e

    return {
        'path': storage_path,
        'filename': storage_path.rsplit('/', 1)[-1],
        'size': len(file_data)
    }


def get_signed_url(bucket: str, storage_path: str, expires_in: int) -> str:
    """
    Generate a signed URL for private file access.

    Args:
        bucket: Bucket name containing the file
        storage_path: The path to the file in storage
        expires_in: URL expiry time in seconds

    Returns:
        Signed URL string
    """
    try:
        response = get_storage().from_(bucket).create_signed_url(
            path=storage_path,
            expires_in=expires_in
        )
    except Exception as e:
        logger.error(f"Could not sign {bucket}/{storage_path}: {e}")
        raise StorageError(f"Could not create file link: {e}", bucket=bucket, path=storage_path) from e

    return response.get('signedURL') or response.get('signedUrl')


def get_public_url(bucket: str, storage_path: str) -> str:
    """URL for a file in a public bucket."""
    return get_storage().from_(bucket).get_public_url(storage_path)


def delete_file(bucket: str, storage_path: str) -> bool:
    """
    Delete a file from Supabase Storage.

    Returns:
        True on success, False on failure
    """
    try:
        get_storage().from_(bucket).remove([storage_path])
        return True
    except Exception as e:
        logger.error(f"Failed to delete file {bucket}/{storage_path}: {e}")
        return False


def list_files(bucket: str) -> list:
    """List the top-level entries of a bucket."""
    return get_storage().from_(bucket).list()
