"""
Shared fixtures: an app on in-memory SQLite wired to a fake Supabase client.

Run with: python -m pytest tests/ -v
"""

import sys
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from models import db, User
from services.auth_bridge import AuthSession, encode_session
from services.bucket_provisioner import reset_provisioning_cache


class MockApiError(Exception):
    """Mimics the SDK's API errors, which carry a .message."""
    def __init__(self, message):
        self.message = message
        super().__init__(message)


def make_session(user_id, email, expires_in=3600, token='1'):
    """A gotrue-style Session object."""
    return SimpleNamespace(
        access_token=f'access-{user_id}-{token}',
        refresh_token=f'refresh-{user_id}-{token}',
        expires_in=expires_in,
        expires_at=int(time.time()) + expires_in,
        user=SimpleNamespace(id=user_id, email=email),
    )


class MockBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    @property
    def files(self):
        return self.storage.files.setdefault(self.name, {})

    def upload(self, path, file, file_options=None):
        self.storage.calls.append(('upload', self.name, path))
        if self.storage.fail_upload:
            raise MockApiError('upload rejected')
        self.files[path] = {'data': file, 'options': file_options or {}}
        return SimpleNamespace(path=path)

    def create_signed_url(self, path, expires_in):
        self.storage.calls.append(('create_signed_url', self.name, path, expires_in))
        if self.storage.fail_sign:
            raise MockApiError('object not found')
        return {'signedURL': f'https://storage.test/sign/{self.name}/{path}?ttl={expires_in}'}

    def get_public_url(self, path):
        return f'https://storage.test/public/{self.name}/{path}'

    def remove(self, paths):
        self.storage.calls.append(('remove', self.name, tuple(paths)))
        if self.storage.fail_remove:
            raise MockApiError('remove failed')
        for path in paths:
            self.files.pop(path, None)
        return []

    def list(self):
        return [{'name': path} for path in self.files]


class MockStorage:
    """In-memory stand-in for the Supabase Storage API."""

    def __init__(self):
        self.buckets = {}
        self.files = {}
        self.calls = []
        self.fail_upload = False
        self.fail_remove = False
        self.fail_sign = False
        self.fail_create_bucket = False

    def get_bucket(self, name):
        self.calls.append(('get_bucket', name))
        if name not in self.buckets:
            raise MockApiError('Bucket not found')
        return SimpleNamespace(name=name, **self.buckets[name])

    def create_bucket(self, name, options=None):
        self.calls.append(('create_bucket', name, options))
        if self.fail_create_bucket:
            raise MockApiError('permission denied')
        self.buckets[name] = dict(options or {})
        return {'name': name}

    def from_(self, name):
        return MockBucket(self, name)

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]


class MockAuthAdmin:
    def __init__(self):
        self.signed_out = []
        self.invited = []

    def sign_out(self, jwt, scope='global'):
        self.signed_out.append(jwt)

    def invite_user_by_email(self, email, options=None):
        self.invited.append((email, options))
        return SimpleNamespace(user=SimpleNamespace(id=f'invited-{email}', email=email))


class MockAuth:
    """
    Supabase Auth with a handful of registered users, one-time codes and
    email link token hashes (token_hash -> (type, user_id, email)).
    """

    def __init__(self):
        self.admin = MockAuthAdmin()
        self.users = {}
        self.codes = {}
        self.token_hashes = {}
        self.exchanges = []
        self.verified = []
        self.require_confirmation = False
        self.refresh_fails = False
        self.refreshed = []
        self.sign_ups = []

    def add_user(self, user_id, email, password='secret123'):
        self.users[email] = (user_id, password)

    def sign_in_with_password(self, credentials):
        entry = self.users.get(credentials['email'])
        if entry is None or entry[1] != credentials['password']:
            raise MockApiError('Invalid login credentials')
        session = make_session(entry[0], credentials['email'])
        return SimpleNamespace(session=session, user=session.user)

    def sign_up(self, credentials):
        self.sign_ups.append(credentials)
        user_id = f"user-{len(self.users) + 1}"
        self.add_user(user_id, credentials['email'], credentials['password'])
        user = SimpleNamespace(id=user_id, email=credentials['email'])
        if self.require_confirmation:
            return SimpleNamespace(session=None, user=user)
        return SimpleNamespace(session=make_session(user_id, credentials['email']), user=user)

    def exchange_code_for_session(self, params):
        self.exchanges.append(dict(params))
        entry = self.codes.get(params['auth_code'])
        if entry is None:
            raise MockApiError('invalid flow state, no valid flow state found')
        session = make_session(*entry)
        return SimpleNamespace(session=session, user=session.user)

    def verify_otp(self, params):
        self.verified.append(dict(params))
        entry = self.token_hashes.get(params.get('token_hash'))
        if entry is None or entry[0] != params.get('type'):
            raise MockApiError('Email link is invalid or has expired')
        session = make_session(*entry[1:])
        return SimpleNamespace(session=session, user=session.user)

    def refresh_session(self, refresh_token=None):
        self.refreshed.append(refresh_token)
        if self.refresh_fails:
            raise MockApiError('Invalid Refresh Token')
        # refresh-<user_id>-<token>
        user_id = refresh_token[len('refresh-'):].rsplit('-', 1)[0]
        email = next((e for e, (uid, _) in self.users.items() if uid == user_id), 'unknown@example.com')
        session = make_session(user_id, email, token='refreshed')
        return SimpleNamespace(session=session, user=session.user)


class MockSupabase:
    """
    Client factory plus the single fake client it hands out.

    Both the anon and service-role clients resolve to the same fake so
    tests can inspect one set of recorded calls.
    """

    def __init__(self):
        self.storage = MockStorage()
        self.auth = MockAuth()
        self.created = []

    def factory(self, url, key, options=None):
        self.created.append((url, key, options))
        return self


@pytest.fixture
def supabase():
    return MockSupabase()


@pytest.fixture
def app(supabase):
    reset_provisioning_cache()
    app = create_app('config.TestingConfig', supabase_factory=supabase.factory)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    reset_provisioning_cache()


@pytest.fixture
def app_ctx(app):
    """For service-level tests that need current_app, g and the db session."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def owner(app_ctx):
    return User.sync_from_auth('user-owner', 'owner@example.com')


def login(client, app, user_id='user-owner', email='owner@example.com', expires_in=3600):
    """Put a signed session cookie on the test client, as a real sign-in would."""
    with app.app_context():
        User.sync_from_auth(user_id, email)
        value = encode_session(AuthSession(
            access_token=f'access-{user_id}-1',
            refresh_token=f'refresh-{user_id}-1',
            expires_at=int(time.time()) + expires_in,
            user_id=user_id,
            email=email,
        ))
    client.set_cookie(app.config['AUTH_COOKIE_NAME'], value)
    return value


def cookie_from(response, name):
    """Value of a Set-Cookie header for name, or None."""
    for header in response.headers.getlist('Set-Cookie'):
        if header.startswith(f'{name}='):
            return header.split(';', 1)[0].split('=', 1)[1]
    return None


PDF_BYTES = b'%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << /Root 1 0 R >>\n%%EOF\n'

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    '89504e470d0a1a0a0000000d4948445200000001000000010806000000'
    '1f15c4890000000d49444154789c6360000002000001e221bc330000'
    '000049454e44ae426082'
)


def cookie_cleared(response, name):
    """True when the response deletes cookie name."""
    return any(
        header.startswith(f'{name}=') and 'Max-Age=0' in header
        for header in response.headers.getlist('Set-Cookie')
    )
