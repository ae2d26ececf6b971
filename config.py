import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default='False'):
    return os.getenv(name, default).lower() == 'true'


class Config:
    # Environment
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///signdesk.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)

    # Largest request body Flask will accept (the documents bucket cap plus form overhead)
    MAX_CONTENT_LENGTH = 11 * 1024 * 1024

    # Supabase project settings
    SUPABASE_URL = os.getenv('SUPABASE_URL')
    SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY')
    SUPABASE_SERVICE_ROLE_KEY = os.getenv('SUPABASE_SERVICE_ROLE_KEY')

    # Auth session cookie
    AUTH_COOKIE_NAME = os.getenv('AUTH_COOKIE_NAME', 'signdesk-auth-token')
    AUTH_COOKIE_SECURE = _env_flag('AUTH_COOKIE_SECURE')
    AUTH_COOKIE_MAX_AGE = int(os.getenv('AUTH_COOKIE_MAX_AGE', 7 * 24 * 3600))
    # Refresh the access token when it expires within this many seconds
    AUTH_REFRESH_MARGIN = int(os.getenv('AUTH_REFRESH_MARGIN', 60))
    # PKCE verifier for an in-flight code exchange, kept per browser
    AUTH_VERIFIER_COOKIE_NAME = os.getenv('AUTH_VERIFIER_COOKIE_NAME', 'signdesk-auth-verifier')
    AUTH_VERIFIER_COOKIE_MAX_AGE = 600

    # Storage buckets
    DOCUMENTS_BUCKET = 'documents'
    SIGNATURES_BUCKET = 'signatures'
    DOCUMENTS_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
    SIGNATURES_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
    SIGNATURES_BUCKET_PUBLIC = _env_flag('SIGNATURES_BUCKET_PUBLIC')

    # Signed URL lifetimes (seconds)
    DOCUMENT_VIEW_URL_TTL = int(os.getenv('DOCUMENT_VIEW_URL_TTL', 3600))
    DOCUMENT_EDIT_URL_TTL = int(os.getenv('DOCUMENT_EDIT_URL_TTL', 7200))
    SIGNATURE_URL_TTL = int(os.getenv('SIGNATURE_URL_TTL', 3600))

    # Storage outbox
    STORAGE_RECONCILE_MAX_ATTEMPTS = int(os.getenv('STORAGE_RECONCILE_MAX_ATTEMPTS', 10))

    # Invite unknown assignees through Supabase Auth when a document is sent
    INVITE_UNKNOWN_SIGNERS = _env_flag('INVITE_UNKNOWN_SIGNERS', 'True')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    SUPABASE_URL = 'https://test-project.supabase.co'
    SUPABASE_ANON_KEY = 'test-anon-key'
    SUPABASE_SERVICE_ROLE_KEY = 'test-service-role-key'
    SIGNATURES_BUCKET_PUBLIC = False
    INVITE_UNKNOWN_SIGNERS = False
