"""
Auth Bridge

Thin layer over Supabase Auth. Every call that yields a platform session
returns an AuthSession, which is what the app keeps in its signed session
cookie. The cookie itself is written by the session gate's after-request
hook, so a session staged here is visible both to the rest of the current
request (flask.g) and to the browser (Set-Cookie).
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional

from flask import current_app, g, request
from itsdangerous import BadData, URLSafeSerializer

from models import User
from services.exceptions import AuthError
from services.supabase_storage import get_admin_auth, get_auth_client

logger = logging.getLogger(__name__)

COOKIE_SALT = 'signdesk-auth-session'
VERIFIER_SALT = 'signdesk-auth-verifier'

# Supabase email link types accepted by /auth/v1/verify
EMAIL_LINK_TYPES = ('signup', 'invite', 'magiclink', 'recovery', 'email_change', 'email')


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str
    expires_at: int
    user_id: str
    email: str

    @classmethod
    def from_supabase(cls, session) -> 'AuthSession':
        """Build from a gotrue Session object."""
        expires_at = session.expires_at
        if not expires_at:
            expires_at = int(time.time()) + int(session.expires_in or 3600)
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=int(expires_at),
            user_id=str(session.user.id),
            email=session.user.email,
        )

    def expires_within(self, seconds: int, now: float = None) -> bool:
        now = time.time() if now is None else now
        return self.expires_at - now <= seconds

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# COOKIE ENCODING
# =============================================================================

def _serializer():
    return URLSafeSerializer(current_app.config['SECRET_KEY'], salt=COOKIE_SALT)


def encode_session(auth_session: AuthSession) -> str:
    return _serializer().dumps(auth_session.to_dict())


def decode_session(value: str) -> AuthSession:
    """Decode a cookie value. Raises AuthError when it is tampered or malformed."""
    try:
        data = _serializer().loads(value)
        return AuthSession(**data)
    except (BadData, TypeError) as e:
        raise AuthError('Invalid session cookie') from e


def write_session_cookie(response, auth_session: AuthSession):
    config = current_app.config
    response.set_cookie(
        config['AUTH_COOKIE_NAME'],
        encode_session(auth_session),
        max_age=config['AUTH_COOKIE_MAX_AGE'],
        httponly=True,
        secure=config['AUTH_COOKIE_SECURE'],
        samesite='Lax',
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(current_app.config['AUTH_COOKIE_NAME'])
    return response


def write_code_verifier_cookie(response, code_verifier: str):
    """Remember the PKCE verifier of a code flow started by this browser."""
    config = current_app.config
    value = URLSafeSerializer(config['SECRET_KEY'], salt=VERIFIER_SALT).dumps(code_verifier)
    response.set_cookie(
        config['AUTH_VERIFIER_COOKIE_NAME'],
        value,
        max_age=config['AUTH_VERIFIER_COOKIE_MAX_AGE'],
        httponly=True,
        secure=config['AUTH_COOKIE_SECURE'],
        samesite='Lax',
    )
    return response


def pending_code_verifier() -> Optional[str]:
    """The verifier from this request's cookie, or None when absent or tampered."""
    config = current_app.config
    value = request.cookies.get(config['AUTH_VERIFIER_COOKIE_NAME'])
    if not value:
        return None
    try:
        verifier = URLSafeSerializer(config['SECRET_KEY'], salt=VERIFIER_SALT).loads(value)
    except BadData:
        logger.warning("Ignoring tampered code verifier cookie")
        return None
    return verifier if isinstance(verifier, str) else None


def clear_code_verifier_cookie(response):
    response.delete_cookie(current_app.config['AUTH_VERIFIER_COOKIE_NAME'])
    return response


def stage_session(auth_session: Optional[AuthSession]):
    """
    Make a session current for this request and schedule the cookie update.
    Passing None schedules the cookie for removal.
    """
    g.auth_session = auth_session
    g.auth_cookie_dirty = True


def current_session() -> Optional[AuthSession]:
    return g.get('auth_session')


# =============================================================================
# SUPABASE AUTH CALLS
# =============================================================================

def _error_message(error) -> str:
    return getattr(error, 'message', None) or str(error) or 'Authentication failed'


def _establish(response) -> AuthSession:
    if response is None or response.session is None:
        raise AuthError('Failed to establish session')
    auth_session = AuthSession.from_supabase(response.session)
    User.sync_from_auth(auth_session.user_id, auth_session.email)
    stage_session(auth_session)
    return auth_session


def sign_in(email: str, password: str) -> AuthSession:
    try:
        response = get_auth_client().sign_in_with_password({
            'email': email,
            'password': password,
        })
    except Exception as e:
        logger.info(f"Sign-in rejected for {email}: {e}")
        raise AuthError(_error_message(e)) from e
    return _establish(response)


def sign_up(email: str, password: str, redirect_to: str = None) -> Optional[AuthSession]:
    """
    Register a user. Returns a session when the project does not require
    email confirmation, otherwise None (the user confirms via /auth/callback).
    """
    credentials = {'email': email, 'password': password}
    if redirect_to:
        credentials['options'] = {'email_redirect_to': redirect_to}

    try:
        response = get_auth_client().sign_up(credentials)
    except Exception as e:
        logger.info(f"Sign-up rejected for {email}: {e}")
        raise AuthError(_error_message(e)) from e

    if response is not None and response.session is not None:
        return _establish(response)
    return None


def exchange_code(code: str, code_verifier: str = None) -> AuthSession:
    """
    Trade a one-time authorization code for a session.

    The verifier must come from the requesting browser (see
    pending_code_verifier). The auth client is shared by every request, so
    nothing is ever kept in its own storage.
    """
    params = {'auth_code': code}
    if code_verifier:
        params['code_verifier'] = code_verifier
    try:
        response = get_auth_client().exchange_code_for_session(params)
    except Exception as e:
        logger.error(f"Error exchanging code for session: {e}")
        raise AuthError(_error_message(e)) from e
    return _establish(response)


def verify_email_link(token_hash: str, link_type: str = 'email') -> AuthSession:
    """Verify the token_hash from a confirmation, invite or magic-link email."""
    if link_type not in EMAIL_LINK_TYPES:
        raise AuthError(f'Unsupported email link type: {link_type}')
    try:
        response = get_auth_client().verify_otp({'token_hash': token_hash, 'type': link_type})
    except Exception as e:
        logger.info(f"Email link verification failed ({link_type}): {e}")
        raise AuthError(_error_message(e)) from e
    return _establish(response)


def refresh(auth_session: AuthSession) -> AuthSession:
    """Get a fresh access token. The caller stages the result."""
    try:
        response = get_auth_client().refresh_session(auth_session.refresh_token)
    except Exception as e:
        raise AuthError(_error_message(e)) from e

    if response is None or response.session is None:
        raise AuthError('Session refresh returned no session')
    return AuthSession.from_supabase(response.session)


def sign_out(auth_session: Optional[AuthSession]) -> None:
    """Revoke the platform session (best effort) and clear the cookie."""
    if auth_session is not None:
        try:
            get_admin_auth().sign_out(auth_session.access_token)
        except Exception as e:
            logger.warning(f"Supabase sign-out failed for user {auth_session.user_id}: {e}")
    stage_session(None)


def invite_signer(email: str, redirect_to: str = None) -> bool:
    """Invite an unknown assignee to create an account. Failures are logged only."""
    options = {'redirect_to': redirect_to} if redirect_to else {}
    try:
        get_admin_auth().invite_user_by_email(email, options)
    except Exception as e:
        logger.warning(f"Could not invite signer {email}: {e}")
        return False
    logger.info(f"Invited signer {email}")
    return True
