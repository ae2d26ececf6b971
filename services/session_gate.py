"""
Session Gate

Runs before every request and decides whether to let it through, send it
to the login page, or bounce a signed-in user away from login/signup.
Reading the session may refresh it; the refreshed session is staged on
flask.g and written back to the cookie after the request.
"""

import logging
from urllib.parse import urlencode

from flask import current_app, g, redirect, request

from services import auth_bridge
from services.exceptions import AuthError

logger = logging.getLogger(__name__)

PUBLIC_PREFIXES = ('/static/', '/api/', '/auth/')
PUBLIC_PATHS = ('/', '/favicon.ico', '/api')
AUTH_PAGES = ('/login', '/signup')

LOGIN_PATH = '/login'
APP_HOME_PATH = '/dashboard'


def _normalize(path: str) -> str:
    if len(path) > 1:
        return path.rstrip('/') or '/'
    return path


def is_auth_page(path: str) -> bool:
    return _normalize(path) in AUTH_PAGES


def is_public_path(path: str) -> bool:
    if is_auth_page(path) or _normalize(path) in PUBLIC_PATHS:
        return True
    return path.startswith(PUBLIC_PREFIXES)


def login_redirect_url(**params) -> str:
    if not params:
        return LOGIN_PATH
    return f"{LOGIN_PATH}?{urlencode(params)}"


def load_session():
    """
    Read the platform session from the request cookie.

    Returns the session or None. An access token close to expiry is
    refreshed and the new session staged. Raises AuthError when the cookie
    is unreadable or the refresh is rejected.
    """
    if 'auth_session' in g:
        return g.auth_session

    raw = request.cookies.get(current_app.config['AUTH_COOKIE_NAME'])
    if not raw:
        g.auth_session = None
        return None

    auth_session = auth_bridge.decode_session(raw)

    if auth_session.expires_within(current_app.config['AUTH_REFRESH_MARGIN']):
        auth_session = auth_bridge.refresh(auth_session)
        auth_bridge.stage_session(auth_session)
        logger.debug(f"Refreshed session for user {auth_session.user_id}")
    else:
        g.auth_session = auth_session

    return auth_session


def _fail_closed(error):
    """Forget whatever was in the cookie after an auth error."""
    logger.warning(f"Session error on {request.path}: {error}")
    auth_bridge.stage_session(None)


def gate_request():
    """before_request hook. Returns a redirect response or None to allow."""
    path = request.path

    if is_auth_page(path):
        try:
            if load_session() is not None:
                return redirect(APP_HOME_PATH)
        except AuthError as e:
            _fail_closed(e)
        return None

    if is_public_path(path):
        return None

    try:
        auth_session = load_session()
    except AuthError as e:
        _fail_closed(e)
        return redirect(login_redirect_url(error='auth_error'))
    except Exception as e:
        logger.exception(f"Unexpected error establishing session: {e}")
        _fail_closed(e)
        return redirect(login_redirect_url(error='auth_error'))

    if auth_session is None:
        return redirect(login_redirect_url(**{'from': path}))

    return None


def apply_cookie_updates(response):
    """after_request hook. Writes or clears the session cookie when it changed."""
    if not g.get('auth_cookie_dirty'):
        return response

    auth_session = g.get('auth_session')
    if auth_session is None:
        return auth_bridge.clear_session_cookie(response)
    return auth_bridge.write_session_cookie(response, auth_session)
