"""
Auth bridge and its routes: sign in, sign up, code exchange, email links, sign out.
"""

import time

import pytest
from flask import Response

from conftest import cookie_cleared, cookie_from, login, make_session
from models import db, User
from services import auth_bridge
from services.auth_bridge import AuthSession, decode_session, encode_session
from services.exceptions import AuthError
from utils import safe_next_path


class TestAuthSession:

    def test_from_supabase(self):
        session = auth_bridge.AuthSession.from_supabase(make_session('user-1', 'a@example.com'))
        assert session.user_id == 'user-1'
        assert session.email == 'a@example.com'
        assert session.access_token == 'access-user-1-1'

    def test_expires_within(self):
        session = AuthSession('a', 'r', expires_at=1000, user_id='u', email='e')
        assert session.expires_within(60, now=950)
        assert not session.expires_within(60, now=900)

    def test_cookie_round_trip_rejects_tampering(self, app_ctx):
        session = AuthSession('a', 'r', int(time.time()) + 100, 'u', 'e@example.com')
        value = encode_session(session)
        assert decode_session(value) == session
        with pytest.raises(AuthError):
            decode_session(value[:-2] + 'xx')


class TestSignIn:

    def test_sign_in_establishes_session_and_user(self, app_ctx, supabase):
        supabase.auth.add_user('user-9', 'nine@example.com', 'hunter22')

        session = auth_bridge.sign_in('nine@example.com', 'hunter22')

        assert session.user_id == 'user-9'
        assert auth_bridge.current_session() == session
        assert db.session.get(User, 'user-9').email == 'nine@example.com'

    def test_bad_password(self, app_ctx, supabase):
        supabase.auth.add_user('user-9', 'nine@example.com', 'hunter22')
        with pytest.raises(AuthError) as excinfo:
            auth_bridge.sign_in('nine@example.com', 'wrong')
        assert str(excinfo.value) == 'Invalid login credentials'

    def test_login_route_sets_cookie_and_follows_origin(self, app, client, supabase):
        supabase.auth.add_user('user-9', 'nine@example.com', 'hunter22')

        response = client.post('/login', data={
            'email': 'nine@example.com', 'password': 'hunter22', 'next': '/signatures',
        })

        assert response.status_code == 302
        assert response.headers['Location'].endswith('/signatures')
        assert cookie_from(response, app.config['AUTH_COOKIE_NAME'])

    def test_login_route_ignores_offsite_next(self, app, client, supabase):
        supabase.auth.add_user('user-9', 'nine@example.com', 'hunter22')
        response = client.post('/login', data={
            'email': 'nine@example.com', 'password': 'hunter22', 'next': '//evil.example.com/',
        })
        assert response.headers['Location'].endswith('/dashboard')

    def test_login_route_shows_error(self, client, supabase):
        response = client.post('/login', data={'email': 'nobody@example.com', 'password': 'x'})
        assert response.status_code == 200
        assert b'Invalid login credentials' in response.data

    def test_login_page_carries_origin(self, client):
        response = client.get('/login?from=/documents/new')
        assert b'value="/documents/new"' in response.data

    def test_login_page_shows_gate_error(self, client):
        response = client.get('/login?error=auth_error')
        assert b'could not be verified' in response.data


class TestSignUp:

    def test_signup_without_confirmation_signs_in(self, app, client, supabase):
        response = client.post('/signup', data={
            'email': 'new@example.com', 'password': 'secret123', 'confirm_password': 'secret123',
        })
        assert response.headers['Location'].endswith('/dashboard')
        assert cookie_from(response, app.config['AUTH_COOKIE_NAME'])
        redirect_to = supabase.auth.sign_ups[0]['options']['email_redirect_to']
        assert redirect_to.endswith('/auth/callback')

    def test_signup_with_confirmation_goes_to_login(self, app, client, supabase):
        supabase.auth.require_confirmation = True
        response = client.post('/signup', data={
            'email': 'new@example.com', 'password': 'secret123', 'confirm_password': 'secret123',
        })
        assert response.headers['Location'].endswith('/login')
        assert cookie_from(response, app.config['AUTH_COOKIE_NAME']) is None


class TestCallback:

    def test_valid_code(self, app, client, supabase):
        supabase.auth.codes['abc123'] = ('user-5', 'five@example.com')

        response = client.get('/auth/callback?code=abc123')

        assert response.status_code == 302
        assert response.headers['Location'].endswith('/dashboard')
        value = cookie_from(response, app.config['AUTH_COOKIE_NAME'])
        with app.app_context():
            assert decode_session(value).user_id == 'user-5'
            assert db.session.get(User, 'user-5') is not None

    def test_valid_code_with_next(self, app, client, supabase):
        supabase.auth.codes['abc123'] = ('user-5', 'five@example.com')
        response = client.get('/auth/callback?code=abc123&next=/signatures')
        assert response.headers['Location'].endswith('/signatures')

    def test_invalid_code(self, client):
        response = client.get('/auth/callback?code=expired')
        location = response.headers['Location']
        assert '/login?error=' in location
        assert 'invalid+flow+state' in location

    def test_missing_code(self, client):
        response = client.get('/auth/callback')
        assert response.headers['Location'].endswith('/login')

    def test_code_exchange_uses_browser_verifier(self, app, client, supabase):
        supabase.auth.codes['abc123'] = ('user-5', 'five@example.com')
        with app.test_request_context():
            value = cookie_from(
                auth_bridge.write_code_verifier_cookie(Response(), 'verifier-from-this-browser'),
                app.config['AUTH_VERIFIER_COOKIE_NAME'],
            )
        client.set_cookie(app.config['AUTH_VERIFIER_COOKIE_NAME'], value)

        response = client.get('/auth/callback?code=abc123')

        assert response.headers['Location'].endswith('/dashboard')
        assert supabase.auth.exchanges == [
            {'auth_code': 'abc123', 'code_verifier': 'verifier-from-this-browser'}
        ]
        assert cookie_cleared(response, app.config['AUTH_VERIFIER_COOKIE_NAME'])

    def test_code_exchange_without_verifier_cookie(self, client, supabase):
        supabase.auth.codes['abc123'] = ('user-5', 'five@example.com')
        client.get('/auth/callback?code=abc123')
        assert supabase.auth.exchanges == [{'auth_code': 'abc123'}]

    def test_tampered_verifier_cookie_is_ignored(self, app, client, supabase):
        supabase.auth.codes['abc123'] = ('user-5', 'five@example.com')
        client.set_cookie(app.config['AUTH_VERIFIER_COOKIE_NAME'], 'not-signed')
        client.get('/auth/callback?code=abc123')
        assert supabase.auth.exchanges == [{'auth_code': 'abc123'}]


class TestEmailLinkCallback:

    def test_invite_link_signs_in_and_follows_next(self, app, client, supabase):
        supabase.auth.token_hashes['pkce_invite'] = ('invite', 'user-9', 'signer@example.com')

        response = client.get('/auth/callback?token_hash=pkce_invite&type=invite&next=/documents/doc-1')

        assert response.status_code == 302
        assert response.headers['Location'].endswith('/documents/doc-1')
        assert supabase.auth.verified == [{'token_hash': 'pkce_invite', 'type': 'invite'}]
        value = cookie_from(response, app.config['AUTH_COOKIE_NAME'])
        with app.app_context():
            assert decode_session(value).user_id == 'user-9'
            assert db.session.get(User, 'user-9').email == 'signer@example.com'

    def test_signup_confirmation_link(self, app, client, supabase):
        supabase.auth.token_hashes['confirm-1'] = ('signup', 'user-10', 'new@example.com')

        response = client.get('/auth/callback?token_hash=confirm-1&type=signup')

        assert response.headers['Location'].endswith('/dashboard')
        assert cookie_from(response, app.config['AUTH_COOKIE_NAME']) is not None

    def test_type_defaults_to_email(self, client, supabase):
        supabase.auth.token_hashes['link-1'] = ('email', 'user-11', 'e@example.com')
        response = client.get('/auth/callback?token_hash=link-1')
        assert response.headers['Location'].endswith('/dashboard')

    def test_expired_link(self, app, client):
        response = client.get('/auth/callback?token_hash=stale&type=invite')
        location = response.headers['Location']
        assert '/login?error=' in location
        assert cookie_from(response, app.config['AUTH_COOKIE_NAME']) is None

    def test_unknown_link_type_is_rejected(self, client, supabase):
        response = client.get('/auth/callback?token_hash=abc&type=sms')
        assert '/login?error=' in response.headers['Location']
        assert supabase.auth.verified == []

    def test_external_next_is_ignored(self, client, supabase):
        supabase.auth.token_hashes['link-1'] = ('invite', 'user-9', 'signer@example.com')
        response = client.get('/auth/callback?token_hash=link-1&type=invite&next=https://evil.example.com')
        assert response.headers['Location'].endswith('/dashboard')


class TestSignOut:

    def test_logout_revokes_and_clears_cookie(self, app, client, supabase):
        login(client, app)

        response = client.get('/logout')

        assert response.headers['Location'].endswith('/login')
        assert supabase.auth.admin.signed_out == ['access-user-owner-1']
        assert cookie_cleared(response, app.config['AUTH_COOKIE_NAME'])


class TestSafeNextPath:

    @pytest.mark.parametrize('target, expected', [
        ('/documents/1', '/documents/1'),
        ('//evil.example.com', '/dashboard'),
        ('https://evil.example.com/', '/dashboard'),
        ('/\\evil.example.com', '/dashboard'),
        ('', '/dashboard'),
        (None, '/dashboard'),
    ])
    def test_safe_next_path(self, target, expected):
        assert safe_next_path(target) == expected
