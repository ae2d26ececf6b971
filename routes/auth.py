from urllib.parse import urlencode

from flask import Blueprint, render_template, redirect, url_for, flash, request
from flask_login import login_required

from forms import LoginForm, SignupForm
from services import auth_bridge
from services.exceptions import AuthError
from utils import safe_next_path

auth_bp = Blueprint('auth', __name__)

LOGIN_ERRORS = {
    'auth_error': 'Your session could not be verified. Please sign in again.',
    'session_error': 'We could not complete sign-in. Please try again.',
}


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    form = LoginForm()
    if request.method == 'GET':
        form.next.data = request.args.get('from', '')
        error = request.args.get('error')
        if error:
            flash(LOGIN_ERRORS.get(error, error), 'error')

    if form.validate_on_submit():
        try:
            auth_bridge.sign_in(form.email.data.strip(), form.password.data)
        except AuthError as e:
            flash(str(e), 'error')
            return render_template('login.html', form=form)

        flash('Logged in successfully', 'success')
        return redirect(safe_next_path(form.next.data))

    return render_template('login.html', form=form)


@auth_bp.route('/signup', methods=['GET', 'POST'])
def signup():
    form = SignupForm()
    if form.validate_on_submit():
        try:
            auth_session = auth_bridge.sign_up(
                form.email.data.strip(),
                form.password.data,
                redirect_to=url_for('auth.callback', _external=True),
            )
        except AuthError as e:
            flash(str(e), 'error')
            return render_template('signup.html', form=form)

        if auth_session is not None:
            flash('Account created!', 'success')
            return redirect(url_for('main.dashboard'))

        flash('Signup successful! Check your email for verification.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('signup.html', form=form)


@auth_bp.route('/auth/callback')
def callback():
    """
    Turn an email link or OAuth redirect into a session.

    Email templates link here with token_hash and type (signup confirmation,
    signer invites, magic links). Code flows arrive with code, and their
    PKCE verifier comes from this browser's verifier cookie.
    """
    token_hash = request.args.get('token_hash')
    code = request.args.get('code')
    if not token_hash and not code:
        return redirect(url_for('auth.login'))

    try:
        if token_hash:
            auth_bridge.verify_email_link(token_hash, request.args.get('type', 'email'))
        else:
            auth_bridge.exchange_code(code, code_verifier=auth_bridge.pending_code_verifier())
    except AuthError as e:
        response = redirect(f"{url_for('auth.login')}?{urlencode({'error': str(e)})}")
    else:
        response = redirect(safe_next_path(request.args.get('next')))

    if code:
        auth_bridge.clear_code_verifier_cookie(response)
    return response


@auth_bp.route('/logout')
@login_required
def logout():
    auth_bridge.sign_out(auth_bridge.current_session())
    flash('You have been logged out successfully.', 'success')
    return redirect(url_for('auth.login'))
