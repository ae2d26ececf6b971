import logging

from flask import Flask, flash, jsonify, redirect, request
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from supabase import create_client

from models import db, User
from routes import register_blueprints
from services.exceptions import AuthError
from services.session_gate import apply_cookie_updates, gate_request, load_session
from services.supabase_storage import init_supabase
from utils import format_file_size, safe_next_path, same_site_path

csrf = CSRFProtect()


def create_app(config_class='config.Config', supabase_factory=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    Migrate(app, db)
    csrf.init_app(app)

    # Supabase clients (raises ConfigurationError when credentials are missing)
    init_supabase(app, client_factory=supabase_factory or create_client)

    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'

    @login_manager.request_loader
    def load_user_from_request(req):
        try:
            auth_session = load_session()
        except AuthError:
            return None
        if auth_session is None:
            return None
        return User.sync_from_auth(auth_session.user_id, auth_session.email)

    # Session gate wraps every route
    app.before_request(gate_request)
    app.after_request(apply_cookie_updates)

    @app.errorhandler(413)
    def request_too_large(error):
        message = f"File too large. Maximum upload is {format_file_size(app.config['MAX_CONTENT_LENGTH'])}."
        if request.is_json:
            return jsonify({'success': False, 'error': message}), 413
        flash(message, 'error')
        return redirect(safe_next_path(same_site_path(request.referrer, request.host)))

    register_blueprints(app)

    return app


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(host='0.0.0.0', port=5005, debug=True)
