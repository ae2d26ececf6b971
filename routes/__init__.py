from .auth import auth_bp
from .main import main_bp
from .documents import documents_bp
from .signatures import signatures_bp
from .api import api_bp


def register_blueprints(app):
    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(signatures_bp)
    app.register_blueprint(api_bp)
