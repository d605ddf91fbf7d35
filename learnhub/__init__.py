from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from dotenv import load_dotenv
from flask_migrate import Migrate
from flask_compress import Compress

# Load environment variables early so config is available for blueprint creation
load_dotenv()

from learnhub.config import config

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
compress = Compress()

API_PATH_PREFIXES = ('/api/', '/quiz/api/')


def _is_api_path(path: str) -> bool:
    return path.startswith(API_PATH_PREFIXES)


def create_app() -> Flask:
    """
    Application factory for the Flask app.
    Loads environment variables, configures the database,
    and registers blueprints.
    """
    # Re-initialize config to ensure latest .env values are loaded
    from learnhub.config import Config
    global config
    config = Config()

    config.validate()

    app = Flask(__name__)

    app.config["SECRET_KEY"] = config.SECRET_KEY
    db_uri = config.SQLALCHEMY_DATABASE_URI
    app.config["SQLALCHEMY_DATABASE_URI"] = db_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = config.SQLALCHEMY_TRACK_MODIFICATIONS
    app.config["SQLALCHEMY_ECHO"] = config.SQLALCHEMY_ECHO
    if db_uri.startswith("mysql"):
        # Pool settings only make sense for the MySQL deployment
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_size": 10,
            "pool_recycle": 3600,
            "pool_pre_ping": True,
            "max_overflow": 20,
            "connect_args": {
                "connect_timeout": 5,
                "read_timeout": 10,
                "write_timeout": 10,
                "charset": "utf8mb4",
            }
        }

    app.config["COMPRESS_MIMETYPES"] = ['application/json']
    app.config["COMPRESS_LEVEL"] = 6
    app.config["COMPRESS_MIN_SIZE"] = 500
    app.config["SESSION_COOKIE_SECURE"] = config.SESSION_COOKIE_SECURE
    app.config["SESSION_COOKIE_HTTPONLY"] = config.SESSION_COOKIE_HTTPONLY
    if config.SESSION_COOKIE_SAMESITE:
        app.config["SESSION_COOKIE_SAMESITE"] = config.SESSION_COOKIE_SAMESITE

    # Quiz engine settings are read through current_app.config by the services
    app.config["QUIZ_DEFAULT_MAX_ATTEMPTS"] = config.QUIZ_DEFAULT_MAX_ATTEMPTS
    app.config["QUIZ_DEFAULT_PASSING_GRADE"] = config.QUIZ_DEFAULT_PASSING_GRADE
    app.config["QUIZ_DEADLINE_GRACE_SECONDS"] = config.QUIZ_DEADLINE_GRACE_SECONDS
    app.config["QUIZ_SUBMIT_RATE_LIMIT"] = config.QUIZ_SUBMIT_RATE_LIMIT

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    compress.init_app(app)

    from learnhub.security import init_security
    init_security(app)

    @login_manager.user_loader
    def load_user(user_id):
        from learnhub.auth.models import User
        try:
            return db.session.get(User, int(user_id))
        except (ValueError, TypeError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Authentication required', 'kind': 'Unauthorized'}), 401

    @app.route("/")
    def index():
        return jsonify({'success': True, 'service': 'learnhub'}), 200

    from learnhub.quiz import quiz_bp
    app.register_blueprint(quiz_bp)

    @app.errorhandler(404)
    def handle_404(e):
        """Handle 404 errors - return JSON for API routes."""
        path = request.path
        method = request.method
        app.logger.warning(f"404 error: {method} {path}")
        if _is_api_path(path):
            return jsonify({
                'success': False,
                'error': f'Route not found: {method} {path}',
                'path': path,
                'method': method
            }), 404
        return f"Page not found: {path}", 404

    @app.errorhandler(405)
    def handle_405(e):
        """Handle 405 Method Not Allowed - return JSON for API routes."""
        path = request.path
        method = request.method
        app.logger.warning(f"405 error: {method} {path}")
        if _is_api_path(path):
            return jsonify({
                'success': False,
                'error': f'Method not allowed: {method} {path}',
                'path': path,
                'method': method
            }), 405
        return e

    # Create tables if they do not exist
    with app.app_context():
        from learnhub.auth import models as auth_models  # noqa: F401
        from learnhub.quiz import models as quiz_models  # noqa: F401
        db.create_all()

    return app
