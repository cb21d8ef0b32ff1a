'''Flask application factory.

Builds the app, loads configuration, registers blueprints, sets up the
server-side session store and the JSON error handlers. It never starts a
server; run.py, a WSGI server or the test suite call create_app().'''
# portfolio/app_factory.py
from flask import Flask, jsonify
from flask_session import Session
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException
import os
import tempfile
from dotenv import load_dotenv

from portfolio.errors import PortfolioError
from portfolio.logger import get_logger

# load .env
load_dotenv()

logger = get_logger(__name__)

# project root (absolute)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def create_app(config_name='development', **overrides):
    """Application factory"""
    app = Flask(__name__)

    # basic config
    secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    if isinstance(secret_key, bytes):
        secret_key = secret_key.decode('utf-8')
    app.config['SECRET_KEY'] = secret_key

    # database: the engine layer reads DATABASE_URL from the environment
    db_path = os.path.join(BASE_DIR, 'portfolio.db')
    default_db_url = f"sqlite:///{db_path}"
    os.environ.setdefault('DATABASE_URL', default_db_url)

    # uploads (bulk import)
    app.config['MAX_CONTENT_LENGTH'] = int(os.getenv('MAX_UPLOAD_SIZE', 10485760))  # 10MB

    # session
    app.config['SESSION_TYPE'] = 'filesystem'
    app.config['SESSION_PERMANENT'] = False
    app.config['SESSION_USE_SIGNER'] = True
    app.config['SESSION_KEY_PREFIX'] = 'portfolio:'
    if config_name == 'testing':
        app.config['TESTING'] = True
        session_dir = tempfile.mkdtemp(prefix='portfolio_session_')
    else:
        session_dir = os.getenv('SESSION_FILE_DIR', os.path.join(BASE_DIR, 'flask_session'))
    os.makedirs(session_dir, exist_ok=True)
    app.config['SESSION_FILE_DIR'] = session_dir

    app.config.update(overrides)

    # init session store
    Session(app)

    # blueprints
    from portfolio.routes.auth import auth_bp
    from portfolio.routes.project import project_bp
    from portfolio.routes.project_log import log_bp
    from portfolio.routes.team import team_bp
    from portfolio.routes.user import user_bp
    from portfolio.routes.department import department_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(log_bp)
    app.register_blueprint(team_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(department_bp)

    # error handlers
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Every error leaves as JSON {"error": ..., "details": ...}"""

    @app.errorhandler(PortfolioError)
    def portfolio_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(PydanticValidationError)
    def validation_error(error):
        details = {
            ".".join(str(p) for p in e["loc"]) or "body": e["msg"]
            for e in error.errors()
        }
        return jsonify({"error": "Validation failed", "details": details}), 400

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.exception(f"Unhandled error: {error}")
        return jsonify({"error": "Internal server error"}), 500
