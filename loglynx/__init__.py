"""Initialize the Flask app and its extensions."""

import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .constants import DEFAULT_BADGE_STATS_TIMEOUT


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        BADGE_STATS_TIMEOUT=float(
            os.environ.get("BADGE_STATS_TIMEOUT") or DEFAULT_BADGE_STATS_TIMEOUT
        ),
        STRAVA_CLIENT_ID=os.environ.get("STRAVA_CLIENT_ID") or "",
        STRAVA_CLIENT_SECRET=os.environ.get("STRAVA_CLIENT_SECRET") or "",
        STRAVA_REDIRECT_URI=os.environ.get("STRAVA_REDIRECT_URI") or "",
        STRAVA_APP_REDIRECT=os.environ.get("STRAVA_APP_REDIRECT")
        or "loglynx://strava/callback",
        LOG_LEVEL=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
    )

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Register blueprints
    from . import main as main_bp

    app.register_blueprint(main_bp.bp)

    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import user as user_bp

    app.register_blueprint(user_bp.bp)

    from . import bikes as bikes_bp

    app.register_blueprint(bikes_bp.bp)

    from . import components as components_bp

    app.register_blueprint(components_bp.bp)

    from . import service_logs as service_logs_bp

    app.register_blueprint(service_logs_bp.bp)

    from . import notifications as notifications_bp

    app.register_blueprint(notifications_bp.bp)

    from . import strava as strava_bp

    app.register_blueprint(strava_bp.bp)

    from . import badges as badges_bp

    app.register_blueprint(badges_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from env, file or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        import json

        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            import json

            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")
