"""
Application factory for the volunteer hub.

This module provides create_app() which initializes Flask, extensions,
logging, error handlers, and registers blueprints.
"""

import os
import logging
from logging.handlers import RotatingFileHandler

import pytz
from flask import Flask, jsonify
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# Validate required environment variables
required_env_vars = ["SECRET_KEY", "DATABASE_URL", "JWT_SECRET"]
missing_vars = [var for var in required_env_vars if not os.getenv(var)]
if missing_vars:
    raise RuntimeError(
        "Missing required environment variables: " + ", ".join(missing_vars)
    )


DEFAULT_COMPLIANCE_TIMEZONE = 'Africa/Cairo'


def _compliance_timezone():
    """Return the configured calendar name, failing fast on unknown zones."""
    tz_name = os.getenv("COMPLIANCE_TIMEZONE", DEFAULT_COMPLIANCE_TIMEZONE)
    try:
        pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        raise RuntimeError(f"Unknown COMPLIANCE_TIMEZONE: {tz_name}")
    return tz_name


# -------------------- APPLICATION FACTORY --------------------

def create_app():
    """
    Application factory function.

    Creates and configures the Flask application, initializes extensions,
    sets up logging, registers error handlers and blueprints, and starts the
    weekly scheduler outside of testing.

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    # -------------------- CONFIGURATION --------------------
    app.config.from_mapping(
        DEBUG=False,
        ENV=os.getenv("FLASK_ENV", "production"),
        SECRET_KEY=os.environ["SECRET_KEY"],
        SQLALCHEMY_DATABASE_URI=os.environ["DATABASE_URL"],
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JWT_SECRET=os.environ["JWT_SECRET"],
        JWT_EXPIRES_MINUTES=int(os.getenv("JWT_EXPIRES_MINUTES", "60")),
        COMPLIANCE_TIMEZONE=_compliance_timezone(),
        COMPLIANCE_JOB_DAY=os.getenv("COMPLIANCE_JOB_DAY", "sat"),
        COMPLIANCE_JOB_HOUR=int(os.getenv("COMPLIANCE_JOB_HOUR", "0")),
        COMPLIANCE_JOB_MINUTE=int(os.getenv("COMPLIANCE_JOB_MINUTE", "0")),
        RATELIMIT_ENABLED=os.getenv("RATELIMIT_ENABLED", "true").lower() in {"1", "true", "yes", "on"},
    )

    # -------------------- EXTENSIONS --------------------
    from app.extensions import db, migrate, limiter

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # -------------------- LOGGING --------------------
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    log_format = os.getenv(
        "LOG_FORMAT",
        "[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(logging.Formatter(log_format))

    app.logger.setLevel(log_level)
    # Prevent duplicate log entries by clearing handlers first
    app.logger.handlers.clear()
    app.logger.addHandler(stream_handler)

    # app.* module loggers propagate to app.logger; the job logger needs its own handler
    job_logger = logging.getLogger('scheduled_tasks')
    job_logger.setLevel(log_level)
    job_logger.handlers.clear()
    job_logger.addHandler(stream_handler)

    if app.config.get("ENV") == "production":
        log_file = os.getenv("LOG_FILE", "app.log")
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        app.logger.addHandler(file_handler)
        job_logger.addHandler(file_handler)

    # -------------------- ERROR HANDLERS --------------------
    from app.utils.errors import APIError, StorageError

    @app.errorhandler(APIError)
    def handle_api_error(error):
        """Render service errors as JSON with their HTTP status."""
        if isinstance(error, StorageError):
            db.session.rollback()
            app.logger.error(f"Storage error: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'message': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception("500 Internal Server Error occurred")
        db.session.rollback()
        return jsonify({'success': False, 'message': 'Server error'}), 500

    # -------------------- REGISTER BLUEPRINTS --------------------
    from app.routes.main import main_bp
    from app.routes.api import api_bp
    from app.routes.lectures import lectures_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(lectures_bp)

    # -------------------- CLI COMMANDS --------------------
    from app import cli_commands
    cli_commands.init_app(app)

    # -------------------- SCHEDULED TASKS --------------------
    if not app.config.get("TESTING") and app.config.get("ENV") != "testing":
        from app.scheduled_tasks import init_scheduled_tasks
        init_scheduled_tasks(app)

    return app


__all__ = [
    "create_app",
]
