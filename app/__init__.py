"""
Application factory for LicenseLens, the software-license dashboard.

Usage::

    from app import create_app
    app = create_app()           # Uses FLASK_ENV to pick config.
    app = create_app("testing")  # Explicit config for tests.
"""

import logging
import os

from flask import Flask, jsonify
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from .config import config_by_name
from .exceptions import LicenseLensError
from .extensions import csrf, db, login_manager, migrate

logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: One of 'development', 'testing', or 'production'.
                     Defaults to the FLASK_ENV environment variable,
                     falling back to 'development'.

    Returns:
        A fully configured Flask application instance.

    Raises:
        ValueError:   For an unknown ``config_name``.
        RuntimeError: If production secrets are missing.
    """
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")
    config_class = config_by_name.get(config_name)
    if config_class is None:
        raise ValueError(
            f"Unknown config '{config_name}'. "
            f"Valid options: {list(config_by_name.keys())}"
        )

    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_logging(app)

    if config_name == "production":
        config_class.validate_production_secrets(app.config)

    # -- Initialize extensions ---------------------------------------------
    _register_extensions(app)

    # -- Register blueprints -----------------------------------------------
    _register_blueprints(app)

    # -- Register error handlers -------------------------------------------
    _register_error_handlers(app)

    # -- Register custom CLI commands --------------------------------------
    _register_cli_commands(app)

    return app


def _register_extensions(app: Flask) -> None:
    """Bind all Flask extensions to the application instance."""
    db.init_app(app)
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        with app.app_context():
            _enable_sqlite_transactions(db.engine)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    # Imported here to avoid circular imports with models.
    from .models.user import User  # pylint: disable=import-outside-toplevel

    @login_manager.user_loader
    def load_user(user_id: str):
        """Load a user by primary key for Flask-Login session management."""
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        """Answer API clients with JSON instead of redirecting to login."""
        return (
            jsonify(error="not_authenticated", message="Not authenticated."),
            401,
        )


def _register_blueprints(app: Flask) -> None:
    """
    Import and register each blueprint with its URL prefix.

    Blueprints are imported inside this function so models and services
    can import ``db`` from extensions at module level.
    """
    # pylint: disable=import-outside-toplevel

    # Main: dashboard overview and health check.
    from .blueprints.main import bp as main_bp

    app.register_blueprint(main_bp)

    # Authentication: Entra ID and development sign-in.
    from .blueprints.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    # Organization: onboarding and departments.
    from .blueprints.organization import bp as org_bp

    app.register_blueprint(org_bp, url_prefix="/org")

    # Licenses: inventory CRUD and usage samples.
    from .blueprints.licenses import bp as licenses_bp

    app.register_blueprint(licenses_bp, url_prefix="/licenses")

    # Insights: unused-license generator and insight workflow.
    from .blueprints.insights import bp as insights_bp

    app.register_blueprint(insights_bp, url_prefix="/insights")

    # Gamification: department scores and badges.
    from .blueprints.gamification import bp as gamification_bp

    app.register_blueprint(gamification_bp, url_prefix="/gamification")

    # Environmental: impact estimates and trends.
    from .blueprints.environmental import bp as environmental_bp

    app.register_blueprint(environmental_bp, url_prefix="/environmental")

    # Reports: exports and run history.
    from .blueprints.reports import bp as reports_bp

    app.register_blueprint(reports_bp, url_prefix="/reports")


def _register_error_handlers(app: Flask) -> None:
    """Render domain errors and common HTTP errors as JSON bodies."""

    @app.errorhandler(LicenseLensError)
    def domain_error(error: LicenseLensError):
        """Map a service-layer exception to its HTTP status."""
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        """Handle aborts (400, 403, 404, 405, ...) raised by Flask."""
        return (
            jsonify(
                error=error.name.lower().replace(" ", "_"),
                message=error.description,
            ),
            error.code,
        )

    @app.errorhandler(500)
    def internal_error(error):  # pylint: disable=unused-argument
        """Handle 500 Internal Server Error."""
        db.session.rollback()
        return (
            jsonify(error="internal_error", message="An unexpected error occurred."),
            500,
        )


def _register_cli_commands(app: Flask) -> None:
    """Register custom Flask CLI commands (e.g., flask db-check)."""
    # pylint: disable=import-outside-toplevel
    from .cli import register_commands
    from .seed_dev_org import register_seed_commands

    register_commands(app)
    register_seed_commands(app)


def _configure_logging(app: Flask) -> None:
    """
    Set the root log level from ``LOG_LEVEL``.

    SQLAlchemy's engine logger is held at WARNING in debug so SQL echo
    goes through ``SQLALCHEMY_ECHO`` only.
    """
    log_level = app.config.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if app.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _enable_sqlite_transactions(engine) -> None:
    """
    Hand transaction control for SQLite from pysqlite to SQLAlchemy.

    pysqlite opens its transactions lazily, so a SAVEPOINT issued right
    after a commit runs outside any transaction and its RELEASE commits
    the work.  With the driver's own handling switched off and BEGIN
    emitted on SQLAlchemy's ``begin`` event, savepoints nest inside the
    session transaction and ``db.session.rollback()`` undoes a whole run.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):  # pylint: disable=unused-argument
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection):
        connection.exec_driver_sql("BEGIN")
