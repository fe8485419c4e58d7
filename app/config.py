"""
Application configuration classes.

Each class represents a deployment environment.  ``create_app`` in
``app/__init__.py`` selects one based on the FLASK_ENV environment
variable.

The default database is a local SQLite file so a fresh checkout runs
without any server; point ``DATABASE_URL`` at PostgreSQL or SQL Server
for shared deployments.
"""

import logging
import os

# Module-level logger for startup warnings emitted by config classes.
_logger = logging.getLogger(__name__)

# Sentinel for detecting an unset SECRET_KEY in production.
_DEFAULT_SECRET_KEY = "dev-secret-change-me"


class BaseConfig:
    """
    Shared configuration values inherited by all environments.

    Secrets and connection strings are loaded from environment variables
    so they never appear in source control.
    """

    # -- Flask core --------------------------------------------------------
    SECRET_KEY: str = os.environ.get("SECRET_KEY", _DEFAULT_SECRET_KEY)

    # -- Session cookie hardening ------------------------------------------
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "Lax"
    SESSION_COOKIE_SECURE: bool = False
    PERMANENT_SESSION_LIFETIME: int = int(
        os.environ.get("PERMANENT_SESSION_LIFETIME", "3600")
    )

    # -- SQLAlchemy --------------------------------------------------------
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL", "sqlite:///licenselens.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = False

    # -- Entra ID / MSAL ---------------------------------------------------
    AZURE_CLIENT_ID: str = os.environ.get("AZURE_CLIENT_ID", "")
    AZURE_CLIENT_SECRET: str = os.environ.get("AZURE_CLIENT_SECRET", "")
    AZURE_TENANT_ID: str = os.environ.get("AZURE_TENANT_ID", "")
    AZURE_AUTHORITY: str = os.environ.get(
        "AZURE_AUTHORITY",
        (
            f"https://login.microsoftonline.com/"
            f"{os.environ.get('AZURE_TENANT_ID', 'common')}"
        ),
    )
    AZURE_REDIRECT_URI: str = os.environ.get(
        "AZURE_REDIRECT_URI", "http://localhost:5000/auth/callback"
    )
    AZURE_SCOPES: list[str] = ["User.Read"]

    # -- Dev login guard ---------------------------------------------------
    # Dev-login routes stay disabled unless explicitly switched on, even
    # when DEBUG is True.
    DEV_LOGIN_ENABLED: bool = (
        os.environ.get("DEV_LOGIN_ENABLED", "false").lower() == "true"
    )

    # -- Insights ----------------------------------------------------------
    # When True, the unused-license generator skips licenses that already
    # carry an open (new/acknowledged) unused_license insight.
    INSIGHT_SUPPRESS_DUPLICATES: bool = (
        os.environ.get("INSIGHT_SUPPRESS_DUPLICATES", "false").lower() == "true"
    )

    # -- Dashboard windows -------------------------------------------------
    RENEWAL_WINDOW_DAYS: int = int(os.environ.get("RENEWAL_WINDOW_DAYS", "30"))
    DEFAULT_TREND_MONTHS: int = int(os.environ.get("DEFAULT_TREND_MONTHS", "12"))
    DEFAULT_PERFORMANCE_LIMIT: int = int(
        os.environ.get("DEFAULT_PERFORMANCE_LIMIT", "12")
    )

    # -- Logging -----------------------------------------------------------
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # =====================================================================
    # Production validation helpers
    # =====================================================================

    @classmethod
    def validate_production_secrets(cls, app_config: dict) -> None:
        """
        Verify that all required secrets are set for production.

        Called by ``create_app()`` when ``config_name == 'production'``.

        Args:
            app_config: The ``app.config`` mapping after loading the
                        config class.

        Raises:
            RuntimeError: If any critical secret is missing or still
                          set to its insecure default value.
        """
        errors: list[str] = []

        if app_config.get("SECRET_KEY") == _DEFAULT_SECRET_KEY:
            errors.append(
                "SECRET_KEY is still the insecure default. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_hex(32))"'
            )

        required_azure_keys = [
            "AZURE_CLIENT_ID",
            "AZURE_CLIENT_SECRET",
            "AZURE_TENANT_ID",
        ]
        missing_azure = [key for key in required_azure_keys if not app_config.get(key)]
        if missing_azure:
            errors.append(
                "Entra ID credentials missing: "
                f"{', '.join(missing_azure)}. "
                "OAuth login will not work without these."
            )

        redirect_uri = app_config.get("AZURE_REDIRECT_URI", "")
        if redirect_uri and not redirect_uri.startswith("https://"):
            errors.append(
                f"AZURE_REDIRECT_URI ({redirect_uri}) must use HTTPS "
                "in production to protect the OAuth authorization code."
            )

        if errors:
            combined = "\n  - ".join(errors)
            raise RuntimeError(f"Production configuration errors:\n  - {combined}")

        # SQLite works in production but serializes every writer.
        if app_config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite"):
            _logger.warning(
                "DATABASE_URL points at SQLite in production. Concurrent "
                "generator runs will serialize on the database file lock."
            )

        if app_config.get("LOG_LEVEL", "").upper() == "DEBUG":
            _logger.warning(
                "LOG_LEVEL=DEBUG is not recommended in production. "
                "SQL statements and request details may appear in logs."
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: verbose logging, SQL echo, dev login on."""

    DEBUG: bool = True
    SQLALCHEMY_ECHO: bool = True
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")
    DEV_LOGIN_ENABLED: bool = (
        os.environ.get("DEV_LOGIN_ENABLED", "true").lower() == "true"
    )


class TestingConfig(BaseConfig):
    """
    Testing environment: in-memory SQLite, CSRF disabled.

    Each test builds and drops its own schema, so nothing leaks between
    tests and no external database is needed.
    """

    TESTING: bool = True
    WTF_CSRF_ENABLED: bool = False
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL", "sqlite:///:memory:"
    )
    LOG_LEVEL: str = "DEBUG"
    DEV_LOGIN_ENABLED: bool = True
    INSIGHT_SUPPRESS_DUPLICATES: bool = False


class ProductionConfig(BaseConfig):
    """
    Production environment: strict settings, no debug output.

    ``create_app`` calls ``validate_production_secrets()`` at startup and
    refuses to launch if critical values are missing.
    """

    DEBUG: bool = False
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")
    SESSION_COOKIE_SECURE: bool = True
    DEV_LOGIN_ENABLED: bool = False


# Lookup dict used by the application factory.
config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
