"""
Flask extension instances.

Extensions are created unbound so ``create_app()`` can call
``init_app()`` on each one.  Models and services import ``db`` from
here at module level without pulling in the application.
"""

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

# -- Database ORM ----------------------------------------------------------
db = SQLAlchemy()

# -- Schema migrations (Alembic via Flask-Migrate) -------------------------
migrate = Migrate()

# -- Session-based authentication ------------------------------------------
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please sign in to access the license dashboard."
login_manager.login_message_category = "warning"

# -- CSRF protection for state-changing requests --------------------------
csrf = CSRFProtect()
