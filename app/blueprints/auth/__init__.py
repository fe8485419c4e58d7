"""
Auth blueprint — Entra ID login/logout and the development login.
"""

from flask import Blueprint

bp = Blueprint("auth", __name__)

# Import routes after blueprint creation to avoid circular imports.
from app.blueprints.auth import routes  # noqa: E402, F401
