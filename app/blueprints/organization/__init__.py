"""
Organization blueprint — onboarding, settings and departments.
"""

from flask import Blueprint

bp = Blueprint("organization", __name__)

from app.blueprints.organization import routes  # noqa: E402, F401
