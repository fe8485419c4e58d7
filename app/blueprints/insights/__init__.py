"""
Insights blueprint — unused-license generator and insight workflow.
"""

from flask import Blueprint

bp = Blueprint("insights", __name__)

from app.blueprints.insights import routes  # noqa: E402, F401
