"""
Environmental blueprint — footprint estimates for unused seats.
"""

from flask import Blueprint

bp = Blueprint("environmental", __name__)

from app.blueprints.environmental import routes  # noqa: E402, F401
