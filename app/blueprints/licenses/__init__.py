"""
Licenses blueprint — license inventory and usage samples.
"""

from flask import Blueprint

bp = Blueprint("licenses", __name__)

from app.blueprints.licenses import routes  # noqa: E402, F401
