"""
Gamification blueprint — department scores, leaderboard and badges.
"""

from flask import Blueprint

bp = Blueprint("gamification", __name__)

from app.blueprints.gamification import routes  # noqa: E402, F401
