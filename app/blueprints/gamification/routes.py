"""
Routes for the gamification blueprint.
"""

from flask import current_app, jsonify, request
from flask_login import login_required

from app.blueprints.gamification import bp
from app.decorators import organization_required
from app.services import gamification_service


@bp.route("/calculate", methods=["POST"])
@login_required
@organization_required
def calculate(organization_id, profile):
    """
    Score and rank every department.

    JSON body (all optional): ``period`` and ``period_type``
    (monthly/quarterly/yearly, default monthly).
    """
    data = request.get_json(silent=True) or {}
    result = gamification_service.calculate_gamification_scores(
        organization_id,
        period=data.get("period"),
        period_type=data.get("period_type", "monthly"),
        user_id=profile.user_id,
    )
    return jsonify(result.to_dict())


@bp.route("/leaderboard")
@login_required
@organization_required
def leaderboard(organization_id, profile):  # pylint: disable=unused-argument
    return jsonify(
        gamification_service.get_leaderboard(
            organization_id,
            period_type=request.args.get("period_type", "monthly"),
            period=request.args.get("period"),
        )
    )


@bp.route("/departments/<int:department_id>/performance")
@login_required
@organization_required
def department_performance(department_id, organization_id, profile):  # pylint: disable=unused-argument
    """A department's recent scores, oldest first."""
    limit = request.args.get(
        "limit",
        current_app.config.get("DEFAULT_PERFORMANCE_LIMIT", 12),
        type=int,
    )
    return jsonify(
        gamification_service.get_department_performance(
            organization_id,
            department_id,
            period_type=request.args.get("period_type", "monthly"),
            limit=limit,
        )
    )


@bp.route("/badges")
@login_required
@organization_required
def badges(organization_id, profile):  # pylint: disable=unused-argument
    """Latest badge of each type per department; ``?department_id=`` filters."""
    return jsonify(
        gamification_service.get_department_badges(
            organization_id,
            department_id=request.args.get("department_id", type=int),
        )
    )
