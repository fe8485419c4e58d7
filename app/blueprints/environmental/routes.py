"""
Routes for the environmental blueprint.
"""

from flask import jsonify, request
from flask_login import login_required

from app.blueprints.environmental import bp
from app.decorators import organization_required
from app.services import environmental_service


@bp.route("/calculate", methods=["POST"])
@login_required
@organization_required
def calculate(organization_id, profile):
    """Estimate the month's impact.  JSON body: optional ``period`` (YYYY-MM)."""
    data = request.get_json(silent=True) or {}
    result = environmental_service.calculate_environmental_impact(
        organization_id, period=data.get("period"), user_id=profile.user_id
    )
    return jsonify(result.to_dict())


@bp.route("/overview")
@login_required
@organization_required
def overview(organization_id, profile):  # pylint: disable=unused-argument
    return jsonify(
        environmental_service.get_environmental_overview(
            organization_id, period=request.args.get("period")
        )
    )


@bp.route("/trend")
@login_required
@organization_required
def trend(organization_id, profile):  # pylint: disable=unused-argument
    return jsonify(
        environmental_service.get_environmental_trend(
            organization_id, months=request.args.get("months", type=int)
        )
    )


@bp.route("/rankings")
@login_required
@organization_required
def rankings(organization_id, profile):  # pylint: disable=unused-argument
    return jsonify(
        environmental_service.get_department_environmental_rankings(
            organization_id, period=request.args.get("period")
        )
    )
