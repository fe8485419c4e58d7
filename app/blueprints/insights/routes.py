"""
Routes for the insights blueprint.
"""

from flask import jsonify, request
from flask_login import login_required

from app.blueprints.insights import bp
from app.decorators import organization_required
from app.exceptions import ValidationError
from app.services import insight_service


@bp.route("/")
@login_required
@organization_required
def list_insights(organization_id, profile):  # pylint: disable=unused-argument
    """
    Insights newest first, each with its license (null if deleted).

    Query Parameters:
        type (str):   Insight type, e.g. ``unused_license``.
        status (str): Workflow status, e.g. ``new``.
    """
    return jsonify(
        insight_service.get_insights(
            organization_id,
            insight_type=request.args.get("type"),
            status=request.args.get("status"),
        )
    )


@bp.route("/generate", methods=["POST"])
@login_required
@organization_required
def generate(organization_id, profile):
    """Run the unused-license generator for the caller's organization."""
    result = insight_service.generate_unused_license_insights(
        organization_id, user_id=profile.user_id
    )
    return jsonify(result.to_dict())


@bp.route("/<int:insight_id>/status", methods=["PATCH"])
@login_required
@organization_required
def update_status(insight_id, organization_id, profile):
    """
    Move an insight along its workflow.  JSON body: ``status``.

    Answers 409 for a move the workflow does not allow.
    """
    new_status = (request.get_json(silent=True) or {}).get("status")
    if not new_status:
        raise ValidationError("Missing field: status")
    insight = insight_service.update_insight_status(
        organization_id, insight_id, new_status, user_id=profile.user_id
    )
    return jsonify(insight.to_dict())
