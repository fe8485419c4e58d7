"""
Routes for the licenses blueprint.

Every route works inside the caller's organization; a license ID from
another tenant answers 404.
"""

from flask import jsonify, request
from flask_login import login_required

from app.blueprints.licenses import bp
from app.decorators import organization_required, role_required
from app.exceptions import ValidationError
from app.services import license_service
from app.utils import parse_datetime

_REQUIRED_FIELDS = (
    "name",
    "vendor",
    "category",
    "license_type",
    "total_seats",
    "used_seats",
    "cost_per_seat",
    "billing_cycle",
    "purchase_date",
    "renewal_date",
)


@bp.route("/")
@login_required
@organization_required
def list_licenses(organization_id, profile):  # pylint: disable=unused-argument
    """
    List licenses with utilization and days until renewal.

    Query Parameters:
        category (str): Only this category.
        status (str):   Only this status (active/expired/cancelled).
    """
    return jsonify(
        license_service.get_licenses(
            organization_id,
            category=request.args.get("category"),
            status=request.args.get("status"),
        )
    )


@bp.route("/", methods=["POST"])
@login_required
@organization_required
@role_required("admin", "manager")
def create_license(organization_id, profile):
    data = request.get_json(silent=True) or {}
    missing = [name for name in _REQUIRED_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing field(s): {', '.join(missing)}")

    license_ = license_service.add_license(
        organization_id,
        name=data["name"],
        vendor=data["vendor"],
        category=data["category"],
        license_type=data["license_type"],
        total_seats=data["total_seats"],
        used_seats=data["used_seats"],
        cost_per_seat=data["cost_per_seat"],
        billing_cycle=data["billing_cycle"],
        purchase_date=parse_datetime(data["purchase_date"], "purchase_date"),
        renewal_date=parse_datetime(data["renewal_date"], "renewal_date"),
        department_id=data.get("department_id"),
        description=data.get("description"),
        user_id=profile.user_id,
    )
    return jsonify(license_.to_dict()), 201


@bp.route("/<int:license_id>", methods=["PATCH"])
@login_required
@organization_required
@role_required("admin", "manager")
def update_license(license_id, organization_id, profile):
    """Partial update; total cost follows seat or price changes."""
    updates = dict(request.get_json(silent=True) or {})
    if "renewal_date" in updates:
        updates["renewal_date"] = parse_datetime(
            updates["renewal_date"], "renewal_date"
        )
    license_ = license_service.update_license(
        organization_id, license_id, updates, user_id=profile.user_id
    )
    return jsonify(license_.to_dict())


@bp.route("/<int:license_id>", methods=["DELETE"])
@login_required
@organization_required
@role_required("admin", "manager")
def delete_license(license_id, organization_id, profile):
    license_service.delete_license(
        organization_id, license_id, user_id=profile.user_id
    )
    return "", 204


@bp.route("/<int:license_id>/usage", methods=["POST"])
@login_required
@organization_required
def record_usage(license_id, organization_id, profile):
    """
    Record a usage sample.

    JSON body: ``user_id`` (defaults to the caller),
    ``last_active_date`` (ISO-8601), optional ``usage_hours``.
    """
    data = request.get_json(silent=True) or {}
    usage = license_service.record_license_usage(
        organization_id,
        license_id,
        user_id=data.get("user_id") or profile.user_id,
        last_active_date=parse_datetime(
            data.get("last_active_date"), "last_active_date"
        ),
        usage_hours=data.get("usage_hours") or 0,
    )
    return jsonify(usage.to_dict()), 201
