"""
Routes for the organization blueprint.

``POST /org/`` is the only tenant route that works without a profile:
it is how a freshly signed-in user creates their organization.
"""

from flask import jsonify, request
from flask_login import current_user, login_required

from app.blueprints.organization import bp
from app.decorators import organization_required, role_required
from app.services import organization_service


@bp.route("/", methods=["POST"])
@login_required
def create_organization():
    """
    Create an organization with the current user as its admin.

    JSON body: ``name``, ``domain``, optional ``industry`` and
    ``employee_count``.  Answers 409 when the domain is taken.
    """
    data = request.get_json(silent=True) or {}
    organization = organization_service.create_organization(
        user_id=current_user.id,
        name=data.get("name"),
        domain=data.get("domain"),
        industry=data.get("industry"),
        employee_count=data.get("employee_count"),
    )
    return jsonify(organization.to_dict()), 201


@bp.route("/current")
@login_required
def current_organization():
    """The current user's organization with their role, or null."""
    return jsonify(organization_service.get_current_organization(current_user))


@bp.route("/settings", methods=["PATCH"])
@login_required
@organization_required
def update_settings(organization_id, profile):
    """Shallow-merge currency, timezone or alertThresholds (admins only)."""
    data = request.get_json(silent=True) or {}
    organization = organization_service.update_organization_settings(
        organization_id, profile, data
    )
    return jsonify(organization.to_dict())


@bp.route("/departments")
@login_required
@organization_required
def list_departments(organization_id, profile):  # pylint: disable=unused-argument
    departments = organization_service.get_departments(organization_id)
    return jsonify([dept.to_dict() for dept in departments])


@bp.route("/departments", methods=["POST"])
@login_required
@organization_required
@role_required("admin", "manager")
def create_department(organization_id, profile):
    """Add a department.  JSON body: ``name``, optional ``budget``, ``description``."""
    data = request.get_json(silent=True) or {}
    department = organization_service.create_department(
        organization_id,
        name=data.get("name"),
        budget=data.get("budget", 0),
        description=data.get("description"),
        manager_id=data.get("manager_id"),
        user_id=profile.user_id,
    )
    return jsonify(department.to_dict()), 201
