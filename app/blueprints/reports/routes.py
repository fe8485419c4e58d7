"""
Routes for the reports blueprint — data exports and run history.
"""

from flask import jsonify, make_response, request
from flask_login import login_required

from app.blueprints.reports import bp
from app.decorators import organization_required, role_required
from app.exceptions import ValidationError
from app.services import (
    audit_service,
    export_service,
    gamification_service,
    license_service,
    period_service,
)

_XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _download(buffer, filename: str, fmt: str):
    response = make_response(buffer.read())
    if fmt == "xlsx":
        response.headers["Content-Type"] = _XLSX_TYPE
    else:
        response.headers["Content-Type"] = "text/csv; charset=utf-8"
    response.headers["Content-Disposition"] = (
        f"attachment; filename={filename}.{fmt}"
    )
    return response


def _check_format(fmt: str) -> None:
    if fmt not in ("csv", "xlsx"):
        raise ValidationError(f"Unsupported export format '{fmt}'. Use csv or xlsx.")


# =========================================================================
# Export endpoints
# =========================================================================


@bp.route("/export/licenses/<fmt>")
@login_required
@organization_required
def export_licenses(fmt, organization_id, profile):  # pylint: disable=unused-argument
    """
    Export the license inventory as CSV or Excel.

    Args:
        fmt: Export format, 'csv' or 'xlsx'.
    """
    _check_format(fmt)
    licenses = license_service.get_licenses(
        organization_id,
        category=request.args.get("category"),
        status=request.args.get("status"),
    )
    if fmt == "xlsx":
        buffer = export_service.export_licenses_excel(licenses)
    else:
        buffer = export_service.export_licenses_csv(licenses)
    return _download(buffer, "licenses", fmt)


@bp.route("/export/leaderboard/<fmt>")
@login_required
@organization_required
def export_leaderboard(fmt, organization_id, profile):  # pylint: disable=unused-argument
    """
    Export a leaderboard as CSV or Excel.

    Takes the same ``period_type`` / ``period`` parameters as
    ``/gamification/leaderboard``.
    """
    _check_format(fmt)
    period_type = request.args.get("period_type", "monthly")
    period = period_service.resolve_period(request.args.get("period"), period_type)
    leaderboard = gamification_service.get_leaderboard(
        organization_id, period_type=period_type, period=period
    )
    if fmt == "xlsx":
        buffer = export_service.export_leaderboard_excel(leaderboard, period)
    else:
        buffer = export_service.export_leaderboard_csv(leaderboard)
    return _download(buffer, f"leaderboard_{period}", fmt)


# =========================================================================
# Run history
# =========================================================================


@bp.route("/runs")
@login_required
@organization_required
def generator_runs(organization_id, profile):  # pylint: disable=unused-argument
    """Recent generator runs, newest first; ``?run_type=`` filters."""
    runs = audit_service.get_generator_runs(
        organization_id,
        run_type=request.args.get("run_type"),
        limit=request.args.get("limit", 20, type=int),
    )
    return jsonify([run.to_dict() for run in runs])


@bp.route("/audit-log")
@login_required
@organization_required
@role_required("admin")
def audit_log(organization_id, profile):  # pylint: disable=unused-argument
    """Paginated audit trail for the organization (admins only)."""
    pagination = audit_service.get_audit_logs(
        organization_id,
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("per_page", 50, type=int),
        action_type=request.args.get("action_type"),
        entity_type=request.args.get("entity_type"),
    )
    return jsonify(
        items=[entry.to_dict() for entry in pagination.items],
        page=pagination.page,
        pages=pagination.pages,
        total=pagination.total,
    )
