"""
Routes for the main blueprint — dashboard overview and health check.
"""

from flask import jsonify
from flask_login import login_required
from sqlalchemy import text

from app.blueprints.main import bp
from app.decorators import organization_required
from app.extensions import db
from app.services import license_service


@bp.route("/")
@login_required
@organization_required
def dashboard(organization_id, profile):  # pylint: disable=unused-argument
    """
    License estate summary for the dashboard header cards.

    Total and active license counts, spend, overall utilization,
    renewals due soon, and the newest open insights' savings.
    """
    return jsonify(license_service.get_dashboard_overview(organization_id))


@bp.route("/health")
def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 if the app is running and can reach the database.
    """
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}, 200
    except Exception as exc:  # pylint: disable=broad-except
        return {"status": "unhealthy", "database": str(exc)}, 503
