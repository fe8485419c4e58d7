"""
Smoke tests for the main blueprint and the auth routes.

These verify that the application starts, the health check answers,
tenant routes reject anonymous and profile-less users, and the
development login works.
"""

from app.extensions import db
from tests.helpers import make_user


class TestHealthCheck:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self, client):
        """The health check should report a reachable database."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy", "database": "connected"}


class TestDashboard:
    """Tests for the dashboard overview."""

    def test_anonymous_user_gets_401(self, client):
        response = client.get("/")
        assert response.status_code == 401
        assert response.get_json()["error"] == "not_authenticated"

    def test_user_without_organization_gets_403(self, app):
        with app.app_context():
            loner = make_user(db.session, email="loner@nowhere.test")
            db.session.refresh(loner)

        response = app.test_client(user=loner).get("/")

        assert response.status_code == 403
        assert response.get_json() == {
            "error": "profile_not_found",
            "message": "User profile not found.",
        }

    def test_dashboard_returns_overview(self, auth_client):
        response = auth_client.get("/")

        assert response.status_code == 200
        body = response.get_json()
        assert body["total_licenses"] == 0
        assert set(body) == {
            "total_licenses",
            "active_licenses",
            "total_cost",
            "utilization_rate",
            "upcoming_renewals",
            "insights",
            "potential_savings",
        }

    def test_unknown_route_is_json_404(self, client):
        response = client.get("/no-such-page")
        assert response.status_code == 404
        assert response.get_json()["error"] == "not_found"


class TestAuthRoutes:
    """Tests for /auth routes that do not need Entra ID."""

    def test_me(self, auth_client, organization):
        body = auth_client.get("/auth/me").get_json()

        assert body["user"]["email"] == "admin@acme.test"
        assert body["organization"]["id"] == organization.id
        assert body["organization"]["user_role"] == "admin"

    def test_dev_login_defaults_to_first_admin(self, client, admin_user, organization):  # pylint: disable=unused-argument
        response = client.get("/auth/dev-login")

        assert response.status_code == 200
        assert response.get_json()["user"]["id"] == admin_user.id
        assert client.get("/").status_code == 200

    def test_dev_login_disabled(self, app, client):
        app.config["DEV_LOGIN_ENABLED"] = False
        assert client.get("/auth/dev-login").status_code == 404

    def test_dev_login_unknown_email(self, client):
        response = client.get("/auth/dev-login?email=nobody@acme.test")
        assert response.status_code == 401

    def test_logout(self, auth_client):
        response = auth_client.post("/auth/logout")

        assert response.get_json() == {"status": "signed_out"}
        assert auth_client.get("/").status_code == 401

    def test_csrf_token(self, client):
        body = client.get("/auth/csrf-token").get_json()
        assert body["csrf_token"]
