"""
Tests for the custom ``flask`` CLI commands.
"""

from app.models.insight import Insight
from app.models.organization import Organization
from tests.helpers import make_license


class TestGeneratorCommands:
    """The generator commands wrap the same services as the API."""

    def test_generate_insights(self, app, db_session, organization):
        make_license(db_session, organization.id, total_seats=5, used_seats=0)

        result = app.test_cli_runner().invoke(
            args=["generate-insights", "--org", str(organization.id)]
        )

        assert result.exit_code == 0
        assert "created 1" in result.output
        assert Insight.query.count() == 1

    def test_unknown_organization_fails_cleanly(self, app):
        result = app.test_cli_runner().invoke(
            args=["calculate-scores", "--org", "9999"]
        )

        assert result.exit_code != 0
        assert "Organization ID 9999 not found." in result.output

    def test_calculate_scores_and_impact(self, app, organization):
        runner = app.test_cli_runner()

        scores = runner.invoke(
            args=["calculate-scores", "--org", str(organization.id), "--period", "2024-03"]
        )
        impact = runner.invoke(
            args=["calculate-impact", "--org", str(organization.id), "--period", "2024-03"]
        )

        assert "scored 5" in scores.output
        assert "0 unused seats" in impact.output


class TestSeedCommand:
    """Tests for ``flask seed-dev-org``."""

    def test_seed_creates_organization_with_licenses(self, app, db_session):  # pylint: disable=unused-argument
        result = app.test_cli_runner().invoke(args=["seed-dev-org"])

        assert result.exit_code == 0
        organization = Organization.query.filter_by(domain="dev.localhost").one()
        assert organization.departments.count() == 5

    def test_seed_is_rerunnable(self, app, db_session):  # pylint: disable=unused-argument
        runner = app.test_cli_runner()
        runner.invoke(args=["seed-dev-org"])

        result = runner.invoke(args=["seed-dev-org"])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert Organization.query.count() == 1
