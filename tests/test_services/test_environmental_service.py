"""
Tests for the environmental impact estimator.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from app.exceptions import ValidationError
from app.models.audit import GeneratorRun
from app.models.environmental import EnvironmentalImpact
from app.models.insight import Insight
from app.services import environmental_service
from tests.helpers import NOW, make_license


class TestImpactMetrics:
    """Tests for the per-seat conversion factors."""

    def test_twenty_idle_seats(self):
        metrics = environmental_service.impact_metrics(20)

        assert metrics["unused_licenses"] == 20
        assert metrics["co2_saved_kg"] == pytest.approx(3.0)
        assert metrics["energy_saved_kwh"] == pytest.approx(10.0)
        assert metrics["water_saved_liters"] == pytest.approx(40.0)
        assert metrics["tree_equivalent"] == pytest.approx(1.8)
        assert metrics["car_miles_equivalent"] == pytest.approx(7.4257, abs=1e-4)

    def test_no_idle_seats(self):
        metrics = environmental_service.impact_metrics(0)
        assert all(value == 0 for value in metrics.values())


class TestCalculateEnvironmentalImpact:
    """Tests for environmental_service.calculate_environmental_impact()."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, departments):
        """
        Engineering holds 20 idle seats; a company-wide license with no
        department adds 4 more, for 24 in total.
        """
        self.session = db_session
        self.org = organization
        self.engineering = departments["Engineering"]
        self.marketing = departments["Marketing"]
        make_license(
            db_session,
            organization.id,
            name="IDE",
            total_seats=30,
            used_seats=10,
            department_id=self.engineering.id,
        )
        make_license(db_session, organization.id, name="Chat", total_seats=10, used_seats=6)
        make_license(
            db_session,
            organization.id,
            name="Legacy",
            total_seats=50,
            used_seats=0,
            status="cancelled",
        )

    def _org_row(self, period="2024-03"):
        return EnvironmentalImpact.query.filter(
            EnvironmentalImpact.department_id.is_(None),
            EnvironmentalImpact.period == period,
        ).one()

    def _dept_row(self, department_id, period="2024-03"):
        return EnvironmentalImpact.query.filter_by(
            department_id=department_id, period=period
        ).one()

    def test_organization_and_department_rows(self):
        result = environmental_service.calculate_environmental_impact(
            self.org.id, now=NOW
        )

        assert result.period == "2024-03"
        assert result.total_unused_licenses == 24
        assert result.co2_saved_kg == pytest.approx(3.6)
        assert result.departments_processed == 1
        assert result.failures == []

        org_row = self._org_row()
        assert org_row.unused_licenses == 24
        assert org_row.cumulative_co2 == pytest.approx(3.6)

        dept_row = self._dept_row(self.engineering.id)
        assert dept_row.unused_licenses == 20
        assert dept_row.co2_saved_kg == pytest.approx(3.0)
        assert dept_row.tree_equivalent == pytest.approx(1.8)
        assert dept_row.cumulative_co2 == pytest.approx(3.0)

    def test_departments_without_licenses_get_no_row(self):
        environmental_service.calculate_environmental_impact(self.org.id, now=NOW)

        assert (
            EnvironmentalImpact.query.filter(
                EnvironmentalImpact.department_id.isnot(None)
            ).count()
            == 1
        )

    def test_rerun_updates_in_place(self):
        environmental_service.calculate_environmental_impact(self.org.id, now=NOW)
        make_license(
            self.session,
            self.org.id,
            name="Wiki",
            total_seats=6,
            used_seats=0,
            department_id=self.engineering.id,
        )
        second = environmental_service.calculate_environmental_impact(
            self.org.id, now=NOW
        )

        assert EnvironmentalImpact.query.count() == 2
        assert self._org_row().unused_licenses == 30
        assert self._dept_row(self.engineering.id).unused_licenses == 26

        run = GeneratorRun.query.filter_by(id=second.run_id).one()
        assert run.records_created == 0
        assert run.records_updated == 2

    def test_cumulative_co2_counts_earlier_months_only(self):
        environmental_service.calculate_environmental_impact(
            self.org.id, period="2024-02"
        )
        environmental_service.calculate_environmental_impact(
            self.org.id, period="2024-03"
        )
        # Rerunning March must not count March twice.
        environmental_service.calculate_environmental_impact(
            self.org.id, period="2024-03"
        )

        assert self._org_row("2024-02").cumulative_co2 == pytest.approx(3.6)
        assert self._org_row("2024-03").cumulative_co2 == pytest.approx(7.2)

    def test_optimization_actions_count_resolved_insights_in_month(self):
        for created_at, department_id in (
            (datetime(2024, 3, 2), self.engineering.id),
            (datetime(2024, 3, 31, 23, 59), None),
            (datetime(2024, 2, 29), self.engineering.id),
        ):
            self.session.add(
                Insight(
                    organization_id=self.org.id,
                    department_id=department_id,
                    insight_type="unused_license",
                    severity="medium",
                    title="t",
                    description="d",
                    potential_savings=Decimal("10.00"),
                    confidence=70,
                    status="resolved",
                    created_at=created_at,
                )
            )
        self.session.commit()

        environmental_service.calculate_environmental_impact(self.org.id, now=NOW)

        assert self._org_row().optimization_actions == 2
        assert self._dept_row(self.engineering.id).optimization_actions == 1

    def test_non_monthly_period_rejected(self):
        with pytest.raises(ValidationError):
            environmental_service.calculate_environmental_impact(
                self.org.id, period="2024-Q1"
            )


class TestEnvironmentalReadModels:
    """Tests for the overview, trend and rankings queries."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, departments):
        self.session = db_session
        self.org = organization
        self.departments = departments
        make_license(
            db_session,
            organization.id,
            name="IDE",
            total_seats=30,
            used_seats=10,
            department_id=departments["Engineering"].id,
        )
        make_license(
            db_session,
            organization.id,
            name="Ads",
            total_seats=50,
            used_seats=10,
            department_id=departments["Marketing"].id,
        )

    def test_overview_defaults_to_zero(self):
        overview = environmental_service.get_environmental_overview(
            self.org.id, now=NOW
        )

        assert overview["period"] == "2024-03"
        assert overview["co2_saved_kg"] == 0
        assert overview["cumulative_co2"] == 0

    def test_overview_returns_organization_row(self):
        environmental_service.calculate_environmental_impact(self.org.id, now=NOW)

        overview = environmental_service.get_environmental_overview(
            self.org.id, now=NOW
        )

        assert overview["department_id"] is None
        assert overview["unused_licenses"] == 60

    def test_trend_oldest_first_and_limited(self):
        for period in ("2024-01", "2024-02", "2024-03"):
            environmental_service.calculate_environmental_impact(
                self.org.id, period=period
            )

        trend = environmental_service.get_environmental_trend(self.org.id, months=2)

        assert [row["period"] for row in trend] == ["2024-02", "2024-03"]

    def test_trend_uses_configured_default(self, app):
        app.config["DEFAULT_TREND_MONTHS"] = 1
        for period in ("2024-01", "2024-02"):
            environmental_service.calculate_environmental_impact(
                self.org.id, period=period
            )

        trend = environmental_service.get_environmental_trend(self.org.id)

        assert [row["period"] for row in trend] == ["2024-02"]

    @pytest.mark.parametrize("months", [0, -1])
    def test_trend_rejects_non_positive_months(self, months):
        with pytest.raises(ValidationError):
            environmental_service.get_environmental_trend(self.org.id, months=months)

    def test_department_rankings_most_co2_first(self):
        environmental_service.calculate_environmental_impact(self.org.id, now=NOW)

        rankings = environmental_service.get_department_environmental_rankings(
            self.org.id, now=NOW
        )

        assert [row["department_name"] for row in rankings] == [
            "Marketing",
            "Engineering",
        ]
        assert rankings[0]["co2_saved_kg"] == pytest.approx(6.0)
