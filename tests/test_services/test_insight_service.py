"""
Tests for the unused-license insight generator and the insight
status workflow.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.exceptions import InvalidStatusTransitionError, NotFoundError, ValidationError
from app.models.audit import AuditLog, GeneratorRun
from app.models.insight import Insight
from app.models.license import LicenseUsage
from app.services import insight_service, license_service
from tests.helpers import NOW, make_license, make_user


def _add_usage(session, license_id, user_id, days_ago):
    session.add(
        LicenseUsage(
            license_id=license_id,
            user_id=user_id,
            last_active_date=NOW - timedelta(days=days_ago),
        )
    )
    session.commit()


class TestGenerateUnusedLicenseInsights:
    """Tests for insight_service.generate_unused_license_insights()."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, departments):
        """
        One monthly license of ten $10 seats in Engineering, with two
        users seen recently and two whose activity is too old.
        """
        self.session = db_session
        self.org = organization
        self.dept = departments["Engineering"]
        self.license = make_license(
            db_session,
            organization.id,
            name="Design Tool",
            total_seats=10,
            used_seats=9,
            cost_per_seat="10.00",
            department_id=self.dept.id,
        )
        self.users = [
            make_user(db_session, email=f"user{i}@acme.test") for i in range(4)
        ]
        _add_usage(db_session, self.license.id, self.users[0].id, days_ago=1)
        _add_usage(db_session, self.license.id, self.users[1].id, days_ago=29)
        # Exactly on the cutoff does not count as active.
        _add_usage(db_session, self.license.id, self.users[2].id, days_ago=30)
        _add_usage(db_session, self.license.id, self.users[3].id, days_ago=45)

    def test_creates_insight_for_idle_seats(self):
        """
        10 seats, 2 active users: 8 unused, $960 a year, 88% confidence,
        high severity.
        """
        result = insight_service.generate_unused_license_insights(
            self.org.id, now=NOW
        )

        assert result.created == 1
        assert result.failures == []

        insight = Insight.query.one()
        assert insight.insight_type == "unused_license"
        assert insight.license_id == self.license.id
        assert insight.department_id == self.dept.id
        assert insight.potential_savings == Decimal("960.00")
        assert insight.confidence == pytest.approx(88.0)
        assert insight.severity == "high"
        assert insight.status == "new"
        assert insight.title == "8 unused seats in Design Tool"
        assert insight.details == {
            "unusedDays": 30,
            "recommendedAction": "Reduce subscription by 8 seats",
        }

    def test_medium_severity_at_half_idle(self):
        """Exactly half the seats idle is not 'more than half'."""
        for user in self.users[2:]:
            license_service.record_license_usage(
                self.org.id, self.license.id, user.id, NOW - timedelta(days=3)
            )
        extra = make_user(self.session, email="extra@acme.test")
        _add_usage(self.session, self.license.id, extra.id, days_ago=2)

        insight_service.generate_unused_license_insights(self.org.id, now=NOW)

        insight = Insight.query.one()
        assert insight.severity == "medium"
        assert insight.confidence == pytest.approx(77.5)
        assert insight.potential_savings == Decimal("600.00")

    def test_annual_billing_is_not_multiplied(self):
        """Annual licenses already price a year per seat."""
        license_service.update_license(
            self.org.id, self.license.id, {"status": "cancelled"}
        )
        make_license(
            self.session,
            self.org.id,
            name="Annual Suite",
            total_seats=4,
            used_seats=0,
            cost_per_seat="100.00",
            billing_cycle="annual",
        )

        insight_service.generate_unused_license_insights(self.org.id, now=NOW)

        insight = Insight.query.one()
        assert insight.potential_savings == Decimal("400.00")
        assert insight.confidence == pytest.approx(95.0)

    def test_license_without_idle_seats_gets_no_insight(self):
        """A license with no idle seats produces nothing."""
        make_license(
            self.session, self.org.id, name="Tiny", total_seats=0, used_seats=0
        )

        result = insight_service.generate_unused_license_insights(
            self.org.id, now=NOW
        )

        assert result.created == 1
        assert Insight.query.filter_by(license_id=self.license.id).count() == 1

    def test_inactive_licenses_are_ignored(self):
        make_license(self.session, self.org.id, name="Expired", status="expired")

        result = insight_service.generate_unused_license_insights(
            self.org.id, now=NOW
        )

        assert result.created == 1

    def test_rerun_creates_duplicates_by_default(self):
        insight_service.generate_unused_license_insights(self.org.id, now=NOW)
        insight_service.generate_unused_license_insights(self.org.id, now=NOW)

        assert Insight.query.count() == 2

    def test_rerun_skips_open_insight_when_suppressed(self, app):
        app.config["INSIGHT_SUPPRESS_DUPLICATES"] = True

        insight_service.generate_unused_license_insights(self.org.id, now=NOW)
        second = insight_service.generate_unused_license_insights(
            self.org.id, now=NOW
        )

        assert second.created == 0
        assert second.skipped == 1
        assert Insight.query.count() == 1

    def test_one_failing_license_does_not_stop_the_batch(self, monkeypatch):
        """A per-license error is recorded while other licenses still commit."""
        other = make_license(
            self.session, self.org.id, name="Other", total_seats=5, used_seats=1
        )
        real_build = insight_service.build_unused_license_insight

        def flaky_build(license_, active_users, now):
            if license_.id == self.license.id:
                raise RuntimeError("boom")
            return real_build(license_, active_users, now)

        monkeypatch.setattr(
            insight_service, "build_unused_license_insight", flaky_build
        )

        result = insight_service.generate_unused_license_insights(
            self.org.id, now=NOW
        )

        assert result.created == 1
        assert result.failures == [{"license_id": self.license.id, "error": "boom"}]
        assert Insight.query.one().license_id == other.id

        run = GeneratorRun.query.filter_by(id=result.run_id).one()
        assert run.status == "completed"
        assert run.records_processed == 2
        assert run.records_created == 1
        assert run.records_errors == 1

    def test_failed_run_keeps_no_insights(self, monkeypatch):
        """A failure after the inserts rolls back the whole run."""

        def audit_unavailable(**kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(insight_service.audit_service, "log_change", audit_unavailable)

        with pytest.raises(RuntimeError):
            insight_service.generate_unused_license_insights(self.org.id, now=NOW)

        assert GeneratorRun.query.one().status == "failed"
        assert Insight.query.count() == 0

    def test_run_is_logged(self):
        result = insight_service.generate_unused_license_insights(
            self.org.id, now=NOW
        )

        run = GeneratorRun.query.filter_by(id=result.run_id).one()
        assert run.run_type == "unused_license_insights"
        assert run.status == "completed"
        assert (
            AuditLog.query.filter_by(action_type="GENERATE", entity_id=run.id).count()
            == 1
        )

    def test_unknown_organization_raises(self):
        with pytest.raises(NotFoundError):
            insight_service.generate_unused_license_insights(9999, now=NOW)


class TestInsightWorkflow:
    """Tests for status transitions and insight queries."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, admin_user):
        self.session = db_session
        self.org = organization
        self.user = admin_user
        self.license = make_license(
            db_session, organization.id, total_seats=4, used_seats=0
        )
        insight_service.generate_unused_license_insights(organization.id, now=NOW)
        self.insight = Insight.query.one()

    def test_acknowledge_then_resolve(self):
        insight_service.update_insight_status(
            self.org.id, self.insight.id, "acknowledged", user_id=self.user.id
        )
        updated = insight_service.update_insight_status(
            self.org.id, self.insight.id, "resolved", user_id=self.user.id
        )

        assert updated.status == "resolved"
        entry = (
            AuditLog.query.filter_by(entity_type="insight", action_type="UPDATE")
            .order_by(AuditLog.id.desc())
            .first()
        )
        assert entry.user_id == self.user.id
        assert '"resolved"' in entry.new_value

    def test_new_cannot_jump_to_resolved(self):
        with pytest.raises(InvalidStatusTransitionError):
            insight_service.update_insight_status(
                self.org.id, self.insight.id, "resolved"
            )
        assert self.session.get(Insight, self.insight.id).status == "new"

    def test_dismissed_is_terminal(self):
        insight_service.update_insight_status(self.org.id, self.insight.id, "dismissed")

        with pytest.raises(InvalidStatusTransitionError):
            insight_service.update_insight_status(
                self.org.id, self.insight.id, "acknowledged"
            )

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            insight_service.update_insight_status(
                self.org.id, self.insight.id, "archived"
            )

    def test_other_organization_cannot_see_insight(self):
        with pytest.raises(NotFoundError):
            insight_service.update_insight_status(
                self.org.id + 1, self.insight.id, "acknowledged"
            )

    def test_get_insights_includes_license(self):
        rows = insight_service.get_insights(self.org.id)

        assert len(rows) == 1
        assert rows[0]["license"]["id"] == self.license.id
        assert rows[0]["metadata"]["unusedDays"] == 30

    def test_insight_survives_license_deletion(self):
        license_service.delete_license(self.org.id, self.license.id)

        rows = insight_service.get_insights(self.org.id)

        assert rows[0]["license_id"] == self.license.id
        assert rows[0]["license"] is None

    def test_get_insights_filters_by_status(self):
        assert insight_service.get_insights(self.org.id, status="dismissed") == []
        assert len(insight_service.get_insights(self.org.id, status="new")) == 1
