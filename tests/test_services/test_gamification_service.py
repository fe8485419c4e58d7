"""
Tests for department scoring, ranking, badges and the leaderboard.

Sample departments with no licenses spend nothing against their
budget, so they score utilization 0 and adherence 200: efficiency 80.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.exceptions import NotFoundError, ValidationError
from app.models.audit import GeneratorRun
from app.models.gamification import Badge, GamificationScore
from app.models.insight import Insight
from app.services import (
    audit_service,
    badge_service,
    gamification_service,
    organization_service,
)
from tests.helpers import NOW, make_license


class TestScoringMath:
    """Tests for the pure scoring helpers."""

    def test_utilization_rate(self):
        assert gamification_service.utilization_rate(8, 10) == pytest.approx(80.0)
        assert gamification_service.utilization_rate(0, 0) == 0.0

    def test_budget_adherence_on_budget(self):
        assert gamification_service.budget_adherence(
            Decimal("1000"), Decimal("1000")
        ) == pytest.approx(100.0)

    def test_budget_adherence_overspend(self):
        assert gamification_service.budget_adherence(
            Decimal("1500"), Decimal("1000")
        ) == pytest.approx(50.0)

    def test_budget_adherence_floors_at_zero(self):
        assert gamification_service.budget_adherence(
            Decimal("3000"), Decimal("1000")
        ) == 0.0

    def test_budget_adherence_rewards_underspend(self):
        """Spending half the budget scores 150, not a capped 100."""
        assert gamification_service.budget_adherence(
            Decimal("500"), Decimal("1000")
        ) == pytest.approx(150.0)

    def test_no_budget_means_full_adherence(self):
        assert gamification_service.budget_adherence(
            Decimal("800"), Decimal("0")
        ) == 100.0

    def test_efficiency_score_weights(self):
        assert gamification_service.efficiency_score(80.0, 100.0) == 88
        assert gamification_service.efficiency_score(100.0, 50.0) == 80

    def test_efficiency_score_rounds_half_up(self):
        # 50 × 0.6 + 26.25 × 0.4 = 40.5
        assert gamification_service.efficiency_score(50.0, 26.25) == 41


class TestEvaluateBadges:
    """Tests for the pure badge rules."""

    @staticmethod
    def _types(score):
        return [rule.badge_type.value for rule in badge_service.evaluate_badges(score)]

    def test_efficiency_expert_threshold(self):
        at_threshold = GamificationScore(
            rank=2, previous_rank=None, efficiency_score=95, utilization_rate=50
        )
        below = GamificationScore(
            rank=2, previous_rank=None, efficiency_score=94, utilization_rate=50
        )

        assert self._types(at_threshold) == ["efficiency_expert"]
        assert self._types(below) == []

    def test_first_place_is_cost_champion(self):
        score = GamificationScore(
            rank=1, previous_rank=None, efficiency_score=70, utilization_rate=60
        )
        assert self._types(score) == ["cost_champion"]

    def test_most_improved_needs_three_places(self):
        improved = GamificationScore(
            rank=2, previous_rank=5, efficiency_score=70, utilization_rate=60
        )
        nearly = GamificationScore(
            rank=3, previous_rank=5, efficiency_score=70, utilization_rate=60
        )

        assert self._types(improved) == ["most_improved"]
        assert self._types(nearly) == []

    def test_zero_waste_at_full_utilization(self):
        score = GamificationScore(
            rank=4, previous_rank=None, efficiency_score=80, utilization_rate=100
        )
        assert self._types(score) == ["zero_waste"]


class TestCalculateGamificationScores:
    """Tests for gamification_service.calculate_gamification_scores()."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, departments):
        """
        Adds a 'Platform' department whose only license is 8/10 seats
        used at $100 a seat against a $1,000 budget: utilization 80,
        adherence 100, efficiency 88.
        """
        self.session = db_session
        self.org = organization
        self.departments = departments
        self.platform = organization_service.create_department(
            organization.id, "Platform", budget=1000
        )
        make_license(
            db_session,
            organization.id,
            name="Build Farm",
            total_seats=10,
            used_seats=8,
            cost_per_seat="100.00",
            department_id=self.platform.id,
        )

    def _score(self, department_id, period="2024-03"):
        return GamificationScore.query.filter_by(
            department_id=department_id, period=period, period_type="monthly"
        ).one()

    def test_scores_every_department(self):
        result = gamification_service.calculate_gamification_scores(
            self.org.id, now=NOW
        )

        assert result.scored == 6
        assert result.period == "2024-03"
        assert result.failures == []

        score = self._score(self.platform.id)
        assert score.efficiency_score == 88
        assert score.utilization_rate == 80
        assert score.budget_adherence == 100
        assert score.total_spend == Decimal("1000.00")
        assert score.budget_allocated == Decimal("1000.00")
        assert score.licenses_managed == 1
        assert score.active_licenses == 1
        assert score.potential_savings == Decimal("2400.00")
        assert score.rank == 1
        assert score.badges == ["cost_champion"]

    def test_ranks_are_dense_and_ties_keep_creation_order(self):
        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        ranks = {
            name: self._score(dept.id).rank
            for name, dept in self.departments.items()
        }
        assert ranks == {
            "Engineering": 2,
            "Marketing": 3,
            "Sales": 4,
            "HR": 5,
            "Finance": 6,
        }
        assert self._score(self.departments["HR"].id).efficiency_score == 80

    def test_rerun_overwrites_the_period(self):
        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)
        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        assert GamificationScore.query.count() == 6
        assert self._score(self.platform.id).previous_rank == 1
        # Badges are append-only.
        assert Badge.query.filter_by(badge_type="cost_champion").count() == 2

    def test_full_utilization_earns_every_score_badge(self):
        ops = organization_service.create_department(self.org.id, "Ops", budget=0)
        make_license(
            self.session,
            self.org.id,
            name="Pager",
            total_seats=5,
            used_seats=5,
            department_id=ops.id,
        )

        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        score = self._score(ops.id)
        assert score.efficiency_score == 100
        assert score.rank == 1
        assert score.badges == ["cost_champion", "efficiency_expert", "zero_waste"]

        criteria = (
            Badge.query.filter_by(department_id=ops.id, badge_type="zero_waste")
            .one()
            .criteria
        )
        assert criteria == {
            "threshold": 100,
            "actualValue": 100,
            "description": "Achieved 100% license utilization",
        }

    def test_most_improved_uses_previous_rank(self):
        finance = self.departments["Finance"]
        self.session.add(
            GamificationScore(
                organization_id=self.org.id,
                department_id=finance.id,
                period="2024-02",
                period_type="monthly",
                rank=6,
                created_at=NOW - timedelta(days=30),
            )
        )
        self.session.commit()
        # $1,000 spend against a $20,000 budget lifts Finance to first.
        make_license(
            self.session,
            self.org.id,
            name="Ledger",
            total_seats=10,
            used_seats=10,
            cost_per_seat="100.00",
            department_id=finance.id,
        )

        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        score = self._score(finance.id)
        assert score.rank == 1
        assert score.previous_rank == 6
        assert "most_improved" in score.badges
        badge = Badge.query.filter_by(
            department_id=finance.id, badge_type="most_improved"
        ).one()
        assert badge.criteria["actualValue"] == 5
        assert badge.criteria["description"] == "Improved ranking by 5 positions"

    def test_actual_savings_sum_resolved_insights(self):
        for status, savings in (("resolved", "300.00"), ("new", "999.00")):
            self.session.add(
                Insight(
                    organization_id=self.org.id,
                    department_id=self.platform.id,
                    insight_type="unused_license",
                    severity="medium",
                    title="t",
                    description="d",
                    potential_savings=Decimal(savings),
                    confidence=80,
                    status=status,
                )
            )
        self.session.commit()

        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        assert self._score(self.platform.id).actual_savings == Decimal("300.00")

    def test_quarterly_period(self):
        result = gamification_service.calculate_gamification_scores(
            self.org.id, period_type="quarterly", now=NOW
        )

        assert result.period == "2024-Q1"
        assert (
            GamificationScore.query.filter_by(period_type="quarterly").count() == 6
        )

    def test_malformed_period_rejected(self):
        with pytest.raises(ValidationError):
            gamification_service.calculate_gamification_scores(
                self.org.id, period="2024-13", now=NOW
            )

    def test_unknown_organization_raises(self):
        with pytest.raises(NotFoundError):
            gamification_service.calculate_gamification_scores(9999, now=NOW)


    def test_failed_run_rolls_back_every_score(self, monkeypatch):
        """A failure after the per-department writes leaves no scores behind."""

        def audit_unavailable(**kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(audit_service, "log_change", audit_unavailable)

        with pytest.raises(RuntimeError):
            gamification_service.calculate_gamification_scores(
                self.org.id, period="2024-03", now=NOW
            )

        run = GeneratorRun.query.one()
        assert run.status == "failed"
        assert run.error_message == "audit store unavailable"
        assert GamificationScore.query.count() == 0
        assert Badge.query.count() == 0


class TestLeaderboardAndHistory:
    """Tests for the gamification read models."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, departments):
        self.session = db_session
        self.org = organization
        self.departments = departments
        self.platform = organization_service.create_department(
            organization.id, "Platform", budget=1000
        )
        make_license(
            db_session,
            organization.id,
            total_seats=10,
            used_seats=8,
            cost_per_seat="100.00",
            department_id=self.platform.id,
        )

    def test_leaderboard_order_and_medals(self):
        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        board = gamification_service.get_leaderboard(self.org.id, now=NOW)

        assert [row["rank"] for row in board] == [1, 2, 3, 4, 5, 6]
        assert [row["medal"] for row in board[:4]] == ["gold", "silver", "bronze", None]
        assert board[0]["department"] == "Platform"
        assert board[0]["rank_change"] == 0

    def test_leaderboard_rank_change(self):
        gamification_service.calculate_gamification_scores(
            self.org.id, period="2024-02", now=NOW
        )
        # Engineering overtakes everyone in March.
        make_license(
            self.session,
            self.org.id,
            name="IDE",
            total_seats=10,
            used_seats=10,
            department_id=self.departments["Engineering"].id,
        )
        gamification_service.calculate_gamification_scores(
            self.org.id, period="2024-03", now=NOW
        )

        board = gamification_service.get_leaderboard(
            self.org.id, period="2024-03", now=NOW
        )

        assert board[0]["department"] == "Engineering"
        assert board[0]["rank_change"] == 1
        assert board[1]["department"] == "Platform"
        assert board[1]["rank_change"] == -1

    def test_empty_period_leaderboard(self):
        assert gamification_service.get_leaderboard(self.org.id, now=NOW) == []

    def test_department_performance_oldest_first(self):
        for period in ("2024-01", "2024-02", "2024-03"):
            gamification_service.calculate_gamification_scores(
                self.org.id, period=period, now=NOW
            )

        history = gamification_service.get_department_performance(
            self.org.id, self.platform.id, limit=2
        )

        assert [row["period"] for row in history] == ["2024-02", "2024-03"]

    def test_department_performance_follows_period_order(self):
        for period in ("2024-03", "2024-01", "2024-02"):
            gamification_service.calculate_gamification_scores(
                self.org.id, period=period, now=NOW
            )

        history = gamification_service.get_department_performance(
            self.org.id, self.platform.id
        )

        assert [row["period"] for row in history] == ["2024-01", "2024-02", "2024-03"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_department_performance_rejects_non_positive_limit(self, limit):
        with pytest.raises(ValidationError):
            gamification_service.get_department_performance(
                self.org.id, self.platform.id, limit=limit
            )

    def test_department_performance_other_tenant(self):
        with pytest.raises(NotFoundError):
            gamification_service.get_department_performance(
                self.org.id + 1, self.platform.id
            )

    def test_department_badges_latest_per_type(self):
        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)
        gamification_service.calculate_gamification_scores(self.org.id, now=NOW)

        badges = gamification_service.get_department_badges(
            self.org.id, self.platform.id
        )

        assert len(badges) == 1
        assert badges[0]["badge_type"] == "cost_champion"
        assert badges[0]["id"] == max(b.id for b in Badge.query.all())
