"""
Gamification service — department efficiency scores, ranks and badges.

Scoring rules:
  - **Utilization:**       used seats ÷ total seats × 100 over the
    department's active licenses (0 with no seats).
  - **Budget adherence:**  100 − overspend as a percentage of budget,
    floored at 0.  Departments with no budget get 100.  Spending under
    budget scores above 100.
  - **Efficiency score:**  round(utilization × 0.6 + adherence × 0.4).

Departments are ranked by efficiency score, highest first; ties keep
department creation order.  Scores are upserted by (organization,
department, period, period_type), so rerunning a period overwrites it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import desc, func

from app.exceptions import ValidationError
from app.extensions import db
from app.models.gamification import Badge, GamificationScore
from app.models.insight import Insight
from app.models.organization import Department
from app.services import (
    audit_service,
    badge_service,
    license_service,
    organization_service,
    period_service,
)
from app.utils import round_half_up, utcnow

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

UTILIZATION_WEIGHT = 0.6
ADHERENCE_WEIGHT = 0.4

MEDALS = ("gold", "silver", "bronze")


# =========================================================================
# Data classes
# =========================================================================


@dataclass
class DepartmentMetrics:
    """Everything measured for one department before ranking."""

    department_id: int
    department_name: str
    budget: Decimal
    total_licenses: int = 0
    active_licenses: int = 0
    total_seats: int = 0
    used_seats: int = 0
    total_spend: Decimal = ZERO
    potential_savings: Decimal = ZERO
    actual_savings: Decimal = ZERO
    utilization: float = 0.0
    budget_adherence: float = 100.0
    efficiency_score: int = 0
    previous_rank: int | None = None


@dataclass
class ScoringResult:
    """Outcome of one scoring run."""

    scored: int = 0
    failures: list[dict] = field(default_factory=list)
    run_id: int | None = None
    period: str | None = None

    def to_dict(self) -> dict:
        return {
            "scored": self.scored,
            "failures": self.failures,
            "run_id": self.run_id,
            "period": self.period,
        }


# =========================================================================
# Pure scoring math
# =========================================================================


def utilization_rate(used_seats: int, total_seats: int) -> float:
    if total_seats <= 0:
        return 0.0
    return used_seats / total_seats * 100


def budget_adherence(total_spend: Decimal, budget: Decimal) -> float:
    if budget <= 0:
        return 100.0
    overspend_pct = float((total_spend - budget) / budget * 100)
    return max(0.0, 100 - overspend_pct)


def efficiency_score(utilization: float, adherence: float) -> int:
    return round_half_up(
        utilization * UTILIZATION_WEIGHT + adherence * ADHERENCE_WEIGHT
    )


# =========================================================================
# Scoring run
# =========================================================================


def calculate_gamification_scores(
    organization_id: int,
    period: str | None = None,
    period_type: str = "monthly",
    now: datetime | None = None,
    user_id: int | None = None,
) -> ScoringResult:
    """
    Score, rank and badge every department of an organization.

    Args:
        organization_id: Tenant to score.
        period:          Period key; defaults to the current period of
                         ``period_type``.
        period_type:     monthly, quarterly or yearly.
        now:             Reference time for the default period and badges.
        user_id:         Who triggered the run (None for the CLI).

    Returns:
        A ScoringResult with the number of departments scored and any
        per-department failures.

    Raises:
        NotFoundError:   If the organization does not exist.
        ValidationError: If the period or period type is malformed.
    """
    organization_service.get_organization(organization_id)
    now = now or utcnow()
    period = period_service.resolve_period(period, period_type, now)

    run = audit_service.start_generator_run(
        organization_id, "gamification_scores", period=period, user_id=user_id
    )
    result = ScoringResult(run_id=run.id, period=period)
    stats = audit_service.new_stats()

    try:
        measured: list[DepartmentMetrics] = []
        for department in organization_service.get_departments(organization_id):
            stats["processed"] += 1
            try:
                measured.append(
                    measure_department(organization_id, department, period_type)
                )
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error(
                    "Error measuring department %s: %s", department.id, exc
                )
                stats["errors"] += 1
                result.failures.append(
                    {"department_id": department.id, "error": str(exc)}
                )

        # sorted() is stable, so ties keep department creation order.
        ranked = sorted(measured, key=lambda m: m.efficiency_score, reverse=True)

        for rank, metrics in enumerate(ranked, start=1):
            try:
                with db.session.begin_nested():
                    score, created = _upsert_score(
                        organization_id, period, period_type, metrics, rank
                    )
                    score.badges = badge_service.award_badges(
                        organization_id,
                        metrics.department_id,
                        period,
                        score,
                        now,
                    )
                stats["created" if created else "updated"] += 1
                result.scored += 1
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error(
                    "Error saving score for department %s: %s",
                    metrics.department_id,
                    exc,
                )
                stats["errors"] += 1
                result.failures.append(
                    {"department_id": metrics.department_id, "error": str(exc)}
                )

        audit_service.complete_generator_run(run, stats)
        audit_service.log_change(
            user_id=user_id,
            action_type="GENERATE",
            entity_type="gamification_score",
            entity_id=run.id,
            new_value=result.to_dict(),
            organization_id=organization_id,
        )
        db.session.commit()

    except Exception as exc:
        db.session.rollback()
        audit_service.fail_generator_run(run, str(exc))
        logger.error("Gamification scoring failed: %s", exc, exc_info=True)
        raise

    logger.info(
        "Scored %d departments for org %d (%s %s), %d errors",
        result.scored,
        organization_id,
        period_type,
        period,
        stats["errors"],
    )
    return result


def measure_department(
    organization_id: int, department: Department, period_type: str
) -> DepartmentMetrics:
    """Aggregate one department's active licenses into unranked metrics."""
    metrics = DepartmentMetrics(
        department_id=department.id,
        department_name=department.name,
        budget=Decimal(department.budget or 0),
    )

    for lic in license_service.get_active_licenses(organization_id, department.id):
        metrics.total_licenses += 1
        if lic.used_seats > 0:
            metrics.active_licenses += 1
        metrics.total_seats += lic.total_seats
        metrics.used_seats += lic.used_seats
        metrics.total_spend += Decimal(lic.total_cost or 0)
        # Not floored: over-assigned licenses reduce the figure.
        metrics.potential_savings += (
            Decimal(lic.total_seats - lic.used_seats)
            * Decimal(lic.cost_per_seat or 0)
            * lic.annualization_factor
        )

    metrics.actual_savings = _resolved_savings(organization_id, department.id)
    metrics.utilization = utilization_rate(metrics.used_seats, metrics.total_seats)
    metrics.budget_adherence = budget_adherence(metrics.total_spend, metrics.budget)
    metrics.efficiency_score = efficiency_score(
        metrics.utilization, metrics.budget_adherence
    )
    metrics.previous_rank = _latest_rank(organization_id, department.id, period_type)
    return metrics


def _resolved_savings(organization_id: int, department_id: int) -> Decimal:
    total = (
        db.session.query(func.coalesce(func.sum(Insight.potential_savings), 0))
        .filter(
            Insight.organization_id == organization_id,
            Insight.department_id == department_id,
            Insight.status == "resolved",
        )
        .scalar()
    )
    return Decimal(total or 0)


def _latest_rank(
    organization_id: int, department_id: int, period_type: str
) -> int | None:
    latest = (
        GamificationScore.query.filter(
            GamificationScore.organization_id == organization_id,
            GamificationScore.department_id == department_id,
            GamificationScore.period_type == period_type,
        )
        .order_by(desc(GamificationScore.created_at), desc(GamificationScore.id))
        .first()
    )
    return latest.rank if latest is not None else None


def _upsert_score(
    organization_id: int,
    period: str,
    period_type: str,
    metrics: DepartmentMetrics,
    rank: int,
) -> tuple[GamificationScore, bool]:
    """
    Insert or patch the score row for the natural key.

    The existing row is read with FOR UPDATE so two concurrent runs on a
    server database serialize on it; the unique constraint catches any
    insert race.
    """
    score = (
        GamificationScore.query.filter_by(
            organization_id=organization_id,
            department_id=metrics.department_id,
            period=period,
            period_type=period_type,
        )
        .with_for_update()
        .first()
    )
    created = score is None
    if created:
        score = GamificationScore(
            organization_id=organization_id,
            department_id=metrics.department_id,
            period=period,
            period_type=period_type,
        )
        db.session.add(score)
    else:
        score.updated_at = utcnow()

    score.efficiency_score = metrics.efficiency_score
    score.utilization_rate = round_half_up(metrics.utilization)
    score.budget_adherence = round_half_up(metrics.budget_adherence)
    score.total_spend = metrics.total_spend
    score.budget_allocated = metrics.budget
    score.licenses_managed = metrics.total_licenses
    score.active_licenses = metrics.active_licenses
    score.potential_savings = metrics.potential_savings
    score.actual_savings = metrics.actual_savings
    score.rank = rank
    score.previous_rank = metrics.previous_rank
    score.badges = []
    db.session.flush()
    return score, created


# =========================================================================
# Read models
# =========================================================================


def get_leaderboard(
    organization_id: int,
    period_type: str = "monthly",
    period: str | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """
    Return the period's scores, best first, with display fields.

    Adds ``rank`` (position), ``rank_change`` (previous rank minus
    position, 0 with no previous rank), ``department`` (name or
    "Unknown") and ``medal`` (gold/silver/bronze for the top three).
    """
    period = period_service.resolve_period(period, period_type, now)
    scores = (
        GamificationScore.query.filter(
            GamificationScore.organization_id == organization_id,
            GamificationScore.period == period,
            GamificationScore.period_type == period_type,
        )
        .order_by(desc(GamificationScore.efficiency_score), GamificationScore.id)
        .all()
    )

    leaderboard = []
    for position, score in enumerate(scores, start=1):
        row = score.to_dict()
        row["rank"] = position
        row["rank_change"] = (
            score.previous_rank - position if score.previous_rank else 0
        )
        row["department"] = (
            score.department.name if score.department is not None else "Unknown"
        )
        row["medal"] = MEDALS[position - 1] if position <= len(MEDALS) else None
        leaderboard.append(row)
    return leaderboard


def get_department_performance(
    organization_id: int,
    department_id: int,
    period_type: str = "monthly",
    limit: int = 12,
) -> list[dict]:
    """
    Return the department's last ``limit`` scores of a period type,
    oldest first.

    Raises:
        NotFoundError:   If the department is not in the organization.
        ValidationError: If ``limit`` is below 1.
    """
    if limit < 1:
        raise ValidationError("limit must be at least 1.")
    organization_service.get_department(organization_id, department_id)
    scores = (
        GamificationScore.query.filter(
            GamificationScore.organization_id == organization_id,
            GamificationScore.department_id == department_id,
            GamificationScore.period_type == period_type,
        )
        .order_by(desc(GamificationScore.period), desc(GamificationScore.id))
        .limit(limit)
        .all()
    )
    return [score.to_dict() for score in reversed(scores)]


def get_department_badges(
    organization_id: int, department_id: int | None = None
) -> list[dict]:
    """Return the most recent badge of each type per department."""
    query = Badge.query.filter(Badge.organization_id == organization_id)
    if department_id is not None:
        query = query.filter(Badge.department_id == department_id)

    latest: dict[tuple[int, str], Badge] = {}
    for badge in query.order_by(desc(Badge.earned_date), desc(Badge.id)):
        latest.setdefault((badge.department_id, badge.badge_type), badge)
    return [badge.to_dict() for badge in latest.values()]
