"""
Environmental service — estimated footprint avoided by unused seats.

Every idle seat on an active license is treated as one cloud account
that could be switched off.  Figures are per month:

  - CO2:     0.15 kg per seat
  - Energy:  0.5 kWh per seat
  - Water:   2 L per seat
  - Trees:   CO2 × 12 ÷ 20 (a tree absorbs 20 kg CO2 a year)
  - Driving: CO2 ÷ 0.404 (kg CO2 per car mile)

One organization row (``department_id`` NULL) and one row per
department with licenses are upserted for the month.  Department rows
store their own month's CO2 as ``cumulative_co2``; only the
organization row carries a true running total.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy import desc, func

from app.exceptions import ValidationError
from app.extensions import db
from app.models.environmental import EnvironmentalImpact
from app.models.insight import Insight
from app.services import (
    audit_service,
    license_service,
    organization_service,
    period_service,
)
from app.utils import utcnow

logger = logging.getLogger(__name__)

CO2_PER_SEAT_KG_MONTHLY = 0.15
ENERGY_PER_SEAT_KWH_MONTHLY = 0.5
WATER_PER_SEAT_LITERS_MONTHLY = 2
CO2_PER_TREE_KG_YEARLY = 20
CO2_PER_CAR_MILE_KG = 0.404


@dataclass
class ImpactResult:
    """Outcome of one environmental run."""

    period: str
    total_unused_licenses: int = 0
    co2_saved_kg: float = 0.0
    departments_processed: int = 0
    failures: list[dict] = field(default_factory=list)
    run_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "total_unused_licenses": self.total_unused_licenses,
            "co2_saved_kg": self.co2_saved_kg,
            "departments_processed": self.departments_processed,
            "failures": self.failures,
            "run_id": self.run_id,
        }


def impact_metrics(unused_seats: int) -> dict:
    """Convert a count of idle seats into the stored footprint figures."""
    co2 = unused_seats * CO2_PER_SEAT_KG_MONTHLY
    return {
        "unused_licenses": unused_seats,
        "co2_saved_kg": co2,
        "energy_saved_kwh": unused_seats * ENERGY_PER_SEAT_KWH_MONTHLY,
        "water_saved_liters": unused_seats * WATER_PER_SEAT_LITERS_MONTHLY,
        "tree_equivalent": co2 * 12 / CO2_PER_TREE_KG_YEARLY,
        "car_miles_equivalent": co2 / CO2_PER_CAR_MILE_KG,
    }


# =========================================================================
# Calculation run
# =========================================================================


def calculate_environmental_impact(
    organization_id: int,
    period: str | None = None,
    now: datetime | None = None,
    user_id: int | None = None,
) -> ImpactResult:
    """
    Compute and upsert the month's organization and department impact.

    Args:
        organization_id: Tenant to compute.
        period:          ``YYYY-MM``; defaults to the current month.
        now:             Reference time for the default period.
        user_id:         Who triggered the run (None for the CLI).

    Raises:
        NotFoundError:   If the organization does not exist.
        ValidationError: If ``period`` is not a monthly key.
    """
    organization_service.get_organization(organization_id)
    period = period_service.resolve_period(period, "monthly", now)

    run = audit_service.start_generator_run(
        organization_id, "environmental_impact", period=period, user_id=user_id
    )
    result = ImpactResult(period=period, run_id=run.id)
    stats = audit_service.new_stats()

    try:
        total_unused = 0
        by_department: dict[int, int] = {}
        for lic in license_service.get_active_licenses(organization_id):
            unused = lic.unused_seats
            total_unused += unused
            # Licenses without a department count only toward the total.
            if lic.department_id is not None:
                by_department[lic.department_id] = (
                    by_department.get(lic.department_id, 0) + unused
                )

        org_metrics = impact_metrics(total_unused)
        result.total_unused_licenses = total_unused
        result.co2_saved_kg = org_metrics["co2_saved_kg"]

        period_start, period_end = period_service.period_bounds(period)

        stats["processed"] += 1
        try:
            with db.session.begin_nested():
                org_metrics["cumulative_co2"] = (
                    _earlier_co2(organization_id, period) + org_metrics["co2_saved_kg"]
                )
                org_metrics["optimization_actions"] = _count_resolved(
                    organization_id, period_start, period_end
                )
                created = _upsert_impact(organization_id, None, period, org_metrics)
            stats["created" if created else "updated"] += 1
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error(
                "Error saving organization impact for %s: %s", period, exc
            )
            stats["errors"] += 1
            result.failures.append({"department_id": None, "error": str(exc)})

        for department_id, unused in by_department.items():
            stats["processed"] += 1
            try:
                with db.session.begin_nested():
                    metrics = impact_metrics(unused)
                    metrics["cumulative_co2"] = metrics["co2_saved_kg"]
                    metrics["optimization_actions"] = _count_resolved(
                        organization_id, period_start, period_end, department_id
                    )
                    created = _upsert_impact(
                        organization_id, department_id, period, metrics
                    )
                stats["created" if created else "updated"] += 1
                result.departments_processed += 1
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error(
                    "Error saving impact for department %s: %s", department_id, exc
                )
                stats["errors"] += 1
                result.failures.append(
                    {"department_id": department_id, "error": str(exc)}
                )

        audit_service.complete_generator_run(run, stats)
        audit_service.log_change(
            user_id=user_id,
            action_type="GENERATE",
            entity_type="environmental_impact",
            entity_id=run.id,
            new_value=result.to_dict(),
            organization_id=organization_id,
        )
        db.session.commit()

    except Exception as exc:
        db.session.rollback()
        audit_service.fail_generator_run(run, str(exc))
        logger.error("Environmental calculation failed: %s", exc, exc_info=True)
        raise

    logger.info(
        "Environmental impact for org %d %s: %d unused seats, %.2f kg CO2, "
        "%d departments",
        organization_id,
        period,
        result.total_unused_licenses,
        result.co2_saved_kg,
        result.departments_processed,
    )
    return result


def _earlier_co2(organization_id: int, period: str) -> float:
    # Monthly keys sort chronologically as strings.
    total = (
        db.session.query(func.coalesce(func.sum(EnvironmentalImpact.co2_saved_kg), 0))
        .filter(
            EnvironmentalImpact.organization_id == organization_id,
            EnvironmentalImpact.department_id.is_(None),
            EnvironmentalImpact.period < period,
        )
        .scalar()
    )
    return float(total or 0)


def _count_resolved(
    organization_id: int,
    start: datetime,
    end: datetime,
    department_id: int | None = None,
) -> int:
    query = Insight.query.filter(
        Insight.organization_id == organization_id,
        Insight.status == "resolved",
        Insight.created_at >= start,
        Insight.created_at < end,
    )
    if department_id is not None:
        query = query.filter(Insight.department_id == department_id)
    return query.count()


def _upsert_impact(
    organization_id: int,
    department_id: int | None,
    period: str,
    metrics: dict,
) -> bool:
    """
    Insert or patch one impact row; returns True when a row was created.

    The unique constraint does not cover NULL department rows on most
    databases, so the locked read is what keeps the organization row
    single.
    """
    query = EnvironmentalImpact.query.filter(
        EnvironmentalImpact.organization_id == organization_id,
        EnvironmentalImpact.period == period,
    )
    if department_id is None:
        query = query.filter(EnvironmentalImpact.department_id.is_(None))
    else:
        query = query.filter(EnvironmentalImpact.department_id == department_id)

    impact = query.with_for_update().first()
    created = impact is None
    if created:
        impact = EnvironmentalImpact(
            organization_id=organization_id,
            department_id=department_id,
            period=period,
        )
        db.session.add(impact)
    else:
        impact.updated_at = utcnow()

    for key, value in metrics.items():
        setattr(impact, key, value)
    db.session.flush()
    return created


# =========================================================================
# Read models
# =========================================================================


def get_environmental_overview(
    organization_id: int,
    period: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Return the organization row for the month, or an all-zero record."""
    period = period_service.resolve_period(period, "monthly", now)
    impact = EnvironmentalImpact.query.filter(
        EnvironmentalImpact.organization_id == organization_id,
        EnvironmentalImpact.department_id.is_(None),
        EnvironmentalImpact.period == period,
    ).first()
    if impact is not None:
        return impact.to_dict()

    return {
        "period": period,
        "unused_licenses": 0,
        "co2_saved_kg": 0,
        "energy_saved_kwh": 0,
        "water_saved_liters": 0,
        "tree_equivalent": 0,
        "car_miles_equivalent": 0,
        "cumulative_co2": 0,
        "optimization_actions": 0,
    }


def get_environmental_trend(
    organization_id: int, months: int | None = None
) -> list[dict]:
    """Return the last ``months`` organization rows, oldest first."""
    if months is None:
        months = current_app.config.get("DEFAULT_TREND_MONTHS", 12)
    if months < 1:
        raise ValidationError("months must be at least 1.")
    impacts = (
        EnvironmentalImpact.query.filter(
            EnvironmentalImpact.organization_id == organization_id,
            EnvironmentalImpact.department_id.is_(None),
        )
        .order_by(desc(EnvironmentalImpact.period))
        .limit(months)
        .all()
    )
    return [impact.to_dict() for impact in reversed(impacts)]


def get_department_environmental_rankings(
    organization_id: int,
    period: str | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Return the month's department rows, most CO2 saved first."""
    period = period_service.resolve_period(period, "monthly", now)
    impacts = (
        EnvironmentalImpact.query.filter(
            EnvironmentalImpact.organization_id == organization_id,
            EnvironmentalImpact.department_id.isnot(None),
            EnvironmentalImpact.period == period,
        )
        .order_by(desc(EnvironmentalImpact.co2_saved_kg), EnvironmentalImpact.id)
        .all()
    )

    rankings = []
    for impact in impacts:
        row = impact.to_dict()
        row["department_name"] = (
            impact.department.name if impact.department is not None else "Unknown"
        )
        rankings.append(row)
    return rankings
