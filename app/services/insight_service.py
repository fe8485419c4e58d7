"""
Insight service — the unused-license generator and the insight workflow.

The generator looks at every active license of an organization, counts
the users seen in the last 30 days, and files an ``unused_license``
insight for each license with idle seats.  Each insert runs inside its
own SAVEPOINT so one bad license does not cost the rest of the batch.

By default every run inserts fresh insights, so running it twice
produces two insights per license.  Set ``INSIGHT_SUPPRESS_DUPLICATES``
to skip licenses that already have an open finding.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import desc

from app.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from app.extensions import db
from app.models.insight import INSIGHT_STATUSES, OPEN_STATUSES, Insight
from app.models.license import License, LicenseUsage
from app.services import audit_service, license_service, organization_service
from app.utils import utcnow

logger = logging.getLogger(__name__)

# A seat counts as used if its user was active inside this window.
ACTIVITY_WINDOW_DAYS = 30

# Confidence grows with the idle share of seats, capped below certainty.
CONFIDENCE_BASE = 60
CONFIDENCE_SPAN = 35
CONFIDENCE_CAP = 95

# Idle share above which an insight is filed as high severity.
HIGH_SEVERITY_RATIO = 0.5


@dataclass
class InsightGenerationResult:
    """Outcome of one generator run."""

    created: int = 0
    skipped: int = 0
    failures: list[dict] = field(default_factory=list)
    run_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "failures": self.failures,
            "run_id": self.run_id,
        }


# =========================================================================
# Generator
# =========================================================================


def generate_unused_license_insights(
    organization_id: int,
    now: datetime | None = None,
    user_id: int | None = None,
) -> InsightGenerationResult:
    """
    File an ``unused_license`` insight for every active license with
    seats nobody used in the last 30 days.

    Args:
        organization_id: Tenant to scan.
        now:             Reference time; defaults to the current UTC time.
        user_id:         Who triggered the run (None for the CLI).

    Returns:
        An InsightGenerationResult with the created/skipped counts and
        any per-license failures.

    Raises:
        NotFoundError: If the organization does not exist.
    """
    organization_service.get_organization(organization_id)
    now = now or utcnow()
    cutoff = now - timedelta(days=ACTIVITY_WINDOW_DAYS)
    suppress_duplicates = current_app.config.get("INSIGHT_SUPPRESS_DUPLICATES", False)

    run = audit_service.start_generator_run(
        organization_id, "unused_license_insights", user_id=user_id
    )
    result = InsightGenerationResult(run_id=run.id)
    stats = audit_service.new_stats()

    try:
        for license_ in license_service.get_active_licenses(organization_id):
            stats["processed"] += 1

            if suppress_duplicates and _has_open_insight(license_):
                stats["skipped"] += 1
                result.skipped += 1
                continue

            try:
                with db.session.begin_nested():
                    active_users = count_active_users(license_.id, cutoff)
                    insight = build_unused_license_insight(
                        license_, active_users, now
                    )
                    if insight is None:
                        continue
                    db.session.add(insight)
                stats["created"] += 1
                result.created += 1
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error(
                    "Error generating insight for license %s: %s",
                    license_.id,
                    exc,
                )
                stats["errors"] += 1
                result.failures.append(
                    {"license_id": license_.id, "error": str(exc)}
                )

        audit_service.complete_generator_run(run, stats)
        audit_service.log_change(
            user_id=user_id,
            action_type="GENERATE",
            entity_type="insight",
            entity_id=run.id,
            new_value=result.to_dict(),
            organization_id=organization_id,
        )
        db.session.commit()

    except Exception as exc:
        db.session.rollback()
        audit_service.fail_generator_run(run, str(exc))
        logger.error("Insight generation failed: %s", exc, exc_info=True)
        raise

    logger.info(
        "Insight generation for org %d: %d processed, %d created, "
        "%d skipped, %d errors",
        organization_id,
        stats["processed"],
        stats["created"],
        stats["skipped"],
        stats["errors"],
    )
    return result


def count_active_users(license_id: int, cutoff: datetime) -> int:
    """Count usage samples whose last activity is strictly after ``cutoff``."""
    return LicenseUsage.query.filter(
        LicenseUsage.license_id == license_id,
        LicenseUsage.last_active_date > cutoff,
    ).count()


def build_unused_license_insight(
    license_: License, active_users: int, now: datetime
) -> Insight | None:
    """
    Build (but do not add) the insight for one license.

    Returns None when every seat saw activity.
    """
    total = license_.total_seats or 0
    unused = total - active_users
    if unused <= 0:
        return None

    potential_savings = (
        Decimal(unused)
        * Decimal(license_.cost_per_seat or 0)
        * license_.annualization_factor
    )
    confidence = min(
        CONFIDENCE_CAP, CONFIDENCE_BASE + unused / total * CONFIDENCE_SPAN
    )
    severity = "high" if unused > total * HIGH_SEVERITY_RATIO else "medium"

    return Insight(
        organization_id=license_.organization_id,
        license_id=license_.id,
        department_id=license_.department_id,
        insight_type="unused_license",
        severity=severity,
        title=f"{unused} unused seats in {license_.name}",
        description=(
            f"{unused} out of {total} seats haven't been used in the last "
            f"{ACTIVITY_WINDOW_DAYS} days. Consider reducing your subscription."
        ),
        potential_savings=potential_savings,
        confidence=confidence,
        status="new",
        details={
            "unusedDays": ACTIVITY_WINDOW_DAYS,
            "recommendedAction": f"Reduce subscription by {unused} seats",
        },
        created_at=now,
        updated_at=now,
    )


def _has_open_insight(license_: License) -> bool:
    return (
        Insight.query.filter(
            Insight.organization_id == license_.organization_id,
            Insight.license_id == license_.id,
            Insight.insight_type == "unused_license",
            Insight.status.in_(OPEN_STATUSES),
        ).first()
        is not None
    )


# =========================================================================
# Queries
# =========================================================================


def get_insight(organization_id: int, insight_id: int) -> Insight:
    """
    Return an insight owned by the organization.

    Raises:
        NotFoundError: If missing or owned by another organization.
    """
    insight = db.session.get(Insight, insight_id)
    if insight is None or insight.organization_id != organization_id:
        raise NotFoundError("Insight not found.")
    return insight


def get_insights(
    organization_id: int,
    insight_type: str | None = None,
    status: str | None = None,
) -> list[dict]:
    """
    Return the organization's insights, newest first.

    Each dict carries a ``license`` key with the license's dict, or None
    when the referenced license has since been deleted.
    """
    query = Insight.query.filter(Insight.organization_id == organization_id)
    if insight_type:
        query = query.filter(Insight.insight_type == insight_type)
    if status:
        query = query.filter(Insight.status == status)
    insights = query.order_by(desc(Insight.created_at), desc(Insight.id)).all()

    license_ids = {i.license_id for i in insights if i.license_id is not None}
    licenses = {}
    if license_ids:
        licenses = {
            lic.id: lic
            for lic in License.query.filter(License.id.in_(license_ids)).all()
        }

    results = []
    for insight in insights:
        row = insight.to_dict()
        license_ = licenses.get(insight.license_id)
        row["license"] = license_.to_dict() if license_ is not None else None
        results.append(row)
    return results


# =========================================================================
# Workflow
# =========================================================================


def update_insight_status(
    organization_id: int,
    insight_id: int,
    new_status: str,
    user_id: int | None = None,
) -> Insight:
    """
    Move an insight along its workflow.

    Allowed moves are ``new → acknowledged``, ``new → dismissed`` and
    ``acknowledged → resolved``.

    Raises:
        NotFoundError:                If the insight is not in the organization.
        ValidationError:              If ``new_status`` is not a known status.
        InvalidStatusTransitionError: If the move is not allowed.
    """
    if new_status not in INSIGHT_STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'. "
            f"Valid options: {', '.join(INSIGHT_STATUSES)}"
        )

    insight = get_insight(organization_id, insight_id)
    if not insight.can_transition_to(new_status):
        raise InvalidStatusTransitionError(
            f"Cannot change insight status from '{insight.status}' "
            f"to '{new_status}'."
        )

    previous_status = insight.status
    insight.status = new_status
    insight.updated_at = utcnow()

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="insight",
        entity_id=insight.id,
        previous_value={"status": previous_status},
        new_value={"status": new_status},
        organization_id=organization_id,
    )
    db.session.commit()

    logger.info(
        "Insight %d moved from %s to %s", insight.id, previous_status, new_status
    )
    return insight
