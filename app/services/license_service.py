"""
License service — inventory CRUD, usage samples and the dashboard
overview.

``total_cost`` is owned here: it is set on create and recomputed on
every update that touches ``total_seats`` or ``cost_per_seat``.
Utilization and days-to-renewal are derived on read by the model.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import desc

from app.exceptions import NotFoundError, ValidationError
from app.extensions import db
from app.models.insight import Insight
from app.models.license import (
    BILLING_CYCLES,
    LICENSE_STATUSES,
    LICENSE_TYPES,
    License,
    LicenseUsage,
)
from app.models.organization import Department
from app.models.user import User
from app.services import audit_service
from app.utils import round_half_up, utcnow

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# Fields ``update_license`` accepts.
_UPDATABLE_FIELDS = (
    "name",
    "vendor",
    "category",
    "total_seats",
    "used_seats",
    "cost_per_seat",
    "renewal_date",
    "status",
    "department_id",
    "description",
)


# =========================================================================
# Queries
# =========================================================================


def get_license(organization_id: int, license_id: int) -> License:
    """
    Return a license owned by the organization.

    Raises:
        NotFoundError: If missing or owned by another organization.
    """
    license_ = db.session.get(License, license_id)
    if license_ is None or license_.organization_id != organization_id:
        raise NotFoundError("License not found.")
    return license_


def get_licenses(
    organization_id: int,
    category: str | None = None,
    status: str | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """
    Return the organization's licenses as dicts with derived fields.

    Each dict carries ``utilization_rate`` and ``days_until_renewal``
    computed against ``now``.
    """
    query = License.query.filter(License.organization_id == organization_id)
    if status:
        query = query.filter(License.status == status)
    if category:
        query = query.filter(License.category == category)

    now = now or utcnow()
    return [lic.to_dict(now) for lic in query.order_by(License.id).all()]


def get_active_licenses(
    organization_id: int, department_id: int | None = None
) -> list[License]:
    """Return active licenses, optionally limited to one department."""
    query = License.query.filter(
        License.organization_id == organization_id,
        License.status == "active",
    )
    if department_id is not None:
        query = query.filter(License.department_id == department_id)
    return query.order_by(License.id).all()


# =========================================================================
# Mutations
# =========================================================================


def add_license(
    organization_id: int,
    name: str,
    vendor: str,
    category: str,
    license_type: str,
    total_seats: int,
    used_seats: int,
    cost_per_seat,
    billing_cycle: str,
    purchase_date: datetime,
    renewal_date: datetime,
    department_id: int | None = None,
    description: str | None = None,
    user_id: int | None = None,
) -> License:
    """
    Create an active license and compute its ``total_cost``.

    Raises:
        ValidationError: For unknown enum values or negative numbers.
        NotFoundError:   If ``department_id`` is not in the organization.
    """
    _check_choice("license_type", license_type, LICENSE_TYPES)
    _check_choice("billing_cycle", billing_cycle, BILLING_CYCLES)
    total_seats = _non_negative_int("total_seats", total_seats)
    used_seats = _non_negative_int("used_seats", used_seats)
    cost_per_seat = _non_negative_decimal("cost_per_seat", cost_per_seat)
    if department_id is not None:
        _check_department(organization_id, department_id)

    license_ = License(
        organization_id=organization_id,
        department_id=department_id,
        name=name,
        vendor=vendor,
        category=category,
        license_type=license_type,
        total_seats=total_seats,
        used_seats=used_seats,
        cost_per_seat=cost_per_seat,
        billing_cycle=billing_cycle,
        purchase_date=purchase_date,
        renewal_date=renewal_date,
        status="active",
        description=description,
    )
    license_.recalculate_total_cost()
    db.session.add(license_)
    db.session.flush()

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="license",
        entity_id=license_.id,
        new_value={
            "name": name,
            "vendor": vendor,
            "total_seats": total_seats,
            "used_seats": used_seats,
            "cost_per_seat": str(cost_per_seat),
            "total_cost": str(license_.total_cost),
        },
        organization_id=organization_id,
    )
    db.session.commit()

    logger.info("Added license %s (%d seats)", name, total_seats)
    return license_


def update_license(
    organization_id: int,
    license_id: int,
    updates: dict,
    user_id: int | None = None,
) -> License:
    """
    Apply a partial update to a license.

    ``total_cost`` is recomputed from the resulting seats and price
    whenever either one is part of ``updates``.

    Raises:
        NotFoundError:   If the license is not in the organization.
        ValidationError: For unknown fields or invalid values.
    """
    license_ = get_license(organization_id, license_id)

    unknown = set(updates) - set(_UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Cannot update field(s): {', '.join(sorted(unknown))}"
        )

    previous = {}
    changed = {}
    for field_name, value in updates.items():
        if field_name in ("total_seats", "used_seats"):
            value = _non_negative_int(field_name, value)
        elif field_name == "cost_per_seat":
            value = _non_negative_decimal(field_name, value)
        elif field_name == "status":
            _check_choice("status", value, LICENSE_STATUSES)
        elif field_name == "department_id" and value is not None:
            _check_department(organization_id, value)

        previous[field_name] = getattr(license_, field_name)
        setattr(license_, field_name, value)
        changed[field_name] = value

    if "total_seats" in updates or "cost_per_seat" in updates:
        previous["total_cost"] = license_.total_cost
        changed["total_cost"] = license_.recalculate_total_cost()

    license_.updated_at = utcnow()

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="license",
        entity_id=license_.id,
        previous_value=previous,
        new_value=changed,
        organization_id=organization_id,
    )
    db.session.commit()

    logger.info("Updated license ID %d", license_id)
    return license_


def delete_license(
    organization_id: int,
    license_id: int,
    user_id: int | None = None,
) -> bool:
    """
    Delete a license and its usage samples.

    Insights referencing the license are left untouched.

    Raises:
        NotFoundError: If the license is not in the organization.
    """
    license_ = get_license(organization_id, license_id)
    snapshot = {"name": license_.name, "vendor": license_.vendor}

    db.session.delete(license_)
    audit_service.log_change(
        user_id=user_id,
        action_type="DELETE",
        entity_type="license",
        entity_id=license_id,
        previous_value=snapshot,
        organization_id=organization_id,
    )
    db.session.commit()

    logger.info("Deleted license ID %d", license_id)
    return True


def record_license_usage(
    organization_id: int,
    license_id: int,
    user_id: int,
    last_active_date: datetime,
    usage_hours: float = 0,
) -> LicenseUsage:
    """
    Insert or refresh the usage sample for (license, user).

    ``usage_hours`` is added to the running total.

    Raises:
        NotFoundError: If the license is not in the organization or the
                       user does not exist.
    """
    get_license(organization_id, license_id)
    if db.session.get(User, user_id) is None:
        raise NotFoundError(f"User ID {user_id} not found.")

    usage = LicenseUsage.query.filter_by(
        license_id=license_id, user_id=user_id
    ).first()
    if usage is None:
        usage = LicenseUsage(
            license_id=license_id,
            user_id=user_id,
            last_active_date=last_active_date,
            total_usage_hours=usage_hours or 0,
            is_active=True,
        )
        db.session.add(usage)
    else:
        usage.last_active_date = max(usage.last_active_date, last_active_date)
        usage.total_usage_hours = (usage.total_usage_hours or 0) + (usage_hours or 0)
        usage.is_active = True

    db.session.commit()
    return usage


# =========================================================================
# Dashboard overview
# =========================================================================


def get_dashboard_overview(
    organization_id: int, now: datetime | None = None
) -> dict:
    """
    Summarize the organization's license estate for the dashboard.

    ``potential_savings`` sums the five most recent ``new`` insights,
    the same slice the dashboard lists.
    """
    now = now or utcnow()
    licenses = License.query.filter_by(organization_id=organization_id).all()

    total_seats = sum(lic.total_seats for lic in licenses)
    used_seats = sum(lic.used_seats for lic in licenses)
    renewal_cutoff = now + timedelta(
        days=current_app.config.get("RENEWAL_WINDOW_DAYS", 30)
    )

    recent_insights = (
        Insight.query.filter(
            Insight.organization_id == organization_id,
            Insight.status == "new",
        )
        .order_by(desc(Insight.created_at), desc(Insight.id))
        .limit(5)
        .all()
    )

    return {
        "total_licenses": len(licenses),
        "active_licenses": sum(1 for lic in licenses if lic.status == "active"),
        "total_cost": float(sum((lic.total_cost or ZERO for lic in licenses), ZERO)),
        "utilization_rate": (
            round_half_up(used_seats / total_seats * 100) if total_seats else 0
        ),
        "upcoming_renewals": sum(
            1
            for lic in licenses
            if lic.status == "active" and lic.renewal_date <= renewal_cutoff
        ),
        "insights": len(recent_insights),
        "potential_savings": float(
            sum(
                (i.potential_savings for i in recent_insights if i.potential_savings),
                ZERO,
            )
        ),
    }


# =========================================================================
# Validation helpers
# =========================================================================


def _check_choice(field_name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValidationError(
            f"Invalid {field_name} '{value}'. Valid options: {', '.join(choices)}"
        )


def _non_negative_int(field_name: str, value) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a whole number.") from exc
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative.")
    return number


def _non_negative_decimal(field_name: str, value) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a number.") from exc
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative.")
    return number


def _check_department(organization_id: int, department_id: int) -> None:
    department = db.session.get(Department, department_id)
    if department is None or department.organization_id != organization_id:
        raise NotFoundError(f"Department ID {department_id} not found.")
