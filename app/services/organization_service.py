"""
Organization service — tenant onboarding, settings and departments.

Creating an organization makes the creator its admin and seeds a
starter set of departments with budgets so the leaderboard has
something to rank on day one.
"""

import logging
from decimal import Decimal, InvalidOperation

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.extensions import db
from app.models.organization import Department, Organization, default_settings
from app.models.user import User, UserProfile
from app.services import audit_service, tenant_service
from app.utils import utcnow

logger = logging.getLogger(__name__)

# Departments created for every new organization: (name, budget).
SAMPLE_DEPARTMENTS: list[tuple[str, Decimal]] = [
    ("Engineering", Decimal("50000")),
    ("Marketing", Decimal("30000")),
    ("Sales", Decimal("25000")),
    ("HR", Decimal("15000")),
    ("Finance", Decimal("20000")),
]


# -- Organization lifecycle ------------------------------------------------


def create_organization(
    user_id: int,
    name: str,
    domain: str,
    industry: str | None = None,
    employee_count: int | None = None,
) -> Organization:
    """
    Create an organization, its admin profile and sample departments.

    Args:
        user_id:        The signed-in user creating the organization.
        name:           Display name.
        domain:         Company domain; must be unique across tenants.
        industry:       Optional industry label.
        employee_count: Optional headcount.

    Returns:
        The new Organization.

    Raises:
        ValidationError: If name or domain is blank.
        ConflictError:   If an organization already uses ``domain``.
        NotFoundError:   If ``user_id`` does not exist.
    """
    name = (name or "").strip()
    domain = (domain or "").strip().lower()
    if not name or not domain:
        raise ValidationError("Organization name and domain are required.")

    if db.session.get(User, user_id) is None:
        raise NotFoundError(f"User ID {user_id} not found.")

    if Organization.query.filter_by(domain=domain).first() is not None:
        raise ConflictError("Organization with this domain already exists.")

    organization = Organization(
        name=name,
        domain=domain,
        industry=industry,
        employee_count=employee_count,
        settings=default_settings(),
    )
    db.session.add(organization)
    db.session.flush()

    db.session.add(
        UserProfile(
            user_id=user_id,
            organization_id=organization.id,
            role="admin",
            is_active=True,
        )
    )

    for dept_name, budget in SAMPLE_DEPARTMENTS:
        db.session.add(
            Department(
                organization_id=organization.id,
                name=dept_name,
                budget=budget,
            )
        )

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="organization",
        entity_id=organization.id,
        new_value={"name": name, "domain": domain, "industry": industry},
        organization_id=organization.id,
    )
    db.session.commit()

    logger.info("Created organization %s (%s)", name, domain)
    return organization


def get_organization(organization_id: int) -> Organization:
    """
    Return an organization by primary key.

    Raises:
        NotFoundError: If it does not exist.
    """
    organization = db.session.get(Organization, organization_id)
    if organization is None:
        raise NotFoundError(f"Organization ID {organization_id} not found.")
    return organization


def get_current_organization(user: User) -> dict | None:
    """
    Return the user's organization with their role, or None.

    Unlike the tenant resolver this never raises: the onboarding screen
    uses ``None`` to decide whether to show the "create organization"
    form.
    """
    profile = user.active_profile if user is not None else None
    if profile is None:
        return None

    organization = db.session.get(Organization, profile.organization_id)
    if organization is None:
        return None

    result = organization.to_dict()
    result["user_role"] = profile.role
    return result


def update_organization_settings(
    organization_id: int,
    profile: UserProfile,
    settings: dict,
) -> Organization:
    """
    Shallow-merge ``settings`` into the organization's settings.

    Only ``currency``, ``timezone`` and ``alertThresholds`` are accepted.

    Raises:
        AuthorizationError: If ``profile`` is not an admin.
        NotFoundError:      If the profile belongs to another organization.
        ValidationError:    If ``settings`` carries unknown keys.
    """
    tenant_service.require_admin(profile)
    if profile.organization_id != organization_id:
        raise NotFoundError("Organization not found.")

    organization = get_organization(organization_id)

    unknown = set(settings) - {"currency", "timezone", "alertThresholds"}
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

    previous = dict(organization.settings or {})
    merged = {**previous, **settings}
    # Reassign so SQLAlchemy notices the JSON column changed.
    organization.settings = merged
    organization.updated_at = utcnow()

    audit_service.log_change(
        user_id=profile.user_id,
        action_type="UPDATE",
        entity_type="organization.settings",
        entity_id=organization.id,
        previous_value=previous,
        new_value=merged,
        organization_id=organization.id,
    )
    db.session.commit()

    logger.info("Updated settings for organization %d", organization_id)
    return organization


# -- Department queries ----------------------------------------------------


def get_departments(organization_id: int) -> list[Department]:
    """Return the organization's departments in creation order."""
    return (
        Department.query.filter_by(organization_id=organization_id)
        .order_by(Department.id)
        .all()
    )


def get_department(organization_id: int, department_id: int) -> Department:
    """
    Return a department belonging to the organization.

    Raises:
        NotFoundError: If missing or owned by another organization.
    """
    department = db.session.get(Department, department_id)
    if department is None or department.organization_id != organization_id:
        raise NotFoundError(f"Department ID {department_id} not found.")
    return department


def create_department(
    organization_id: int,
    name: str,
    budget: Decimal | int | float = 0,
    description: str | None = None,
    manager_id: int | None = None,
    user_id: int | None = None,
) -> Department:
    """
    Add a department to an organization.

    Raises:
        ValidationError: If the name is blank or the budget negative.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Department name is required.")
    try:
        budget = Decimal(str(budget))
    except InvalidOperation as exc:
        raise ValidationError("Department budget must be a number.") from exc
    if budget < 0:
        raise ValidationError("Department budget cannot be negative.")

    department = Department(
        organization_id=organization_id,
        name=name,
        budget=budget,
        description=description,
        manager_id=manager_id,
    )
    db.session.add(department)
    db.session.flush()

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="department",
        entity_id=department.id,
        new_value={"name": name, "budget": str(budget)},
        organization_id=organization_id,
    )
    db.session.commit()

    logger.info("Created department %s in organization %d", name, organization_id)
    return department
