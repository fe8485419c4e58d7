"""
Data builders shared by the test modules.

Each builder commits, so the rows are visible to services that open
their own savepoints or commit.
"""

from datetime import datetime
from decimal import Decimal

from app.models.license import License
from app.models.user import User

# Fixed reference time so period keys and windows are deterministic.
NOW = datetime(2024, 3, 15, 12, 0, 0)


def make_user(session, email="admin@acme.test", first_name="Ada", last_name="Admin"):
    """Insert and return an active user with no organization."""
    user = User(email=email, first_name=first_name, last_name=last_name)
    session.add(user)
    session.commit()
    return user


def make_license(
    session,
    organization_id,
    name="Test Suite",
    total_seats=10,
    used_seats=10,
    cost_per_seat="10.00",
    billing_cycle="monthly",
    department_id=None,
    status="active",
    renewal_date=datetime(2024, 12, 31),
):
    """Insert and return a license with ``total_cost`` computed."""
    license_ = License(
        organization_id=organization_id,
        department_id=department_id,
        name=name,
        vendor="Vendor",
        category="Productivity",
        license_type="per_user",
        total_seats=total_seats,
        used_seats=used_seats,
        cost_per_seat=Decimal(cost_per_seat),
        billing_cycle=billing_cycle,
        purchase_date=datetime(2023, 1, 1),
        renewal_date=renewal_date,
        status=status,
    )
    license_.recalculate_total_cost()
    session.add(license_)
    session.commit()
    return license_
