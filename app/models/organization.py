"""
Tenant models — organizations and their departments.

The organization is the tenant boundary: every license, insight,
score, badge and impact snapshot carries an ``organization_id`` and is
only ever read back through it.
"""

import copy

from app.extensions import db
from app.utils import utcnow

# Settings applied to every new organization.  ``alertThresholds`` keys
# keep the camelCase names the dashboard frontend reads.
DEFAULT_SETTINGS: dict = {
    "currency": "USD",
    "timezone": "UTC",
    "alertThresholds": {
        "unusedDays": 30,
        "renewalDays": 30,
        "overusagePercent": 10,
    },
}


def default_settings() -> dict:
    """Return a fresh deep copy of ``DEFAULT_SETTINGS``."""
    return copy.deepcopy(DEFAULT_SETTINGS)


class Organization(db.Model):
    """
    A customer tenant.

    ``domain`` is unique so two sign-ups for the same company collide
    instead of silently creating parallel tenants.
    """

    __tablename__ = "organization"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(200), nullable=False)
    domain = db.Column(db.String(200), unique=True, nullable=False, index=True)
    industry = db.Column(db.String(100), nullable=True)
    employee_count = db.Column(db.Integer, nullable=True)
    settings = db.Column(db.JSON, nullable=False, default=default_settings)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    departments = db.relationship(
        "Department", back_populates="organization", lazy="dynamic"
    )
    profiles = db.relationship(
        "UserProfile", back_populates="organization", lazy="dynamic"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "industry": self.industry,
            "employee_count": self.employee_count,
            "settings": self.settings,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Organization {self.domain}: {self.name}>"


class Department(db.Model):
    """
    Budget-holding unit within an organization.

    ``budget`` is the spend allowance the gamification scorer measures
    adherence against.  A budget of zero means "no budget set" and
    yields a vacuous 100% adherence.
    """

    __tablename__ = "department"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organization.id"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    budget = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    manager_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    description = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    organization = db.relationship("Organization", back_populates="departments")
    manager = db.relationship("User", foreign_keys=[manager_id])
    licenses = db.relationship("License", back_populates="department", lazy="dynamic")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "budget": float(self.budget or 0),
            "manager_id": self.manager_id,
            "description": self.description,
        }

    def __repr__(self) -> str:
        return f"<Department {self.id}: {self.name}>"
