"""
License inventory models.

``License`` is a purchased subscription or perpetual license with a
seat count.  ``LicenseUsage`` holds one activity sample per
(license, user) and is what the unused-license generator reads to
decide who was active in the last 30 days.
"""

from datetime import datetime
from decimal import Decimal

from app.extensions import db
from app.utils import ceil_days, round_half_up, utcnow

LICENSE_TYPES = ("per_user", "per_device", "enterprise")
BILLING_CYCLES = ("monthly", "annual")
LICENSE_STATUSES = ("active", "expired", "cancelled")

# Monthly bills are multiplied up so every savings figure is annual.
ANNUALIZATION_FACTOR = {"monthly": 12, "annual": 1}


class License(db.Model):
    """
    A software license owned by an organization.

    ``total_cost`` is always ``total_seats × cost_per_seat`` and is
    recomputed by the license service whenever either input changes.
    ``used_seats`` may exceed ``total_seats``; nothing rejects it.
    """

    __tablename__ = "license"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organization.id"),
        nullable=False,
        index=True,
    )
    department_id = db.Column(
        db.Integer,
        db.ForeignKey("department.id"),
        nullable=True,
        index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    vendor = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    license_type = db.Column(db.String(20), nullable=False)
    total_seats = db.Column(db.Integer, nullable=False, default=0)
    used_seats = db.Column(db.Integer, nullable=False, default=0)
    cost_per_seat = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    billing_cycle = db.Column(db.String(10), nullable=False)
    purchase_date = db.Column(db.DateTime, nullable=False)
    renewal_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    description = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    department = db.relationship("Department", back_populates="licenses")
    usage_records = db.relationship(
        "LicenseUsage",
        back_populates="license",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    # ---- Derived values (computed on read, never stored) -----------------

    @property
    def unused_seats(self) -> int:
        """Seats paid for but not assigned, floored at zero."""
        return max(0, (self.total_seats or 0) - (self.used_seats or 0))

    @property
    def annualization_factor(self) -> int:
        return ANNUALIZATION_FACTOR.get(self.billing_cycle, 1)

    @property
    def utilization_rate(self) -> int:
        """Used seats as a whole-number percentage of total seats."""
        if not self.total_seats:
            return 0
        return round_half_up(self.used_seats / self.total_seats * 100)

    def days_until_renewal(self, now: datetime | None = None) -> int:
        """Whole days until ``renewal_date``, rounded up; negative if past."""
        now = now or utcnow()
        return ceil_days((self.renewal_date - now).total_seconds())

    def recalculate_total_cost(self) -> Decimal:
        """Set and return ``total_cost`` from the current seats and price."""
        self.total_cost = Decimal(self.total_seats or 0) * Decimal(
            self.cost_per_seat or 0
        )
        return self.total_cost

    def to_dict(self, now: datetime | None = None) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "department_id": self.department_id,
            "name": self.name,
            "vendor": self.vendor,
            "category": self.category,
            "license_type": self.license_type,
            "total_seats": self.total_seats,
            "used_seats": self.used_seats,
            "cost_per_seat": float(self.cost_per_seat or 0),
            "total_cost": float(self.total_cost or 0),
            "billing_cycle": self.billing_cycle,
            "purchase_date": self.purchase_date.isoformat(),
            "renewal_date": self.renewal_date.isoformat(),
            "status": self.status,
            "description": self.description,
            "utilization_rate": self.utilization_rate,
            "days_until_renewal": self.days_until_renewal(now),
        }

    def __repr__(self) -> str:
        return (
            f"<License {self.id}: {self.name} "
            f"({self.used_seats}/{self.total_seats})>"
        )


class LicenseUsage(db.Model):
    """
    Latest activity sample for one user on one license.

    ``last_active_date`` drives the 30-day activity window.
    ``total_usage_hours`` and ``is_active`` are informational.
    """

    __tablename__ = "license_usage"
    __table_args__ = (
        db.UniqueConstraint(
            "license_id", "user_id", name="UQ_license_usage_license_user"
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    license_id = db.Column(
        db.Integer, db.ForeignKey("license.id"), nullable=False, index=True
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id"), nullable=False, index=True
    )
    last_active_date = db.Column(db.DateTime, nullable=False)
    total_usage_hours = db.Column(db.Float, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # -- Relationships -----------------------------------------------------
    license = db.relationship("License", back_populates="usage_records")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "license_id": self.license_id,
            "user_id": self.user_id,
            "last_active_date": self.last_active_date.isoformat(),
            "total_usage_hours": self.total_usage_hours,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<LicenseUsage license={self.license_id} user={self.user_id}>"
