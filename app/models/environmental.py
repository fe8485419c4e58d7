"""
Environmental impact snapshots.

One row per (organization, period) with ``department_id`` NULL for
the organization-wide figure, plus one row per (organization,
department, period).  Periods are always monthly (``YYYY-MM``).
"""

from app.extensions import db
from app.utils import utcnow


class EnvironmentalImpact(db.Model):
    """
    Estimated savings from unused seats for one month.

    ``cumulative_co2`` on organization rows is a true running total.
    On department rows it equals the month's own ``co2_saved_kg``.
    """

    __tablename__ = "environmental_impact"
    __table_args__ = (
        db.UniqueConstraint(
            "organization_id",
            "department_id",
            "period",
            name="UQ_environmental_impact_key",
        ),
        db.Index(
            "IX_environmental_impact_org_period", "organization_id", "period"
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id"), nullable=False
    )
    department_id = db.Column(
        db.Integer, db.ForeignKey("department.id"), nullable=True, index=True
    )
    period = db.Column(db.String(10), nullable=False)
    unused_licenses = db.Column(db.Integer, nullable=False, default=0)
    co2_saved_kg = db.Column(db.Float, nullable=False, default=0)
    energy_saved_kwh = db.Column(db.Float, nullable=False, default=0)
    water_saved_liters = db.Column(db.Float, nullable=False, default=0)
    tree_equivalent = db.Column(db.Float, nullable=False, default=0)
    car_miles_equivalent = db.Column(db.Float, nullable=False, default=0)
    cumulative_co2 = db.Column(db.Float, nullable=False, default=0)
    optimization_actions = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    department = db.relationship("Department")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "department_id": self.department_id,
            "period": self.period,
            "unused_licenses": self.unused_licenses,
            "co2_saved_kg": self.co2_saved_kg,
            "energy_saved_kwh": self.energy_saved_kwh,
            "water_saved_liters": self.water_saved_liters,
            "tree_equivalent": self.tree_equivalent,
            "car_miles_equivalent": self.car_miles_equivalent,
            "cumulative_co2": self.cumulative_co2,
            "optimization_actions": self.optimization_actions,
        }

    def __repr__(self) -> str:
        scope = f"dept={self.department_id}" if self.department_id else "org"
        return f"<EnvironmentalImpact {scope} {self.period} co2={self.co2_saved_kg}>"
