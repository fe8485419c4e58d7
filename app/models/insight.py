"""
Insight model — optimization findings produced by the generators.

Lifecycle::

    new ──► acknowledged ──► resolved
     │
     └──► dismissed

Resolved and dismissed are terminal; nothing moves an insight back.
"""

from app.extensions import db
from app.utils import utcnow

INSIGHT_TYPES = (
    "unused_license",
    "duplicate_license",
    "cost_optimization",
    "renewal_risk",
    "overusage",
)
SEVERITIES = ("low", "medium", "high", "critical")
INSIGHT_STATUSES = ("new", "acknowledged", "resolved", "dismissed")

# Allowed forward moves; anything absent is rejected.
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "new": frozenset({"acknowledged", "dismissed"}),
    "acknowledged": frozenset({"resolved"}),
    "resolved": frozenset(),
    "dismissed": frozenset(),
}

# Statuses that still count as an open finding for duplicate checks.
OPEN_STATUSES = ("new", "acknowledged")


class Insight(db.Model):
    """
    A finding tied to an organization and optionally a license/department.

    ``license_id`` is a soft reference with no foreign key: deleting a
    license leaves its insights in place, pointing at a missing row.
    """

    __tablename__ = "insight"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organization.id"),
        nullable=False,
        index=True,
    )
    license_id = db.Column(db.Integer, nullable=True, index=True)
    department_id = db.Column(
        db.Integer, db.ForeignKey("department.id"), nullable=True, index=True
    )
    insight_type = db.Column(db.String(30), nullable=False)
    severity = db.Column(db.String(10), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=False)
    potential_savings = db.Column(db.Numeric(14, 2), nullable=True)
    confidence = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="new", index=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in STATUS_TRANSITIONS.get(self.status, frozenset())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "license_id": self.license_id,
            "department_id": self.department_id,
            "type": self.insight_type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "potential_savings": (
                float(self.potential_savings)
                if self.potential_savings is not None
                else None
            ),
            "confidence": self.confidence,
            "status": self.status,
            "metadata": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Insight {self.id} {self.insight_type} status={self.status}>"
