"""
Gamification models — department scores and awarded badges.

``GamificationScore`` is upserted per (organization, department,
period, period_type); ``Badge`` is append-only, one row per award.
"""

from app.extensions import db
from app.utils import utcnow

PERIOD_TYPES = ("monthly", "quarterly", "yearly")


class GamificationScore(db.Model):
    """
    One department's efficiency score for one period.

    ``rank`` is recomputed across all departments on every scoring run.
    ``previous_rank`` is carried from the department's most recent
    earlier score of the same period type.  ``badges`` holds the badge
    type strings awarded in the latest run for this key.
    """

    __tablename__ = "gamification_score"
    __table_args__ = (
        db.UniqueConstraint(
            "organization_id",
            "department_id",
            "period",
            "period_type",
            name="UQ_gamification_score_key",
        ),
        db.Index(
            "IX_gamification_score_org_period", "organization_id", "period"
        ),
        db.Index(
            "IX_gamification_score_org_type", "organization_id", "period_type"
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id"), nullable=False
    )
    department_id = db.Column(
        db.Integer, db.ForeignKey("department.id"), nullable=False, index=True
    )
    period = db.Column(db.String(10), nullable=False)
    period_type = db.Column(db.String(10), nullable=False)
    efficiency_score = db.Column(db.Integer, nullable=False, default=0)
    utilization_rate = db.Column(db.Integer, nullable=False, default=0)
    budget_adherence = db.Column(db.Integer, nullable=False, default=0)
    total_spend = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    budget_allocated = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    licenses_managed = db.Column(db.Integer, nullable=False, default=0)
    active_licenses = db.Column(db.Integer, nullable=False, default=0)
    potential_savings = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    actual_savings = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    rank = db.Column(db.Integer, nullable=True)
    previous_rank = db.Column(db.Integer, nullable=True)
    badges = db.Column(db.JSON, nullable=False, default=list)
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
            "period_type": self.period_type,
            "efficiency_score": self.efficiency_score,
            "utilization_rate": self.utilization_rate,
            "budget_adherence": self.budget_adherence,
            "total_spend": float(self.total_spend or 0),
            "budget_allocated": float(self.budget_allocated or 0),
            "licenses_managed": self.licenses_managed,
            "active_licenses": self.active_licenses,
            "potential_savings": float(self.potential_savings or 0),
            "actual_savings": float(self.actual_savings or 0),
            "rank": self.rank,
            "previous_rank": self.previous_rank,
            "badges": list(self.badges or []),
        }

    def __repr__(self) -> str:
        return (
            f"<GamificationScore dept={self.department_id} "
            f"{self.period_type}:{self.period} score={self.efficiency_score}>"
        )


class Badge(db.Model):
    """
    An achievement awarded to a department in a given period.

    ``criteria`` snapshots what was measured:
    ``{"threshold": ..., "actualValue": ..., "description": ...}``.
    """

    __tablename__ = "badge"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id"), nullable=False, index=True
    )
    department_id = db.Column(
        db.Integer, db.ForeignKey("department.id"), nullable=False, index=True
    )
    badge_type = db.Column(db.String(30), nullable=False, index=True)
    earned_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    period = db.Column(db.String(10), nullable=False)
    criteria = db.Column(db.JSON, nullable=False)

    # -- Relationships -----------------------------------------------------
    department = db.relationship("Department")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "department_id": self.department_id,
            "badge_type": self.badge_type,
            "earned_date": self.earned_date.isoformat(),
            "period": self.period,
            "criteria": self.criteria,
        }

    def __repr__(self) -> str:
        return f"<Badge {self.badge_type} dept={self.department_id} {self.period}>"
