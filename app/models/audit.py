"""
Audit logging and generator run tracking.

``AuditLog`` records user-driven data changes.
``GeneratorRun`` tracks each insight/score/impact batch computation.
"""

from app.extensions import db
from app.utils import utcnow

RUN_TYPES = (
    "unused_license_insights",
    "gamification_scores",
    "environmental_impact",
)


class AuditLog(db.Model):
    """
    Records data changes in the application.

    ``action_type`` values: CREATE, UPDATE, DELETE, LOGIN, LOGOUT,
    GENERATE.

    JSON conventions for ``previous_value`` / ``new_value``:
      - CREATE: previous_value is NULL, new_value has full record.
      - UPDATE: both contain only the changed fields.
      - DELETE: previous_value has full record, new_value is NULL.
    """

    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id"), nullable=True, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    action_type = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(100), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    previous_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<AuditLog {self.action_type} {self.entity_type}"
            f":{self.entity_id}>"
        )


class GeneratorRun(db.Model):
    """
    One invocation of a derived-metrics generator.

    ``status`` values: started, completed, failed.  A completed run can
    still carry ``records_errors`` > 0 when individual items failed.
    """

    __tablename__ = "generator_run"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id"), nullable=False, index=True
    )
    triggered_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    run_type = db.Column(db.String(50), nullable=False)
    period = db.Column(db.String(10), nullable=True)
    records_processed = db.Column(db.Integer, nullable=False, default=0)
    records_created = db.Column(db.Integer, nullable=False, default=0)
    records_updated = db.Column(db.Integer, nullable=False, default=0)
    records_skipped = db.Column(db.Integer, nullable=False, default=0)
    records_errors = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False)
    error_message = db.Column(db.Text, nullable=True)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "run_type": self.run_type,
            "period": self.period,
            "status": self.status,
            "records_processed": self.records_processed,
            "records_created": self.records_created,
            "records_updated": self.records_updated,
            "records_skipped": self.records_skipped,
            "records_errors": self.records_errors,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }

    def __repr__(self) -> str:
        return f"<GeneratorRun {self.run_type} status={self.status}>"
