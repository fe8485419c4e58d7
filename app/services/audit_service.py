"""
Audit service — records data changes and generator runs.

Every CREATE, UPDATE and DELETE made through the service layer passes
through ``log_change`` so a complete audit trail is kept.  Generators
bracket each batch with ``start_generator_run`` /
``complete_generator_run`` (or ``fail_generator_run``) so partial
failures stay visible after the request returns.
"""

import json
import logging
from datetime import datetime
from typing import Any

from flask import request
from sqlalchemy import desc

from app.extensions import db
from app.models.audit import AuditLog, GeneratorRun
from app.utils import utcnow

logger = logging.getLogger(__name__)


# -- Write audit entries ---------------------------------------------------


def log_change(
    user_id: int | None,
    action_type: str,
    entity_type: str,
    entity_id: int | None,
    previous_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
    organization_id: int | None = None,
) -> AuditLog:
    """
    Record a data change in the audit log.

    Args:
        user_id:         ID of the user who made the change, or None for
                         system actions (e.g., CLI-triggered generators).
        action_type:     One of CREATE, UPDATE, DELETE, LOGIN, LOGOUT,
                         GENERATE.
        entity_type:     Table name of the affected entity (e.g. 'insight').
        entity_id:       Primary key of the affected record.
        previous_value:  Dict of the record state before the change.
        new_value:       Dict of the record state after the change.
        organization_id: Tenant the change belongs to, when there is one.

    Returns:
        The newly created AuditLog record (flushed, not committed).
    """
    ip_address = None
    user_agent = None
    try:
        ip_address = request.remote_addr
        user_agent = str(request.user_agent)[:500]
    except RuntimeError:
        # Outside of a request context (CLI or tests).
        pass

    entry = AuditLog(
        organization_id=organization_id,
        user_id=user_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        previous_value=_dump(previous_value),
        new_value=_dump(new_value),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info(
        "Audit: %s %s:%s by user %s",
        action_type,
        entity_type,
        entity_id,
        user_id,
    )
    return entry


def log_login(user_id: int) -> AuditLog:
    """Record a successful user login."""
    return log_change(
        user_id=user_id,
        action_type="LOGIN",
        entity_type="user",
        entity_id=user_id,
    )


def log_logout(user_id: int) -> AuditLog:
    """Record a user logout."""
    return log_change(
        user_id=user_id,
        action_type="LOGOUT",
        entity_type="user",
        entity_id=user_id,
    )


def _dump(value: dict[str, Any] | None) -> str | None:
    # Decimals and datetimes fall back to their string form.
    return json.dumps(value, default=str) if value else None


# -- Generator run log -----------------------------------------------------


def start_generator_run(
    organization_id: int,
    run_type: str,
    period: str | None = None,
    user_id: int | None = None,
) -> GeneratorRun:
    """
    Create a generator run entry with 'started' status.

    The row is committed immediately so that a later rollback of the
    batch still leaves a record to mark as failed.
    """
    run = GeneratorRun(
        organization_id=organization_id,
        triggered_by=user_id,
        run_type=run_type,
        period=period,
        status="started",
        started_at=utcnow(),
    )
    db.session.add(run)
    db.session.commit()
    return run


def complete_generator_run(run: GeneratorRun, stats: dict) -> None:
    """
    Mark a run as completed with its counters.

    Flush only; the generator commits its batch and this row together.
    """
    run.status = "completed"
    run.completed_at = utcnow()
    run.records_processed = stats["processed"]
    run.records_created = stats["created"]
    run.records_updated = stats["updated"]
    run.records_skipped = stats["skipped"]
    run.records_errors = stats["errors"]
    db.session.flush()


def fail_generator_run(run: GeneratorRun, error_message: str) -> None:
    """
    Mark a run as failed.

    Called after the batch was rolled back; the run row survived that
    rollback because ``start_generator_run`` committed it.
    """
    run.status = "failed"
    run.error_message = error_message[:4000]
    run.completed_at = utcnow()
    db.session.commit()


def new_stats() -> dict:
    """Return a fresh counters dict for generator tracking."""
    return {
        "processed": 0,
        "created": 0,
        "updated": 0,
        "skipped": 0,
        "errors": 0,
    }


# -- Query logs ------------------------------------------------------------


def get_audit_logs(
    organization_id: int,
    page: int = 1,
    per_page: int = 50,
    action_type: str | None = None,
    entity_type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
):
    """
    Query an organization's audit logs with optional filters.

    Returns:
        A Flask-SQLAlchemy pagination object, newest first.
    """
    query = AuditLog.query.filter(
        AuditLog.organization_id == organization_id
    ).order_by(desc(AuditLog.created_at), desc(AuditLog.id))

    if action_type:
        query = query.filter(AuditLog.action_type == action_type)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if start_date:
        query = query.filter(AuditLog.created_at >= start_date)
    if end_date:
        query = query.filter(AuditLog.created_at <= end_date)

    return query.paginate(page=page, per_page=per_page, error_out=False)


def get_generator_runs(
    organization_id: int,
    run_type: str | None = None,
    limit: int = 20,
) -> list[GeneratorRun]:
    """Return the most recent generator runs for an organization."""
    query = GeneratorRun.query.filter(
        GeneratorRun.organization_id == organization_id
    )
    if run_type:
        query = query.filter(GeneratorRun.run_type == run_type)
    return (
        query.order_by(desc(GeneratorRun.started_at), desc(GeneratorRun.id))
        .limit(limit)
        .all()
    )
