"""Audit logging service: records all state-changing operations.

Entries are immutable and are staged inside the caller's unit of work, so
an audit row exists exactly when the change it describes was committed.

Usage in service layer:
    audit_service.log(db, user_id="abc", action="move", resource_type="folder",
                      resource_id="f-123", details={"to": "f-456"})
"""

import json
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.user import AuditLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> AuditLog:
    """Stage an audit log entry in the current transaction."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=json.dumps(details, default=str) if details else None,
    )
    db.add(entry)
    logger.debug("Audit %s %s %s", action, resource_type, resource_id)
    return entry


def get_recent(db: Session, limit: int = 100) -> list[AuditLog]:
    """Get the most recent audit log entries."""
    return (
        db.query(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def get_by_user(db: Session, user_id: str, limit: int = 100) -> list[AuditLog]:
    """Get audit log entries for a specific user."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.user_id == user_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def get_by_resource(db: Session, resource_type: str, resource_id: str, limit: int = 100) -> list[AuditLog]:
    """Get audit log entries for a specific resource."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource_type == resource_type, AuditLog.resource_id == resource_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
