"""
Audit trail for timekeeping events.

Writes are best-effort: a failed insert is rolled back and logged, and the clock-in,
clock-out or sweep that produced it still succeeds.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> Optional[AuditLog]:
    """
    Record ``action`` on ``entity_type``/``entity_id``. ``actor_id`` is None for the
    sweeper. Commits its own transaction; returns None when the write failed.
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=None if meta is None else sanitize_for_json(meta),
        created_at=created_at or now_utc(),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Audit write failed: action=%s entity=%s/%s", action, entity_type, entity_id, exc_info=True)
        return None
    return entry


def list_audit_entries(
    db: Session,
    entity_type: str,
    entity_id: int,
    action: Optional[str] = None,
) -> List[AuditLog]:
    """Audit entries for one entity, oldest first."""
    query = db.query(AuditLog).filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at, AuditLog.id).all()
