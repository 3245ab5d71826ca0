"""Audit trail writes and reads. Writes are staged in the caller's transaction."""
from typing import Any

from sqlalchemy.orm import Session

from farmstand.models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    action: str,
    entity: str,
    entity_id: Any,
    *,
    actor: str = "system",
    old_values: dict | None = None,
    new_values: dict | None = None,
    meta: dict | None = None,
) -> None:
    """Add an audit row; the caller commits it together with the change it describes."""
    db.add(AuditLog(
        actor=actor,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_values=old_values,
        new_values=new_values,
        meta=meta,
    ))


def list_audit_events(
    db: Session,
    *,
    limit: int = 50,
    offset: int = 0,
    entity: str | None = None,
    action: str | None = None,
) -> dict[str, Any]:
    q = db.query(AuditLog)
    if entity:
        q = q.filter(AuditLog.entity == entity)
    if action:
        q = q.filter(AuditLog.action == action)
    total = q.count()
    rows = q.order_by(AuditLog.ts.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()
    return {
        "logs": [
            {
                "id": r.id,
                "ts": r.ts.isoformat() if r.ts else None,
                "actor": r.actor,
                "action": r.action,
                "entity": r.entity,
                "entity_id": r.entity_id,
                "old_values": r.old_values,
                "new_values": r.new_values,
                "meta": r.meta,
            }
            for r in rows
        ],
        "total": total,
        "limit": limit,
        "offset": offset,
    }
