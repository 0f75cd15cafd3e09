from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from thesisguide.models.activity_log import ActivityLog


def log_activity(
    db: Session,
    *,
    actor_id: str | None,
    action: str,
    entity_type: str = "guidance_session",
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)


def list_activity(db: Session, *, entity_id: str, entity_type: str = "guidance_session") -> list[ActivityLog]:
    query = (
        select(ActivityLog)
        .where(ActivityLog.entity_type == entity_type, ActivityLog.entity_id == entity_id)
        .order_by(ActivityLog.created_at.asc())
    )
    return list(db.execute(query).scalars())
