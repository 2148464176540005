"""Activity log rows written alongside audit workflow mutations."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..models import AuditEvent, User


def audit_label(audit: Any) -> str:
    if audit.title:
        return audit.title
    scheduled = audit.scheduled_date.date().isoformat() if audit.scheduled_date else "unscheduled"
    return f"audit:{scheduled}"


def record_activity(
    db: Session,
    *,
    current_user: User,
    action: str,
    entity_type: str,
    entity_id,
    entity_name: str | None,
    details: dict[str, Any] | None = None,
) -> AuditEvent:
    event = AuditEvent(
        org_id=current_user.org_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        user_id=current_user.id,
        user_name=current_user.initials,
        details=details or {},
    )
    db.add(event)
    return event
