"""Activity log endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..config import settings
from ..database import get_db
from ..models import AuditEvent, User
from ..schemas import AuditEventResponse

router = APIRouter(prefix="/audit-events", tags=["audit"])


@router.get("", response_model=list[AuditEventResponse])
def get_audit_events(
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    limit: int = Query(200, ge=1, le=settings.ACTIVITY_LOG_MAX_LIMIT),
    current_user: User = Depends(PermissionChecker("canViewAudit")),
    db: Session = Depends(get_db),
):
    """Recent activity of the organization, optionally scoped to one entity."""
    query = db.query(AuditEvent).filter(AuditEvent.org_id == current_user.org_id)

    if entity_type:
        query = query.filter(AuditEvent.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditEvent.entity_id == entity_id)

    return (
        query.order_by(AuditEvent.created_at.desc())
        .limit(limit)
        .all()
    )
