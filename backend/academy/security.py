"""Multi-tenant scoping helpers.

Rows of another organization are indistinguishable from missing rows: the
tenant is part of every lookup filter, never checked after the fact.
"""

from __future__ import annotations

from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from .domain_errors import DomainError
from .models import EquipmentAudit, EquipmentCount

T = TypeVar("T")


def require_org_entity(
    db: Session,
    model: type[T],
    *,
    entity_id: UUID,
    org_id: UUID,
    code: str,
    not_found: str,
) -> T:
    """Load an entity by (id, org_id) or raise a 404 DomainError."""
    entity = db.query(model).filter(  # type: ignore[arg-type]
        getattr(model, "id") == entity_id,  # noqa: B009
        getattr(model, "org_id") == org_id,  # noqa: B009
    ).first()
    if not entity:
        raise DomainError(code=code, http_status=404, message=not_found)
    return entity


def require_org_count(
    db: Session,
    *,
    count_id: UUID,
    org_id: UUID,
    audit_id: UUID | None = None,
) -> EquipmentCount:
    """Load a count line whose audit belongs to ``org_id`` (and optionally to ``audit_id``)."""
    query = (
        db.query(EquipmentCount)
        .join(EquipmentAudit, EquipmentCount.audit_id == EquipmentAudit.id)
        .filter(
            EquipmentCount.id == count_id,
            EquipmentAudit.org_id == org_id,
        )
    )
    if audit_id is not None:
        query = query.filter(EquipmentCount.audit_id == audit_id)
    count = query.first()
    if not count:
        raise DomainError(
            code="EQUIPMENT_COUNT_NOT_FOUND",
            http_status=404,
            message="Count not found",
        )
    return count
