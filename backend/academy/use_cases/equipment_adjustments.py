"""Discrepancy adjustment use-cases: approve, reject and bulk approve count lines."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ..database import commit_or_rollback
from ..domain_errors import DomainError, conflict, not_found
from ..models import Equipment, EquipmentCount, User
from ..security import require_org_count
from ..services.activity import record_activity
from ..services.adjustment_rules import AdjustmentPlan, apply_adjustment, ensure_rejectable
from ..services.audit_rules import TransitionError, now_utc
from .equipment_audits import get_audit_or_404
from .equipment_counts import count_label

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Adjustment rejected"


def lock_equipment(*, db: Session, equipment_id: UUID) -> Equipment:
    """Catalog row of a count line, locked until the surrounding transaction ends."""
    equipment = (
        db.query(Equipment)
        .filter(Equipment.id == equipment_id)
        .with_for_update()
        .first()
    )
    if not equipment:
        raise not_found("EQUIPMENT_NOT_FOUND", "Equipment not found")
    return equipment


def _approve_line(
    *,
    db: Session,
    current_user: User,
    count: EquipmentCount,
    reason: str,
) -> AdjustmentPlan:
    equipment = lock_equipment(db=db, equipment_id=count.equipment_id)
    try:
        plan = apply_adjustment(count=count, equipment=equipment, reason=reason, actor_id=current_user.id)
    except TransitionError as error:
        raise conflict(error.code, str(error), {"status": count.status}) from error

    record_activity(
        db,
        current_user=current_user,
        action="equipment_adjustment_approved",
        entity_type="equipment_count",
        entity_id=count.id,
        entity_name=equipment.name,
        details={
            "auditId": str(count.audit_id),
            "equipmentId": str(equipment.id),
            "reason": reason,
            **plan.as_details(),
        },
    )
    return plan


def approve_adjustment_use_case(
    *,
    db: Session,
    current_user: User,
    count_id: UUID,
    reason: str,
) -> EquipmentCount:
    """Write the counted quantity back to the catalog and close the line as adjusted."""
    count = require_org_count(db, count_id=count_id, org_id=current_user.org_id)
    try:
        plan = _approve_line(db=db, current_user=current_user, count=count, reason=reason)
    except DomainError:
        db.rollback()
        raise

    commit_or_rollback(db, operation="equipment_adjustment.approve", entity_id=count.id)
    db.refresh(count)
    logger.info(
        "equipment_adjustment.approved count=%s equipment=%s delta=%s total=%s",
        count.id,
        count.equipment_id,
        plan.delta,
        plan.total_after,
    )
    return count


def reject_adjustment_use_case(
    *,
    db: Session,
    current_user: User,
    count_id: UUID,
    reason: str | None = None,
) -> EquipmentCount:
    """Keep the catalog quantity; the line returns to verified with the rejection recorded."""
    count = require_org_count(db, count_id=count_id, org_id=current_user.org_id)
    try:
        next_status = ensure_rejectable(count)
    except TransitionError as error:
        raise conflict(error.code, str(error), {"status": count.status, "action": "reject"}) from error

    count.status = next_status.value
    count.adjustment_approved = False
    count.adjustment_reason = f"Rejected: {reason}" if reason else DEFAULT_REJECTION_REASON
    count.adjusted_by = current_user.id
    count.adjusted_at = now_utc()

    record_activity(
        db,
        current_user=current_user,
        action="equipment_adjustment_rejected",
        entity_type="equipment_count",
        entity_id=count.id,
        entity_name=count_label(count),
        details={
            "auditId": str(count.audit_id),
            "discrepancy": count.discrepancy,
            "reason": count.adjustment_reason,
        },
    )
    commit_or_rollback(db, operation="equipment_adjustment.reject", entity_id=count.id)
    db.refresh(count)
    return count


def bulk_approve_adjustments_use_case(
    *,
    db: Session,
    current_user: User,
    audit_id: UUID,
    count_ids: list[UUID],
    reason: str,
) -> dict[str, Any]:
    """Approve many lines of one audit; lines that cannot be adjusted are reported and skipped."""
    get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)

    succeeded: list[UUID] = []
    skipped: list[dict[str, Any]] = []
    seen: set[UUID] = set()

    for count_id in count_ids:
        if count_id in seen:
            continue
        seen.add(count_id)
        try:
            count = require_org_count(db, count_id=count_id, org_id=current_user.org_id, audit_id=audit_id)
            _approve_line(db=db, current_user=current_user, count=count, reason=reason)
        except DomainError as error:
            db.rollback()
            skipped.append({"id": count_id, "reason": error.code, "message": error.message})
            continue

        commit_or_rollback(db, operation="equipment_adjustment.bulk_approve", entity_id=count_id)
        succeeded.append(count_id)

    logger.info(
        "equipment_adjustment.bulk_approved audit=%s approved=%s skipped=%s",
        audit_id,
        len(succeeded),
        len(skipped),
    )
    return {"approved": len(succeeded), "succeeded": succeeded, "skipped": skipped}
