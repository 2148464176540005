"""Count-line use-cases: listing, recording, skipping and verifying counted items."""
from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from ..database import commit_or_rollback
from ..domain_errors import DomainError, conflict
from ..enums import CountStatus, EquipmentCondition
from ..models import Equipment, EquipmentAudit, EquipmentCount, User
from ..schemas import CountBatchItem
from ..security import require_org_count
from ..services.activity import record_activity
from ..services.audit_rules import (
    TransitionError,
    append_note,
    ensure_audit_transition,
    ensure_count_transition,
    now_utc,
)
from ..services.audit_summary import has_discrepancy
from .equipment_audits import get_audit_or_404

logger = logging.getLogger(__name__)


def guard_count(count: EquipmentCount, action: str) -> CountStatus:
    try:
        return ensure_count_transition(current_status=count.status, action=action)
    except TransitionError as error:
        raise conflict(error.code, str(error), {"status": count.status, "action": action}) from error


def ensure_audit_in_progress(audit: EquipmentAudit) -> None:
    try:
        ensure_audit_transition(current_status=audit.status, action="count")
    except TransitionError as error:
        raise conflict(error.code, str(error), {"status": audit.status}) from error


def count_label(count: EquipmentCount) -> str:
    equipment = count.equipment
    return equipment.name if equipment is not None else str(count.equipment_id)


def _matches_search(count: EquipmentCount, term: str) -> bool:
    equipment = count.equipment
    if equipment is None:
        return False
    haystack = (equipment.name, equipment.brand, equipment.model)
    return any(term in value.lower() for value in haystack if value)


def list_counts_use_case(
    *,
    db: Session,
    current_user: User,
    audit_id: UUID,
    status: CountStatus | None = None,
    has_discrepancy_only: bool | None = None,
    search: str | None = None,
) -> list[EquipmentCount]:
    """Lines of one audit with equipment and counter joined.

    ``has_discrepancy_only`` True keeps lines with a non-zero discrepancy,
    False keeps the rest. ``search`` matches equipment name, brand or model,
    case-insensitively.
    """
    get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)

    query = (
        db.query(EquipmentCount)
        .options(
            joinedload(EquipmentCount.equipment).joinedload(Equipment.location),
            joinedload(EquipmentCount.counted_by_user),
            joinedload(EquipmentCount.adjusted_by_user),
        )
        .filter(EquipmentCount.audit_id == audit_id)
    )
    if status is not None:
        query = query.filter(EquipmentCount.status == getattr(status, "value", status))

    counts: Iterable[EquipmentCount] = query.order_by(
        EquipmentCount.created_at.desc(), EquipmentCount.id
    ).all()

    if has_discrepancy_only is not None:
        counts = [c for c in counts if has_discrepancy(c) == has_discrepancy_only]

    term = (search or "").strip().lower()
    if term:
        counts = [c for c in counts if _matches_search(c, term)]

    return list(counts)


def get_count_use_case(*, db: Session, current_user: User, count_id: UUID) -> EquipmentCount:
    count = (
        db.query(EquipmentCount)
        .options(
            joinedload(EquipmentCount.equipment).joinedload(Equipment.location),
            joinedload(EquipmentCount.audit),
            joinedload(EquipmentCount.counted_by_user),
            joinedload(EquipmentCount.adjusted_by_user),
        )
        .join(EquipmentAudit, EquipmentCount.audit_id == EquipmentAudit.id)
        .filter(
            EquipmentCount.id == count_id,
            EquipmentAudit.org_id == current_user.org_id,
        )
        .first()
    )
    if not count:
        raise DomainError(
            code="EQUIPMENT_COUNT_NOT_FOUND",
            http_status=404,
            message="Count not found",
        )
    return count


def _apply_record(
    count: EquipmentCount,
    *,
    actor: User,
    counted_quantity: int,
    observed_condition: EquipmentCondition | str | None,
    notes: str | None,
) -> dict[str, Any]:
    ensure_audit_in_progress(count.audit)
    next_status = guard_count(count, "record")

    previous = count.counted_quantity
    count.counted_quantity = int(counted_quantity)
    count.discrepancy = count.counted_quantity - int(count.expected_quantity)
    count.observed_condition = getattr(observed_condition, "value", observed_condition)
    count.status = next_status.value
    count.notes = notes
    count.counted_by = actor.id
    count.counted_at = now_utc()
    return {
        "auditId": str(count.audit_id),
        "expected": count.expected_quantity,
        "counted": count.counted_quantity,
        "previousCounted": previous,
        "discrepancy": count.discrepancy,
    }


def record_count_use_case(
    *,
    db: Session,
    current_user: User,
    count_id: UUID,
    counted_quantity: int,
    observed_condition: EquipmentCondition | str | None = None,
    notes: str | None = None,
) -> EquipmentCount:
    """Record (or re-record) the physical count of one line while its audit is in progress."""
    count = require_org_count(db, count_id=count_id, org_id=current_user.org_id)
    details = _apply_record(
        count,
        actor=current_user,
        counted_quantity=counted_quantity,
        observed_condition=observed_condition,
        notes=notes,
    )
    record_activity(
        db,
        current_user=current_user,
        action="equipment_count_recorded",
        entity_type="equipment_count",
        entity_id=count.id,
        entity_name=count_label(count),
        details=details,
    )
    commit_or_rollback(db, operation="equipment_count.record", entity_id=count.id)
    db.refresh(count)
    logger.info(
        "equipment_count.recorded count=%s audit=%s discrepancy=%s",
        count.id,
        count.audit_id,
        count.discrepancy,
    )
    return count


def batch_record_counts_use_case(
    *,
    db: Session,
    current_user: User,
    items: list[CountBatchItem],
) -> dict[str, Any]:
    """Best-effort batch: every line is committed on its own, failures are reported, not raised."""
    succeeded: list[UUID] = []
    skipped: list[dict[str, Any]] = []

    for item in items:
        try:
            count = require_org_count(db, count_id=item.id, org_id=current_user.org_id)
            details = _apply_record(
                count,
                actor=current_user,
                counted_quantity=item.counted_quantity,
                observed_condition=item.observed_condition,
                notes=item.notes,
            )
        except DomainError as error:
            db.rollback()
            skipped.append({"id": item.id, "reason": error.code, "message": error.message})
            continue

        record_activity(
            db,
            current_user=current_user,
            action="equipment_count_recorded",
            entity_type="equipment_count",
            entity_id=count.id,
            entity_name=count_label(count),
            details={**details, "batch": True},
        )
        commit_or_rollback(db, operation="equipment_count.batch_record", entity_id=count.id)
        succeeded.append(count.id)

    if skipped:
        logger.warning(
            "equipment_count.batch_partial org=%s updated=%s skipped=%s",
            current_user.org_id,
            len(succeeded),
            len(skipped),
        )
    return {"updated": len(succeeded), "succeeded": succeeded, "skipped": skipped}


def skip_count_use_case(
    *,
    db: Session,
    current_user: User,
    count_id: UUID,
    reason: str | None = None,
) -> EquipmentCount:
    count = require_org_count(db, count_id=count_id, org_id=current_user.org_id)
    ensure_audit_in_progress(count.audit)
    next_status = guard_count(count, "skip")

    count.status = next_status.value
    count.notes = append_note(count.notes, "Skipped", reason)
    count.counted_by = current_user.id
    count.counted_at = now_utc()

    record_activity(
        db,
        current_user=current_user,
        action="equipment_count_skipped",
        entity_type="equipment_count",
        entity_id=count.id,
        entity_name=count_label(count),
        details={"auditId": str(count.audit_id), "reason": reason},
    )
    commit_or_rollback(db, operation="equipment_count.skip", entity_id=count.id)
    db.refresh(count)
    return count


def verify_count_use_case(
    *,
    db: Session,
    current_user: User,
    count_id: UUID,
    notes: str | None = None,
) -> EquipmentCount:
    """Reviewer confirmation of a counted line. Not gated on the audit status."""
    count = require_org_count(db, count_id=count_id, org_id=current_user.org_id)
    next_status = guard_count(count, "verify")

    count.status = next_status.value
    count.notes = append_note(count.notes, "Verified", notes)

    record_activity(
        db,
        current_user=current_user,
        action="equipment_count_verified",
        entity_type="equipment_count",
        entity_id=count.id,
        entity_name=count_label(count),
        details={"auditId": str(count.audit_id), "discrepancy": count.discrepancy},
    )
    commit_or_rollback(db, operation="equipment_count.verify", entity_id=count.id)
    db.refresh(count)
    return count
