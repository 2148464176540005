"""Equipment audit lifecycle use-cases: schedule, snapshot, complete, cancel, summarize."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.orm import Session, joinedload, selectinload

from ..database import commit_or_rollback
from ..domain_errors import DomainError, bad_request, conflict, not_found
from ..enums import AuditStatus, AuditType, CountStatus
from ..models import Equipment, EquipmentAudit, EquipmentCount, Location, User
from ..schemas import EquipmentAuditCreate, EquipmentAuditUpdate
from ..security import require_org_entity
from ..services.activity import audit_label, record_activity
from ..services.audit_rules import TransitionError, append_note, ensure_audit_transition, now_utc
from ..services.audit_summary import completion_counters, summarize_counts

logger = logging.getLogger(__name__)

# Fields that may be cleared with an explicit null on update.
_CLEARABLE_FIELDS: frozenset[str] = frozenset({"category_filter", "location_id"})


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def get_audit_or_404(*, db: Session, audit_id: UUID, org_id: UUID) -> EquipmentAudit:
    return require_org_entity(
        db,
        EquipmentAudit,
        entity_id=audit_id,
        org_id=org_id,
        code="EQUIPMENT_AUDIT_NOT_FOUND",
        not_found="Audit not found",
    )


def guard_audit(audit: EquipmentAudit, action: str) -> AuditStatus:
    try:
        return ensure_audit_transition(current_status=audit.status, action=action)
    except TransitionError as error:
        raise conflict(error.code, str(error), {"status": audit.status, "action": action}) from error


def _ensure_location_in_org(*, db: Session, location_id: UUID, org_id: UUID) -> None:
    require_org_entity(
        db,
        Location,
        entity_id=location_id,
        org_id=org_id,
        code="LOCATION_NOT_FOUND",
        not_found="Location not found",
    )


def load_audit_counts(*, db: Session, audit_id: UUID) -> list[EquipmentCount]:
    return db.query(EquipmentCount).filter(EquipmentCount.audit_id == audit_id).all()


def list_audits_use_case(
    *,
    db: Session,
    current_user: User,
    status: AuditStatus | None = None,
    audit_type: AuditType | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[EquipmentAudit]:
    """Audits of the caller's organization, newest scheduled first."""
    query = (
        db.query(EquipmentAudit)
        .options(
            joinedload(EquipmentAudit.location),
            joinedload(EquipmentAudit.created_by_user),
            joinedload(EquipmentAudit.performed_by_user),
        )
        .filter(EquipmentAudit.org_id == current_user.org_id)
    )
    if status is not None:
        query = query.filter(EquipmentAudit.status == _enum_value(status))
    if audit_type is not None:
        query = query.filter(EquipmentAudit.audit_type == _enum_value(audit_type))
    if from_date is not None:
        query = query.filter(EquipmentAudit.scheduled_date >= from_date)
    if to_date is not None:
        query = query.filter(EquipmentAudit.scheduled_date <= to_date)

    return (
        query.order_by(EquipmentAudit.scheduled_date.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_audit_use_case(*, db: Session, current_user: User, audit_id: UUID) -> EquipmentAudit:
    """Audit with its full count list, equipment and actors joined."""
    audit = (
        db.query(EquipmentAudit)
        .options(
            joinedload(EquipmentAudit.location),
            joinedload(EquipmentAudit.created_by_user),
            joinedload(EquipmentAudit.performed_by_user),
            joinedload(EquipmentAudit.approved_by_user),
            selectinload(EquipmentAudit.counts).joinedload(EquipmentCount.equipment),
            selectinload(EquipmentAudit.counts).joinedload(EquipmentCount.counted_by_user),
        )
        .filter(
            EquipmentAudit.id == audit_id,
            EquipmentAudit.org_id == current_user.org_id,
        )
        .first()
    )
    if not audit:
        raise not_found("EQUIPMENT_AUDIT_NOT_FOUND", "Audit not found")
    return audit


def create_audit_use_case(
    *,
    db: Session,
    current_user: User,
    payload: EquipmentAuditCreate,
) -> EquipmentAudit:
    if payload.location_id is not None:
        _ensure_location_in_org(db=db, location_id=payload.location_id, org_id=current_user.org_id)

    audit = EquipmentAudit(
        org_id=current_user.org_id,
        title=payload.title,
        scheduled_date=payload.scheduled_date,
        audit_type=_enum_value(payload.audit_type),
        category_filter=_enum_value(payload.category_filter),
        location_id=payload.location_id,
        notes=payload.notes,
        status=AuditStatus.SCHEDULED.value,
        created_by=current_user.id,
    )
    db.add(audit)
    db.flush()

    record_activity(
        db,
        current_user=current_user,
        action="equipment_audit_created",
        entity_type="equipment_audit",
        entity_id=audit.id,
        entity_name=audit_label(audit),
        details={
            "auditType": audit.audit_type,
            "categoryFilter": audit.category_filter,
            "locationId": str(audit.location_id) if audit.location_id else None,
        },
    )
    commit_or_rollback(db, operation="equipment_audit.create", entity_id=audit.id)
    db.refresh(audit)
    logger.info("equipment_audit.created audit=%s org=%s", audit.id, audit.org_id)
    return audit


def update_audit_use_case(
    *,
    db: Session,
    current_user: User,
    audit_id: UUID,
    payload: EquipmentAuditUpdate,
) -> EquipmentAudit:
    """Edit a scheduled audit. Scope filters are frozen once counting starts."""
    audit = get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)
    guard_audit(audit, "update")

    data = payload.model_dump(exclude_unset=True)
    if data.get("location_id") is not None:
        _ensure_location_in_org(db=db, location_id=data["location_id"], org_id=current_user.org_id)

    changed: dict[str, Any] = {}
    for field, value in data.items():
        if value is None and field not in _CLEARABLE_FIELDS:
            continue
        value = _enum_value(value)
        if getattr(audit, field) != value:
            setattr(audit, field, value)
            changed[field] = str(value) if value is not None else None

    if not changed:
        return audit

    record_activity(
        db,
        current_user=current_user,
        action="equipment_audit_updated",
        entity_type="equipment_audit",
        entity_id=audit.id,
        entity_name=audit_label(audit),
        details={"changes": changed},
    )
    commit_or_rollback(db, operation="equipment_audit.update", entity_id=audit.id)
    db.refresh(audit)
    return audit


def delete_audit_use_case(*, db: Session, current_user: User, audit_id: UUID) -> dict[str, bool]:
    audit = get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)
    guard_audit(audit, "delete")

    record_activity(
        db,
        current_user=current_user,
        action="equipment_audit_deleted",
        entity_type="equipment_audit",
        entity_id=audit.id,
        entity_name=audit_label(audit),
    )
    db.delete(audit)
    commit_or_rollback(db, operation="equipment_audit.delete", entity_id=audit_id)
    logger.info("equipment_audit.deleted audit=%s org=%s", audit_id, current_user.org_id)
    return {"success": True}


def load_snapshot_equipment(*, db: Session, audit: EquipmentAudit) -> list[Equipment]:
    """Active catalog entries of the audit's organization that match its scope filters."""
    query = db.query(Equipment).filter(
        Equipment.org_id == audit.org_id,
        Equipment.is_active.is_(True),
    )
    if audit.category_filter:
        query = query.filter(Equipment.category == audit.category_filter)
    if audit.location_id:
        query = query.filter(Equipment.location_id == audit.location_id)
    return query.order_by(Equipment.name.asc()).all()


def build_snapshot_counts(*, audit_id: UUID, equipment: Iterable[Equipment]) -> list[EquipmentCount]:
    """One pending line per distinct equipment id, expecting the catalog total as of now."""
    counts: list[EquipmentCount] = []
    seen: set[UUID] = set()
    for item in equipment:
        if item.id in seen:
            continue
        seen.add(item.id)
        counts.append(
            EquipmentCount(
                audit_id=audit_id,
                equipment_id=item.id,
                expected_quantity=int(item.total_quantity or 0),
                status=CountStatus.PENDING.value,
                adjustment_approved=False,
            )
        )
    return counts


def start_audit_use_case(*, db: Session, current_user: User, audit_id: UUID) -> EquipmentAudit:
    audit = get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)
    next_status = guard_audit(audit, "start")

    equipment = load_snapshot_equipment(db=db, audit=audit)
    if not equipment:
        raise bad_request(
            "EQUIPMENT_AUDIT_NOTHING_TO_COUNT",
            "No equipment matches the audit filters",
            {
                "categoryFilter": audit.category_filter,
                "locationId": str(audit.location_id) if audit.location_id else None,
            },
        )

    counts = build_snapshot_counts(audit_id=audit.id, equipment=equipment)
    db.add_all(counts)

    audit.status = next_status.value
    audit.started_at = now_utc()
    audit.performed_by = current_user.id
    audit.total_items = len(counts)
    audit.total_expected_quantity = sum(count.expected_quantity for count in counts)

    record_activity(
        db,
        current_user=current_user,
        action="equipment_audit_started",
        entity_type="equipment_audit",
        entity_id=audit.id,
        entity_name=audit_label(audit),
        details={
            "oldStatus": AuditStatus.SCHEDULED.value,
            "newStatus": next_status.value,
            "totalItems": audit.total_items,
            "totalExpectedQuantity": audit.total_expected_quantity,
        },
    )
    # Lines and the status change land in one transaction.
    commit_or_rollback(db, operation="equipment_audit.start", entity_id=audit.id)
    db.refresh(audit)
    logger.info(
        "equipment_audit.started audit=%s org=%s items=%s expected=%s",
        audit.id,
        audit.org_id,
        audit.total_items,
        audit.total_expected_quantity,
    )
    return audit


def complete_audit_use_case(
    *,
    db: Session,
    current_user: User,
    audit_id: UUID,
    notes: str | None = None,
) -> EquipmentAudit:
    audit = get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)
    next_status = guard_audit(audit, "complete")

    counts = load_audit_counts(db=db, audit_id=audit.id)
    pending = [count for count in counts if count.status == CountStatus.PENDING.value]
    if pending:
        raise DomainError(
            code="EQUIPMENT_AUDIT_HAS_PENDING_COUNTS",
            http_status=409,
            message=f"There are {len(pending)} items pending count",
            details={"pending": len(pending)},
        )

    counters = completion_counters(counts)
    audit.status = next_status.value
    audit.completed_at = now_utc()
    audit.counted_items = counters["counted_items"]
    audit.items_with_discrepancy = counters["items_with_discrepancy"]
    audit.total_counted_quantity = counters["total_counted_quantity"]
    audit.notes = append_note(audit.notes, "Completion notes", notes, separator="\n\n")

    record_activity(
        db,
        current_user=current_user,
        action="equipment_audit_completed",
        entity_type="equipment_audit",
        entity_id=audit.id,
        entity_name=audit_label(audit),
        details={
            "oldStatus": AuditStatus.IN_PROGRESS.value,
            "newStatus": next_status.value,
            "countedItems": audit.counted_items,
            "itemsWithDiscrepancy": audit.items_with_discrepancy,
        },
    )
    commit_or_rollback(db, operation="equipment_audit.complete", entity_id=audit.id)
    db.refresh(audit)
    logger.info(
        "equipment_audit.completed audit=%s org=%s counted=%s discrepancies=%s",
        audit.id,
        audit.org_id,
        audit.counted_items,
        audit.items_with_discrepancy,
    )
    return audit


def cancel_audit_use_case(
    *,
    db: Session,
    current_user: User,
    audit_id: UUID,
    reason: str | None = None,
) -> EquipmentAudit:
    audit = get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)
    old_status = audit.status
    next_status = guard_audit(audit, "cancel")

    audit.status = next_status.value
    audit.notes = append_note(audit.notes, "Cancellation reason", reason, separator="\n\n")

    record_activity(
        db,
        current_user=current_user,
        action="equipment_audit_cancelled",
        entity_type="equipment_audit",
        entity_id=audit.id,
        entity_name=audit_label(audit),
        details={"oldStatus": old_status, "newStatus": next_status.value, "reason": reason},
    )
    commit_or_rollback(db, operation="equipment_audit.cancel", entity_id=audit.id)
    db.refresh(audit)
    logger.info("equipment_audit.cancelled audit=%s org=%s from=%s", audit.id, audit.org_id, old_status)
    return audit


def get_audit_summary_use_case(*, db: Session, current_user: User, audit_id: UUID) -> dict[str, Any]:
    """Live roll-up; cached audit counters are completion snapshots and are not consulted."""
    audit = get_audit_or_404(db=db, audit_id=audit_id, org_id=current_user.org_id)
    return summarize_counts(load_audit_counts(db=db, audit_id=audit.id))
