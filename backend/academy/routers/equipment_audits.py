"""Equipment inventory audit endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..config import settings
from ..database import get_db
from ..enums import AuditStatus, AuditType, CountStatus
from ..models import User
from ..schemas import (
    AdjustmentApproveRequest,
    AdjustmentRejectRequest,
    BatchRecordResult,
    BulkApproveAdjustmentsRequest,
    BulkApproveResult,
    CountBatchRecordRequest,
    CountRecordRequest,
    CountSkipRequest,
    CountVerifyRequest,
    DeleteResult,
    EquipmentAuditCancel,
    EquipmentAuditComplete,
    EquipmentAuditCreate,
    EquipmentAuditDetailOut,
    EquipmentAuditOut,
    EquipmentAuditSummaryOut,
    EquipmentAuditUpdate,
    EquipmentCountOut,
)
from ..use_cases.equipment_adjustments import (
    approve_adjustment_use_case,
    bulk_approve_adjustments_use_case,
    reject_adjustment_use_case,
)
from ..use_cases.equipment_audits import (
    cancel_audit_use_case,
    complete_audit_use_case,
    create_audit_use_case,
    delete_audit_use_case,
    get_audit_summary_use_case,
    get_audit_use_case,
    list_audits_use_case,
    start_audit_use_case,
    update_audit_use_case,
)
from ..use_cases.equipment_counts import (
    batch_record_counts_use_case,
    get_count_use_case,
    list_counts_use_case,
    record_count_use_case,
    skip_count_use_case,
    verify_count_use_case,
)

router = APIRouter(prefix="/organization/equipment-audits", tags=["equipment-audits"])

can_view = PermissionChecker("canViewEquipmentAudits")
can_manage = PermissionChecker("canManageEquipmentAudits")
can_approve = PermissionChecker("canApproveAdjustments")


# Count-line routes come before the "/{audit_id}" routes.
@router.get("/counts/{count_id}", response_model=EquipmentCountOut)
def get_count(
    count_id: UUID,
    current_user: User = Depends(can_view),
    db: Session = Depends(get_db),
):
    return get_count_use_case(db=db, current_user=current_user, count_id=count_id)


@router.post("/counts/batch-record", response_model=BatchRecordResult)
def batch_record_counts(
    payload: CountBatchRecordRequest,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    return batch_record_counts_use_case(db=db, current_user=current_user, items=payload.counts)


@router.post("/counts/{count_id}/record", response_model=EquipmentCountOut)
def record_count(
    count_id: UUID,
    payload: CountRecordRequest,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    return record_count_use_case(
        db=db,
        current_user=current_user,
        count_id=count_id,
        counted_quantity=payload.counted_quantity,
        observed_condition=payload.observed_condition,
        notes=payload.notes,
    )


@router.post("/counts/{count_id}/skip", response_model=EquipmentCountOut)
def skip_count(
    count_id: UUID,
    payload: Optional[CountSkipRequest] = None,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    return skip_count_use_case(db=db, current_user=current_user, count_id=count_id, reason=reason)


@router.post("/counts/{count_id}/verify", response_model=EquipmentCountOut)
def verify_count(
    count_id: UUID,
    payload: Optional[CountVerifyRequest] = None,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    notes = payload.notes if payload else None
    return verify_count_use_case(db=db, current_user=current_user, count_id=count_id, notes=notes)


@router.post("/counts/{count_id}/approve-adjustment", response_model=EquipmentCountOut)
def approve_adjustment(
    count_id: UUID,
    payload: AdjustmentApproveRequest,
    current_user: User = Depends(can_approve),
    db: Session = Depends(get_db),
):
    return approve_adjustment_use_case(
        db=db,
        current_user=current_user,
        count_id=count_id,
        reason=payload.reason,
    )


@router.post("/counts/{count_id}/reject-adjustment", response_model=EquipmentCountOut)
def reject_adjustment(
    count_id: UUID,
    payload: Optional[AdjustmentRejectRequest] = None,
    current_user: User = Depends(can_approve),
    db: Session = Depends(get_db),
):
    return reject_adjustment_use_case(
        db=db,
        current_user=current_user,
        count_id=count_id,
        reason=payload.reason if payload else None,
    )


@router.get("", response_model=list[EquipmentAuditOut])
def list_audits(
    status: Optional[AuditStatus] = None,
    audit_type: Optional[AuditType] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    limit: int = Query(settings.AUDIT_LIST_DEFAULT_LIMIT, ge=1, le=settings.AUDIT_LIST_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(can_view),
    db: Session = Depends(get_db),
):
    return list_audits_use_case(
        db=db,
        current_user=current_user,
        status=status,
        audit_type=audit_type,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=EquipmentAuditOut, status_code=201)
def create_audit(
    payload: EquipmentAuditCreate,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    return create_audit_use_case(db=db, current_user=current_user, payload=payload)


@router.get("/{audit_id}", response_model=EquipmentAuditDetailOut)
def get_audit(
    audit_id: UUID,
    current_user: User = Depends(can_view),
    db: Session = Depends(get_db),
):
    return get_audit_use_case(db=db, current_user=current_user, audit_id=audit_id)


@router.patch("/{audit_id}", response_model=EquipmentAuditOut)
def update_audit(
    audit_id: UUID,
    payload: EquipmentAuditUpdate,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    return update_audit_use_case(db=db, current_user=current_user, audit_id=audit_id, payload=payload)


@router.delete("/{audit_id}", response_model=DeleteResult)
def delete_audit(
    audit_id: UUID,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    return delete_audit_use_case(db=db, current_user=current_user, audit_id=audit_id)


@router.post("/{audit_id}/start", response_model=EquipmentAuditOut)
def start_audit(
    audit_id: UUID,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    return start_audit_use_case(db=db, current_user=current_user, audit_id=audit_id)


@router.post("/{audit_id}/complete", response_model=EquipmentAuditOut)
def complete_audit(
    audit_id: UUID,
    payload: Optional[EquipmentAuditComplete] = None,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    notes = payload.notes if payload else None
    return complete_audit_use_case(db=db, current_user=current_user, audit_id=audit_id, notes=notes)


@router.post("/{audit_id}/cancel", response_model=EquipmentAuditOut)
def cancel_audit(
    audit_id: UUID,
    payload: Optional[EquipmentAuditCancel] = None,
    current_user: User = Depends(can_manage),
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    return cancel_audit_use_case(db=db, current_user=current_user, audit_id=audit_id, reason=reason)


@router.get("/{audit_id}/counts", response_model=list[EquipmentCountOut])
def list_counts(
    audit_id: UUID,
    status: Optional[CountStatus] = None,
    has_discrepancy: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=200),
    current_user: User = Depends(can_view),
    db: Session = Depends(get_db),
):
    return list_counts_use_case(
        db=db,
        current_user=current_user,
        audit_id=audit_id,
        status=status,
        has_discrepancy_only=has_discrepancy,
        search=search,
    )


@router.post("/{audit_id}/adjustments/bulk-approve", response_model=BulkApproveResult)
def bulk_approve_adjustments(
    audit_id: UUID,
    payload: BulkApproveAdjustmentsRequest,
    current_user: User = Depends(can_approve),
    db: Session = Depends(get_db),
):
    return bulk_approve_adjustments_use_case(
        db=db,
        current_user=current_user,
        audit_id=audit_id,
        count_ids=payload.count_ids,
        reason=payload.reason,
    )


@router.get("/{audit_id}/summary", response_model=EquipmentAuditSummaryOut)
def get_audit_summary(
    audit_id: UUID,
    current_user: User = Depends(can_view),
    db: Session = Depends(get_db),
):
    return get_audit_summary_use_case(db=db, current_user=current_user, audit_id=audit_id)
