"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from uuid import UUID

from .enums import AuditType, EquipmentCategory, EquipmentCondition


# Nested briefs
class UserBrief(BaseModel):
    """Brief user info for nested responses."""
    id: UUID
    name: str
    initials: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class LocationBrief(BaseModel):
    id: UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


class EquipmentBrief(BaseModel):
    id: UUID
    name: str
    category: str
    brand: Optional[str] = None
    model: Optional[str] = None
    total_quantity: int
    condition: str
    storage_location: Optional[str] = None
    location: Optional[LocationBrief] = None
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


# Equipment audit schemas
class EquipmentAuditCreate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    scheduled_date: datetime
    audit_type: AuditType = AuditType.FULL
    category_filter: Optional[EquipmentCategory] = None
    location_id: Optional[UUID] = None
    notes: Optional[str] = None


class EquipmentAuditUpdate(BaseModel):
    """Partial update; category_filter and location_id accept an explicit null to clear the filter."""
    title: Optional[str] = Field(default=None, min_length=1)
    scheduled_date: Optional[datetime] = None
    audit_type: Optional[AuditType] = None
    category_filter: Optional[EquipmentCategory] = None
    location_id: Optional[UUID] = None
    notes: Optional[str] = None


class EquipmentAuditComplete(BaseModel):
    notes: Optional[str] = None


class EquipmentAuditCancel(BaseModel):
    reason: Optional[str] = None


class EquipmentAuditOut(BaseModel):
    id: UUID
    org_id: UUID
    title: Optional[str] = None
    scheduled_date: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: str
    audit_type: str
    category_filter: Optional[str] = None
    location_id: Optional[UUID] = None
    location: Optional[LocationBrief] = None
    total_items: int = 0
    counted_items: int = 0
    items_with_discrepancy: int = 0
    total_expected_quantity: int = 0
    total_counted_quantity: int = 0
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    created_by_user: Optional[UserBrief] = None
    performed_by: Optional[UUID] = None
    performed_by_user: Optional[UserBrief] = None
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Equipment count schemas
class EquipmentCountOut(BaseModel):
    id: UUID
    audit_id: UUID
    equipment_id: UUID
    equipment: Optional[EquipmentBrief] = None
    expected_quantity: int
    counted_quantity: Optional[int] = None
    discrepancy: Optional[int] = None
    status: str
    observed_condition: Optional[str] = None
    adjustment_approved: bool = False
    adjustment_reason: Optional[str] = None
    adjusted_by: Optional[UUID] = None
    adjusted_by_user: Optional[UserBrief] = None
    adjusted_at: Optional[datetime] = None
    notes: Optional[str] = None
    counted_by: Optional[UUID] = None
    counted_by_user: Optional[UserBrief] = None
    counted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EquipmentAuditDetailOut(EquipmentAuditOut):
    approved_by_user: Optional[UserBrief] = None
    counts: list[EquipmentCountOut] = []


class CountRecordRequest(BaseModel):
    counted_quantity: int = Field(ge=0)
    observed_condition: Optional[EquipmentCondition] = None
    notes: Optional[str] = None


class CountBatchItem(CountRecordRequest):
    id: UUID


class CountBatchRecordRequest(BaseModel):
    counts: list[CountBatchItem]


class CountSkipRequest(BaseModel):
    reason: Optional[str] = None


class CountVerifyRequest(BaseModel):
    notes: Optional[str] = None


class AdjustmentApproveRequest(BaseModel):
    reason: str = Field(min_length=1)


class AdjustmentRejectRequest(BaseModel):
    reason: Optional[str] = None


class BulkApproveAdjustmentsRequest(BaseModel):
    count_ids: list[UUID]
    reason: str = Field(min_length=1)


# Batch results
class BatchSkippedItem(BaseModel):
    id: UUID
    reason: str
    message: str


class BatchRecordResult(BaseModel):
    updated: int
    succeeded: list[UUID] = []
    skipped: list[BatchSkippedItem] = []


class BulkApproveResult(BaseModel):
    approved: int
    succeeded: list[UUID] = []
    skipped: list[BatchSkippedItem] = []


class DeleteResult(BaseModel):
    success: bool


# Summary
class CountStatusBreakdown(BaseModel):
    pending: int
    counted: int
    verified: int
    adjusted: int
    skipped: int


class DiscrepancyBreakdown(BaseModel):
    total: int
    positive: int
    negative: int
    pending_adjustment: int


class QuantityTotals(BaseModel):
    expected: int
    counted: int
    difference: int


class EquipmentAuditSummaryOut(BaseModel):
    total_items: int
    by_status: CountStatusBreakdown
    discrepancies: DiscrepancyBreakdown
    quantities: QuantityTotals
    progress: int


# Audit Event
class AuditEventResponse(BaseModel):
    id: UUID
    action: str
    entity_type: str
    entity_id: UUID
    entity_name: Optional[str] = None
    user_id: Optional[UUID] = None
    user_name: Optional[str] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# System
class HealthCheckResponse(BaseModel):
    status: str
    database: str
    version: str
