"""SQLAlchemy models for organizations, the equipment catalog and inventory audits."""
from sqlalchemy import (
    Boolean, Column, String, Integer, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base
from .enums import (
    AuditStatus, AuditType, CountStatus, EquipmentCategory, EquipmentCondition, values
)


class Organization(Base):
    """Organization model (tenant)."""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    users = relationship("User", back_populates="organization")
    locations = relationship("Location", back_populates="organization")
    equipment = relationship("Equipment", back_populates="organization")


class User(Base):
    """User model. Accounts are managed by the identity service; rows are read here."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    # Monotonically increasing version used to revoke previously issued tokens.
    token_version = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    initials = Column(String(50), nullable=False)
    role = Column(String(50), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            role.in_(['owner', 'admin', 'coach', 'staff', 'member']),
            name='chk_user_role'
        ),
    )

    # Relationships
    organization = relationship("Organization", back_populates="users")


class Location(Base):
    """Training venue / storage site."""
    __tablename__ = "locations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="locations")
    equipment = relationship("Equipment", back_populates="location")


class Equipment(Base):
    """Training equipment catalog entry."""
    __tablename__ = "training_equipment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    brand = Column(String(255), nullable=True)
    model = Column(String(255), nullable=True)
    category = Column(String(30), nullable=False, default=EquipmentCategory.OTHER.value, index=True)
    total_quantity = Column(Integer, nullable=False, default=1)
    available_quantity = Column(Integer, nullable=False, default=1)
    condition = Column(String(20), nullable=False, default=EquipmentCondition.GOOD.value)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True)
    storage_location = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(category.in_(values(EquipmentCategory)), name='chk_equipment_category'),
        CheckConstraint(condition.in_(values(EquipmentCondition)), name='chk_equipment_condition'),
        CheckConstraint(total_quantity >= 0, name='chk_equipment_total_non_negative'),
        Index('idx_training_equipment_org_active', 'org_id', 'is_active'),
    )

    # Relationships
    organization = relationship("Organization", back_populates="equipment")
    location = relationship("Location", back_populates="equipment")


class EquipmentAudit(Base):
    """One physical inventory count exercise over a filtered subset of equipment."""
    __tablename__ = "equipment_inventory_audits"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default=AuditStatus.SCHEDULED.value, index=True)
    audit_type = Column(String(20), nullable=False, default=AuditType.FULL.value, index=True)

    # Scope filters
    category_filter = Column(String(30), nullable=True)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)

    # Cached counters: totals are written at start, the rest at completion.
    total_items = Column(Integer, nullable=False, default=0)
    counted_items = Column(Integer, nullable=False, default=0)
    items_with_discrepancy = Column(Integer, nullable=False, default=0)
    total_expected_quantity = Column(Integer, nullable=False, default=0)
    total_counted_quantity = Column(Integer, nullable=False, default=0)

    notes = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    performed_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(values(AuditStatus)), name='chk_equipment_audit_status'),
        CheckConstraint(audit_type.in_(values(AuditType)), name='chk_equipment_audit_type'),
        CheckConstraint(
            category_filter.is_(None) | category_filter.in_(values(EquipmentCategory)),
            name='chk_equipment_audit_category_filter'
        ),
    )

    # Relationships
    location = relationship("Location")
    created_by_user = relationship("User", foreign_keys=[created_by])
    performed_by_user = relationship("User", foreign_keys=[performed_by])
    approved_by_user = relationship("User", foreign_keys=[approved_by])
    counts = relationship(
        "EquipmentCount",
        back_populates="audit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[EquipmentCount.created_at.desc(), EquipmentCount.id]",
    )


class EquipmentCount(Base):
    """Expected-vs-counted quantity for one equipment item within one audit."""
    __tablename__ = "equipment_inventory_counts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    audit_id = Column(
        UUID(as_uuid=True),
        ForeignKey("equipment_inventory_audits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    equipment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("training_equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Snapshot of equipment.total_quantity taken when the audit started.
    expected_quantity = Column(Integer, nullable=False)
    counted_quantity = Column(Integer, nullable=True)
    discrepancy = Column(Integer, nullable=True)  # counted_quantity - expected_quantity

    status = Column(String(20), nullable=False, default=CountStatus.PENDING.value, index=True)
    observed_condition = Column(String(20), nullable=True)

    adjustment_approved = Column(Boolean, nullable=False, default=False)
    adjustment_reason = Column(Text, nullable=True)
    adjusted_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    adjusted_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)
    counted_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    counted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(values(CountStatus)), name='chk_equipment_count_status'),
        CheckConstraint(
            observed_condition.is_(None) | observed_condition.in_(values(EquipmentCondition)),
            name='chk_equipment_count_observed_condition'
        ),
        CheckConstraint(
            counted_quantity.is_(None) | (counted_quantity >= 0),
            name='chk_equipment_count_counted_non_negative'
        ),
        CheckConstraint(
            (counted_quantity.is_(None) & discrepancy.is_(None))
            | (counted_quantity.isnot(None) & (discrepancy == counted_quantity - expected_quantity)),
            name='chk_equipment_count_discrepancy'
        ),
        UniqueConstraint('audit_id', 'equipment_id', name='uq_equipment_count_audit_equipment'),
    )

    # Relationships
    audit = relationship("EquipmentAudit", back_populates="counts")
    equipment = relationship("Equipment")
    counted_by_user = relationship("User", foreign_keys=[counted_by])
    adjusted_by_user = relationship("User", foreign_keys=[adjusted_by])


class AuditEvent(Base):
    """Organization activity log entry."""
    __tablename__ = "audit_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), index=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    entity_name = Column(String(255), nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String(100), nullable=True)
    details = Column(JSONB, default={})
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(
            action.in_([
                'equipment_audit_created', 'equipment_audit_updated', 'equipment_audit_deleted',
                'equipment_audit_started', 'equipment_audit_completed', 'equipment_audit_cancelled',
                'equipment_count_recorded', 'equipment_count_skipped', 'equipment_count_verified',
                'equipment_adjustment_approved', 'equipment_adjustment_rejected',
            ]),
            name='chk_audit_action'
        ),
        CheckConstraint(
            entity_type.in_(['equipment_audit', 'equipment_count']),
            name='chk_audit_entity_type'
        ),
        Index('idx_audit_events_entity', 'entity_type', 'entity_id'),
    )
