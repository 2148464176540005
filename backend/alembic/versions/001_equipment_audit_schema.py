"""equipment inventory audit schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

CATEGORIES = (
    "'balls', 'cones', 'goals', 'nets', 'hurdles', 'ladders', 'markers', 'bibs', "
    "'poles', 'mats', 'weights', 'bands', 'medical', 'electronics', 'storage', 'other'"
)
CONDITIONS = "'new', 'excellent', 'good', 'fair', 'poor'"
AUDIT_ACTIONS = (
    "'equipment_audit_created', 'equipment_audit_updated', 'equipment_audit_deleted', "
    "'equipment_audit_started', 'equipment_audit_completed', 'equipment_audit_cancelled', "
    "'equipment_count_recorded', 'equipment_count_skipped', 'equipment_count_verified', "
    "'equipment_adjustment_approved', 'equipment_adjustment_rejected'"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organizations_code", "organizations", ["code"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("initials", sa.String(length=50), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("role IN ('owner', 'admin', 'coach', 'staff', 'member')", name="chk_user_role"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_org_id", "users", ["org_id"], unique=False)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_locations_org_id", "locations", ["org_id"], unique=False)
    op.create_index("ix_locations_name", "locations", ["name"], unique=False)

    op.create_table(
        "training_equipment",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("model", sa.String(length=255), nullable=True),
        sa.Column("category", sa.String(length=30), nullable=False, server_default="other"),
        sa.Column("total_quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("available_quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("condition", sa.String(length=20), nullable=False, server_default="good"),
        sa.Column("location_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("storage_location", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(f"category IN ({CATEGORIES})", name="chk_equipment_category"),
        sa.CheckConstraint(f"condition IN ({CONDITIONS})", name="chk_equipment_condition"),
        sa.CheckConstraint("total_quantity >= 0", name="chk_equipment_total_non_negative"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_training_equipment_org_id", "training_equipment", ["org_id"], unique=False)
    op.create_index("ix_training_equipment_category", "training_equipment", ["category"], unique=False)
    op.create_index("ix_training_equipment_location_id", "training_equipment", ["location_id"], unique=False)
    op.create_index("idx_training_equipment_org_active", "training_equipment", ["org_id", "is_active"], unique=False)

    op.create_table(
        "equipment_inventory_audits",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("audit_type", sa.String(length=20), nullable=False, server_default="full"),
        sa.Column("category_filter", sa.String(length=30), nullable=True),
        sa.Column("location_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("total_items", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("counted_items", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("items_with_discrepancy", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_expected_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_counted_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("performed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="chk_equipment_audit_status",
        ),
        sa.CheckConstraint("audit_type IN ('full', 'partial', 'spot')", name="chk_equipment_audit_type"),
        sa.CheckConstraint(
            f"category_filter IS NULL OR category_filter IN ({CATEGORIES})",
            name="chk_equipment_audit_category_filter",
        ),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["performed_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_equipment_inventory_audits_org_id", "equipment_inventory_audits", ["org_id"], unique=False)
    op.create_index(
        "ix_equipment_inventory_audits_scheduled_date", "equipment_inventory_audits", ["scheduled_date"], unique=False
    )
    op.create_index("ix_equipment_inventory_audits_status", "equipment_inventory_audits", ["status"], unique=False)
    op.create_index(
        "ix_equipment_inventory_audits_audit_type", "equipment_inventory_audits", ["audit_type"], unique=False
    )

    op.create_table(
        "equipment_inventory_counts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("audit_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("equipment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("expected_quantity", sa.Integer(), nullable=False),
        sa.Column("counted_quantity", sa.Integer(), nullable=True),
        sa.Column("discrepancy", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("observed_condition", sa.String(length=20), nullable=True),
        sa.Column("adjustment_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("adjustment_reason", sa.Text(), nullable=True),
        sa.Column("adjusted_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("adjusted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("counted_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("counted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'counted', 'verified', 'adjusted', 'skipped')",
            name="chk_equipment_count_status",
        ),
        sa.CheckConstraint(
            f"observed_condition IS NULL OR observed_condition IN ({CONDITIONS})",
            name="chk_equipment_count_observed_condition",
        ),
        sa.CheckConstraint(
            "counted_quantity IS NULL OR counted_quantity >= 0",
            name="chk_equipment_count_counted_non_negative",
        ),
        sa.CheckConstraint(
            "(counted_quantity IS NULL AND discrepancy IS NULL) "
            "OR (counted_quantity IS NOT NULL AND discrepancy = counted_quantity - expected_quantity)",
            name="chk_equipment_count_discrepancy",
        ),
        sa.ForeignKeyConstraint(["audit_id"], ["equipment_inventory_audits.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["equipment_id"], ["training_equipment.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["adjusted_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["counted_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("audit_id", "equipment_id", name="uq_equipment_count_audit_equipment"),
    )
    op.create_index("ix_equipment_inventory_counts_audit_id", "equipment_inventory_counts", ["audit_id"], unique=False)
    op.create_index(
        "ix_equipment_inventory_counts_equipment_id", "equipment_inventory_counts", ["equipment_id"], unique=False
    )
    op.create_index("ix_equipment_inventory_counts_status", "equipment_inventory_counts", ["status"], unique=False)

    op.create_table(
        "audit_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=30), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_name", sa.String(length=255), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_name", sa.String(length=100), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.CheckConstraint(f"action IN ({AUDIT_ACTIONS})", name="chk_audit_action"),
        sa.CheckConstraint("entity_type IN ('equipment_audit', 'equipment_count')", name="chk_audit_entity_type"),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_org_id", "audit_events", ["org_id"], unique=False)
    op.create_index("ix_audit_events_action", "audit_events", ["action"], unique=False)
    op.create_index("ix_audit_events_user_id", "audit_events", ["user_id"], unique=False)
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"], unique=False)
    op.create_index("idx_audit_events_entity", "audit_events", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("equipment_inventory_counts")
    op.drop_table("equipment_inventory_audits")
    op.drop_table("training_equipment")
    op.drop_table("locations")
    op.drop_table("users")
    op.drop_table("organizations")
