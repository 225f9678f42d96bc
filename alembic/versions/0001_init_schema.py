"""Initial schema"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM("club_manager", "validator", "production", "admin", name="user_role", create_type=False)
club_tier = postgresql.ENUM("standard", "flagship", "vip", name="club_tier", create_type=False)
club_character = postgresql.ENUM(
    "premium_lifestyle",
    "mass_market",
    "performance_focused",
    "community_driven",
    "functional_compact",
    "custom",
    name="club_character",
    create_type=False,
)
brief_objective = postgresql.ENUM(
    "acquisition", "retention", "attendance", "upsell", "awareness", "other", name="brief_objective", create_type=False
)
brief_priority = postgresql.ENUM("low", "medium", "high", "critical", name="brief_priority", create_type=False)
brief_status = postgresql.ENUM(
    "draft", "submitted", "changes_requested", "approved", "rejected", "cancelled", name="brief_status", create_type=False
)
brief_outcome = postgresql.ENUM("positive", "neutral", "negative", name="brief_outcome", create_type=False)
approval_decision = postgresql.ENUM(
    "approved", "changes_requested", "rejected", name="approval_decision", create_type=False
)
task_status = postgresql.ENUM(
    "queued",
    "in_progress",
    "in_review",
    "needs_changes",
    "approved",
    "delivered",
    "closed",
    name="task_status",
    create_type=False,
)
notification_type = postgresql.ENUM(
    "brief_submitted",
    "brief_resubmitted",
    "brief_edited_by_validator",
    "brief_approved",
    "changes_requested",
    "brief_rejected",
    "new_task",
    "task_delivered",
    name="notification_type",
    create_type=False,
)

ENUMS = (
    user_role,
    club_tier,
    club_character,
    brief_objective,
    brief_priority,
    brief_status,
    brief_outcome,
    approval_decision,
    task_status,
    notification_type,
)


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "regions",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        _created_at(),
    )
    op.create_table(
        "brands",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        _created_at(),
    )
    op.create_table(
        "users",
        _id(),
        sa.Column("external_id", sa.Text(), nullable=True, unique=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_table(
        "strategy_documents",
        _id(),
        sa.Column("brand_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_strategy_documents_brand_active", "strategy_documents", ["brand_id", "is_active"])

    op.create_table(
        "clubs",
        _id(),
        sa.Column("brand_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("region_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("regions.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("tier", club_tier, nullable=False, server_default="standard"),
        sa.Column("club_character", club_character, nullable=True),
        sa.Column("custom_character", sa.Text(), nullable=True),
        sa.Column("key_member_groups", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("local_constraints", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("top_activities", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("activity_reasons", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("local_decision_brief", sa.Text(), nullable=True),
        sa.Column("context_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "context_updated_by_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
    )

    op.create_table(
        "user_clubs",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_manager", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("user_id", "club_id", name="uq_user_clubs_user_club"),
    )

    op.create_table(
        "request_templates",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("required_fields", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("default_sla_days", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("default_priority", brief_priority, nullable=False, server_default="medium"),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_blacklisted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("blacklist_reason", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )

    op.create_table(
        "briefs",
        _id(),
        sa.Column("code", sa.Text(), nullable=False, unique=True),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("brand_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "template_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("request_templates.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=False),
        sa.Column("objective", brief_objective, nullable=True),
        sa.Column("kpi_description", sa.Text(), nullable=True),
        sa.Column("kpi_target", sa.Numeric(14, 2), nullable=True),
        sa.Column("priority", brief_priority, nullable=False, server_default="medium"),
        sa.Column("status", brief_status, nullable=False, server_default="draft"),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("offer_details", sa.Text(), nullable=True),
        sa.Column("legal_copy", sa.Text(), nullable=True),
        sa.Column("custom_fields", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("asset_links", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("formats", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("custom_formats", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("estimated_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_crisis_communication", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("outcome", brief_outcome, nullable=True),
        sa.Column("outcome_note", sa.Text(), nullable=True),
        sa.Column("outcome_cycle", sa.Integer(), nullable=True),
        sa.Column("outcome_tagged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_briefs_club_status", "briefs", ["club_id", "status"])
    op.create_index("idx_briefs_created_by", "briefs", ["created_by_id"])

    op.create_table(
        "approvals",
        _id(),
        sa.Column("brief_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("briefs.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("validator_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("decision", approval_decision, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("priority", brief_priority, nullable=True),
        sa.Column("sla_days", sa.Integer(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_approvals_brief_id", "approvals", ["brief_id"])

    op.create_table(
        "production_tasks",
        _id(),
        sa.Column(
            "brief_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("briefs.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", task_status, nullable=False, server_default="queued"),
        sa.Column("assignee_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("sla_days", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("delivery_cycle", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link_url", sa.Text(), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "read_at"])

    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("brief_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("briefs.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("production_tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_logs_brief_id", "audit_logs", ["brief_id"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("notifications")
    op.drop_table("production_tasks")
    op.drop_table("approvals")
    op.drop_table("briefs")
    op.drop_table("request_templates")
    op.drop_table("user_clubs")
    op.drop_table("clubs")
    op.drop_table("strategy_documents")
    op.drop_table("users")
    op.drop_table("brands")
    op.drop_table("regions")
    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
