from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from briefflow.db.base import Base
from briefflow.db.enums import (
    ApprovalDecisionEnum,
    BriefStatusEnum,
    ClubCharacterEnum,
    ClubTierEnum,
    NotificationTypeEnum,
    ObjectiveEnum,
    OutcomeEnum,
    PriorityEnum,
    TaskStatusEnum,
    UserRoleEnum,
)

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


class Region(Base):
    __tablename__ = "regions"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class StrategyDocument(Base):
    __tablename__ = "strategy_documents"
    __table_args__ = (sa.Index("idx_strategy_documents_brand_active", "brand_id", "is_active"),)

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    brand_id: Mapped[UUID] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_by_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Club(Base):
    __tablename__ = "clubs"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    brand_id: Mapped[UUID] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False)
    region_id: Mapped[UUID] = mapped_column(ForeignKey("regions.id", ondelete="RESTRICT"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tier: Mapped[ClubTierEnum] = mapped_column(
        Enum(ClubTierEnum, name="club_tier"),
        server_default=ClubTierEnum.standard.value,
        nullable=False,
    )

    # Local context maintained by the club manager, read by validators.
    club_character: Mapped[Optional[ClubCharacterEnum]] = mapped_column(
        Enum(ClubCharacterEnum, name="club_character"), nullable=True
    )
    custom_character: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    key_member_groups: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    local_constraints: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    top_activities: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    activity_reasons: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    local_decision_brief: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    context_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    context_updated_by_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    brand: Mapped[Brand] = relationship(lazy="joined")
    region: Mapped[Region] = relationship(lazy="joined")

    @property
    def has_context(self) -> bool:
        return bool(
            self.club_character
            or self.key_member_groups
            or self.top_activities
            or (self.local_decision_brief or "").strip()
        )


class User(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    external_id: Mapped[Optional[str]] = mapped_column(Text, unique=True, nullable=True)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRoleEnum] = mapped_column(Enum(UserRoleEnum, name="user_role"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UserClub(Base):
    __tablename__ = "user_clubs"
    __table_args__ = (UniqueConstraint("user_id", "club_id", name="uq_user_clubs_user_club"),)

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    club_id: Mapped[UUID] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    is_manager: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RequestTemplate(Base):
    __tablename__ = "request_templates"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    required_fields: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    default_sla_days: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    default_priority: Mapped[PriorityEnum] = mapped_column(
        Enum(PriorityEnum, name="brief_priority"),
        server_default=PriorityEnum.medium.value,
        nullable=False,
    )
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_blacklisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    blacklist_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def required_field_names(self) -> list[str]:
        fields = self.required_fields or {}
        required = fields.get("required")
        if isinstance(required, list):
            return [str(name) for name in required]
        return list((fields.get("properties") or {}).keys())


class Brief(Base):
    __tablename__ = "briefs"
    __table_args__ = (
        sa.Index("idx_briefs_club_status", "club_id", "status"),
        sa.Index("idx_briefs_created_by", "created_by_id"),
    )

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    club_id: Mapped[UUID] = mapped_column(ForeignKey("clubs.id", ondelete="RESTRICT"), nullable=False)
    brand_id: Mapped[UUID] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False)
    template_id: Mapped[UUID] = mapped_column(
        ForeignKey("request_templates.id", ondelete="RESTRICT"), nullable=False
    )
    created_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str] = mapped_column(Text, nullable=False)
    objective: Mapped[Optional[ObjectiveEnum]] = mapped_column(
        Enum(ObjectiveEnum, name="brief_objective"), nullable=True
    )
    kpi_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kpi_target: Mapped[Optional[float]] = mapped_column(Numeric(14, 2), nullable=True)
    priority: Mapped[PriorityEnum] = mapped_column(
        Enum(PriorityEnum, name="brief_priority"),
        server_default=PriorityEnum.medium.value,
        nullable=False,
    )
    status: Mapped[BriefStatusEnum] = mapped_column(
        Enum(BriefStatusEnum, name="brief_status"),
        server_default=BriefStatusEnum.draft.value,
        nullable=False,
    )
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    offer_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    legal_copy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_fields: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    asset_links: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    formats: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    custom_formats: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    estimated_cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    is_crisis_communication: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    outcome: Mapped[Optional[OutcomeEnum]] = mapped_column(Enum(OutcomeEnum, name="brief_outcome"), nullable=True)
    outcome_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    outcome_cycle: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    outcome_tagged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    club: Mapped[Club] = relationship(lazy="joined")
    brand: Mapped[Brand] = relationship(lazy="joined")
    template: Mapped[RequestTemplate] = relationship(lazy="joined")
    created_by: Mapped[User] = relationship(lazy="joined")


class Approval(Base):
    __tablename__ = "approvals"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    brief_id: Mapped[UUID] = mapped_column(ForeignKey("briefs.id", ondelete="RESTRICT"), nullable=False, index=True)
    validator_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    decision: Mapped[ApprovalDecisionEnum] = mapped_column(
        Enum(ApprovalDecisionEnum, name="approval_decision"), nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[Optional[PriorityEnum]] = mapped_column(
        Enum(PriorityEnum, name="brief_priority"), nullable=True
    )
    sla_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ProductionTask(Base):
    __tablename__ = "production_tasks"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    brief_id: Mapped[UUID] = mapped_column(
        ForeignKey("briefs.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    status: Mapped[TaskStatusEnum] = mapped_column(
        Enum(TaskStatusEnum, name="task_status"),
        server_default=TaskStatusEnum.queued.value,
        nullable=False,
    )
    assignee_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    sla_days: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    brief: Mapped[Brief] = relationship(lazy="joined")


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (sa.Index("idx_notifications_user_read", "user_id", "read_at"),)

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[NotificationTypeEnum] = mapped_column(
        Enum(NotificationTypeEnum, name="notification_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    brief_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("briefs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    task_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("production_tasks.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
