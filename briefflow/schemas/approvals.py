from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from briefflow.db.enums import ApprovalDecisionEnum, BriefStatusEnum, PriorityEnum


class ApprovalActionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    briefId: UUID
    decision: ApprovalDecisionEnum
    notes: Optional[str] = Field(default=None, max_length=2000)
    priority: Optional[PriorityEnum] = None
    slaDays: Optional[int] = Field(default=None, ge=1, le=30)


class ApprovalResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    briefId: UUID
    validatorId: UUID
    decision: ApprovalDecisionEnum
    notes: Optional[str] = None
    priority: Optional[PriorityEnum] = None
    slaDays: Optional[int] = None
    briefStatus: BriefStatusEnum
    taskId: Optional[UUID] = None
    createdAt: datetime
