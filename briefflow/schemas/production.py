from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from briefflow.db.enums import PriorityEnum, TaskStatusEnum


class TaskUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[TaskStatusEnum] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    assigneeId: Optional[UUID] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    briefId: UUID
    briefCode: str
    briefTitle: str
    priority: PriorityEnum
    status: TaskStatusEnum
    assigneeId: Optional[UUID] = None
    slaDays: int
    dueDate: datetime
    notes: Optional[str] = None
    deliveryCycle: int
    deliveredAt: Optional[datetime] = None
    allowedTransitions: list[TaskStatusEnum]
    createdAt: datetime
    updatedAt: datetime
