from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from briefflow.db.enums import NotificationTypeEnum


class NotificationResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    type: NotificationTypeEnum
    title: str
    message: str
    linkUrl: Optional[str] = None
    readAt: Optional[datetime] = None
    createdAt: datetime
