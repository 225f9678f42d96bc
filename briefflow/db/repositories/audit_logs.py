from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select

from briefflow.db.models import AuditLog
from briefflow.db.repositories.base import Repository


class AuditLogsRepository(Repository):
    def record(
        self,
        *,
        user_id: UUID,
        action: str,
        brief_id: Optional[UUID] = None,
        task_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog(user_id=user_id, action=action, brief_id=brief_id, task_id=task_id, details=details)
        return self.stage(entry)

    def list_for_brief(self, brief_id: UUID) -> list[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.brief_id == brief_id).order_by(AuditLog.created_at.asc())
        return list(self.session.scalars(stmt).all())
