from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from briefflow.db.enums import ApprovalDecisionEnum, PriorityEnum
from briefflow.db.models import Approval
from briefflow.db.repositories.base import Repository


class ApprovalsRepository(Repository):
    def create(
        self,
        *,
        brief_id: UUID,
        validator_id: UUID,
        decision: ApprovalDecisionEnum,
        notes: Optional[str],
        priority: Optional[PriorityEnum],
        sla_days: Optional[int],
    ) -> Approval:
        approval = Approval(
            brief_id=brief_id,
            validator_id=validator_id,
            decision=decision,
            notes=notes,
            priority=priority,
            sla_days=sla_days,
        )
        return self.stage(approval)

    def list_for_brief(self, brief_id: UUID) -> list[Approval]:
        stmt = select(Approval).where(Approval.brief_id == brief_id).order_by(Approval.created_at.asc())
        return list(self.session.scalars(stmt).all())
