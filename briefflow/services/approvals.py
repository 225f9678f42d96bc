"""
Validator decisions on submitted briefs.

A decision is a single transaction: the status guard, the approval record,
the production task (on approval), notifications and the audit entry are
committed together or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from briefflow.auth.capabilities import brief_resource, require_capability
from briefflow.auth.dependencies import AuthContext
from briefflow.db.enums import ApprovalDecisionEnum, BriefStatusEnum, TaskStatusEnum
from briefflow.db.models import Approval, Brief, ProductionTask
from briefflow.db.repositories.approvals import ApprovalsRepository
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.briefs import BriefsRepository
from briefflow.db.repositories.production_tasks import ProductionTasksRepository
from briefflow.errors import NotFoundError, StateConflictError
from briefflow.policy.config import PolicyConfig
from briefflow.schemas.approvals import ApprovalActionRequest
from briefflow.services.briefs import evaluate_brief_policy
from briefflow.services.notifications import notify_author_of_decision, notify_production_of_new_task
from briefflow.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

DECISION_TARGET_STATUS = {
    ApprovalDecisionEnum.approved: BriefStatusEnum.approved,
    ApprovalDecisionEnum.changes_requested: BriefStatusEnum.changes_requested,
    ApprovalDecisionEnum.rejected: BriefStatusEnum.rejected,
}


@dataclass
class DecisionResult:
    approval: Approval
    brief: Brief
    task: Optional[ProductionTask] = None


def decide_brief(
    session: Session,
    actor: AuthContext,
    payload: ApprovalActionRequest,
    *,
    now: Optional[datetime] = None,
    config: Optional[PolicyConfig] = None,
) -> DecisionResult:
    current = as_utc(now) or utcnow()
    briefs_repo = BriefsRepository(session)
    brief = briefs_repo.get(payload.briefId)
    if brief is None:
        raise NotFoundError("Brief not found.")
    require_capability(actor, "brief.decide", brief_resource(brief))

    target = DECISION_TARGET_STATUS[payload.decision]
    task: Optional[ProductionTask] = None
    try:
        # Suggestions are computed before the guard so the snapshot reflects the submitted brief.
        policy = evaluate_brief_policy(session, brief, config=config, now=current)
        priority = payload.priority or policy.suggestedPriority
        sla_days = payload.slaDays or policy.suggestedSLA

        values = {"decided_at": current}
        if payload.decision == ApprovalDecisionEnum.approved:
            values["priority"] = priority
        if not briefs_repo.transition_status(
            brief.id,
            expected=[BriefStatusEnum.submitted],
            target=target,
            values=values,
        ):
            raise StateConflictError(
                "Brief is not awaiting a decision.",
                expected=BriefStatusEnum.submitted,
                actual=briefs_repo.get_status(brief.id),
            )

        approval = ApprovalsRepository(session).create(
            brief_id=brief.id,
            validator_id=actor.user_id,
            decision=payload.decision,
            notes=payload.notes,
            priority=priority if payload.decision == ApprovalDecisionEnum.approved else payload.priority,
            sla_days=sla_days if payload.decision == ApprovalDecisionEnum.approved else payload.slaDays,
        )

        if payload.decision == ApprovalDecisionEnum.approved:
            task = ProductionTasksRepository(session).create(
                brief_id=brief.id,
                status=TaskStatusEnum.queued,
                sla_days=sla_days,
                due_date=current + timedelta(days=sla_days),
            )
            notify_production_of_new_task(session, brief, task)

        notify_author_of_decision(session, brief, payload.decision, payload.notes)
        AuditLogsRepository(session).record(
            user_id=actor.user_id,
            brief_id=brief.id,
            task_id=task.id if task else None,
            action=f"APPROVAL_{payload.decision.value.upper()}",
            details={
                "priority": priority.value,
                "slaDays": sla_days,
                "prioritySource": "override" if payload.priority else "policy",
                "slaSource": "override" if payload.slaDays else "policy",
                "policySummary": policy.summary,
                "notes": bool(payload.notes),
            },
        )
        session.commit()
    except StateConflictError:
        session.rollback()
        logger.warning(
            "Approval rejected: brief not submitted",
            extra={"brief_id": str(payload.briefId), "user_id": str(actor.user_id)},
        )
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(approval)
    session.refresh(brief)
    if task is not None:
        session.refresh(task)
    logger.info(
        "Brief decided",
        extra={
            "brief_id": str(brief.id),
            "decision": payload.decision.value,
            "task_id": str(task.id) if task else None,
            "sla_days": sla_days,
        },
    )
    return DecisionResult(approval=approval, brief=brief, task=task)
