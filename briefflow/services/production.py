from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from briefflow.auth.capabilities import require_capability, task_resource
from briefflow.auth.dependencies import AuthContext
from briefflow.db.enums import TaskStatusEnum, UserRoleEnum
from briefflow.db.models import Brief, ProductionTask
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.briefs import BriefsRepository
from briefflow.db.repositories.production_tasks import ProductionTasksRepository
from briefflow.db.repositories.users import UsersRepository
from briefflow.errors import NotFoundError, StateConflictError, ValidationFailedError
from briefflow.schemas.briefs import OutcomeRequest
from briefflow.schemas.production import TaskUpdateRequest
from briefflow.services.briefs import get_brief
from briefflow.services.notifications import notify_author_of_delivery
from briefflow.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

TASK_TRANSITIONS: dict[TaskStatusEnum, frozenset[TaskStatusEnum]] = {
    TaskStatusEnum.queued: frozenset({TaskStatusEnum.in_progress}),
    TaskStatusEnum.in_progress: frozenset({TaskStatusEnum.in_review, TaskStatusEnum.needs_changes}),
    TaskStatusEnum.in_review: frozenset({TaskStatusEnum.approved, TaskStatusEnum.needs_changes}),
    TaskStatusEnum.needs_changes: frozenset({TaskStatusEnum.in_progress, TaskStatusEnum.in_review}),
    TaskStatusEnum.approved: frozenset({TaskStatusEnum.delivered}),
    TaskStatusEnum.delivered: frozenset({TaskStatusEnum.closed, TaskStatusEnum.needs_changes}),
    TaskStatusEnum.closed: frozenset(),
}


def is_transition_allowed(current: TaskStatusEnum, target: TaskStatusEnum) -> bool:
    return target in TASK_TRANSITIONS.get(current, frozenset())


def allowed_transitions(current: TaskStatusEnum) -> list[TaskStatusEnum]:
    allowed = TASK_TRANSITIONS.get(current, frozenset())
    return [status for status in TaskStatusEnum if status in allowed]


def _require_task_viewer(actor: AuthContext) -> None:
    require_capability(actor, "task.view")


def get_task(session: Session, actor: AuthContext, task_id: UUID) -> ProductionTask:
    _require_task_viewer(actor)
    task = ProductionTasksRepository(session).get(task_id)
    if task is None:
        raise NotFoundError("Task not found.")
    return task


def list_tasks(
    session: Session,
    actor: AuthContext,
    *,
    status: Optional[TaskStatusEnum] = None,
    mine: bool = False,
) -> list[ProductionTask]:
    _require_task_viewer(actor)
    return ProductionTasksRepository(session).list(status=status, assignee_id=actor.user_id if mine else None)


def update_task(
    session: Session,
    actor: AuthContext,
    task_id: UUID,
    payload: TaskUpdateRequest,
    *,
    now: Optional[datetime] = None,
) -> ProductionTask:
    current = as_utc(now) or utcnow()
    repo = ProductionTasksRepository(session)
    task = repo.get(task_id)
    if task is None:
        raise NotFoundError("Task not found.")
    decision = require_capability(actor, "task.progress", task_resource(task))
    claiming = decision.reason == "claim"

    if claiming and payload.status != TaskStatusEnum.in_progress:
        raise ValidationFailedError(
            "Unassigned tasks must be claimed by moving them to in_progress.",
            errors=[{"field": "status", "message": "Claim the task by starting it."}],
        )

    expected = task.status
    target = payload.status or expected
    if payload.status is not None and not is_transition_allowed(expected, target):
        raise ValidationFailedError(
            f"Transition {expected.value} -> {target.value} is not allowed.",
            errors=[
                {
                    "field": "status",
                    "message": f"Allowed transitions: {', '.join(s.value for s in allowed_transitions(expected)) or 'none'}",
                }
            ],
        )

    values: dict[str, Any] = {"status": target}
    if payload.notes is not None:
        values["notes"] = payload.notes
    if claiming:
        values["assignee_id"] = actor.user_id
    elif payload.assigneeId is not None and payload.assigneeId != task.assignee_id:
        assignee = UsersRepository(session).get(payload.assigneeId)
        if assignee is None or assignee.role != UserRoleEnum.production or not assignee.is_active:
            raise ValidationFailedError(
                "Assignee must be an active production user.",
                errors=[{"field": "assigneeId", "message": "Unknown or non-production user."}],
            )
        values["assignee_id"] = assignee.id
    entering_delivered = target == TaskStatusEnum.delivered and expected != TaskStatusEnum.delivered
    if entering_delivered:
        values["delivery_cycle"] = task.delivery_cycle + 1
        values["delivered_at"] = current

    try:
        if not repo.transition_status(task.id, expected=expected, values=values):
            fresh = session.get(ProductionTask, task.id, populate_existing=True)
            raise StateConflictError(
                "Task status changed concurrently.",
                expected=expected,
                actual=fresh.status if fresh else None,
            )
        if target != expected:
            AuditLogsRepository(session).record(
                user_id=actor.user_id,
                brief_id=task.brief_id,
                task_id=task.id,
                action=f"TASK_STATUS_{target.value.upper()}",
                details={"from": expected.value, "to": target.value, "claimed": claiming},
            )
        if entering_delivered:
            notify_author_of_delivery(session, task.brief, task)
        session.commit()
    except StateConflictError:
        session.rollback()
        logger.warning("Task update lost a race", extra={"task_id": str(task_id), "expected": expected.value})
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(task)
    logger.info(
        "Task updated",
        extra={"task_id": str(task.id), "from": expected.value, "to": target.value, "cycle": task.delivery_cycle},
    )
    return task


def tag_outcome(
    session: Session,
    actor: AuthContext,
    brief_id: UUID,
    payload: OutcomeRequest,
    *,
    now: Optional[datetime] = None,
) -> Brief:
    """Record the delivered result of a brief; once per delivery cycle."""
    current = as_utc(now) or utcnow()
    require_capability(actor, "brief.tag_outcome")
    brief = BriefsRepository(session).get(brief_id)
    if brief is None:
        raise NotFoundError("Brief not found.")
    task = ProductionTasksRepository(session).get_by_brief(brief_id)
    if task is None or task.status != TaskStatusEnum.delivered:
        raise ValidationFailedError(
            "Outcome can only be tagged for delivered tasks.",
            errors=[{"field": "status", "message": f"Task status: {task.status.value if task else 'none'}"}],
        )

    cycle = task.delivery_cycle
    try:
        if not BriefsRepository(session).record_outcome(
            brief.id,
            cycle=cycle,
            outcome=payload.outcome,
            note=payload.outcomeNote,
            tagged_at=current,
        ):
            raise StateConflictError(
                "Outcome already tagged for this delivery.",
                expected="untagged",
                actual="tagged",
            )
        still_delivered = ProductionTasksRepository(session).transition_status(
            task.id,
            expected=TaskStatusEnum.delivered,
            values={"status": TaskStatusEnum.delivered},
        )
        if not still_delivered:
            raise StateConflictError(
                "Task left delivered status.",
                expected=TaskStatusEnum.delivered,
                actual=session.get(ProductionTask, task.id, populate_existing=True).status,
            )
        AuditLogsRepository(session).record(
            user_id=actor.user_id,
            brief_id=brief.id,
            task_id=task.id,
            action="OUTCOME_TAGGED",
            details={"outcome": payload.outcome.value, "cycle": cycle, "hasNote": bool(payload.outcomeNote)},
        )
        session.commit()
    except StateConflictError:
        session.rollback()
        logger.warning("Outcome tag rejected", extra={"brief_id": str(brief_id), "cycle": cycle})
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(brief)
    logger.info("Outcome tagged", extra={"brief_id": str(brief.id), "outcome": payload.outcome.value, "cycle": cycle})
    return brief


def get_outcome(session: Session, actor: AuthContext, brief_id: UUID) -> Brief:
    return get_brief(session, actor, brief_id)
