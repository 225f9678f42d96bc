from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.db.enums import TaskStatusEnum
from briefflow.db.models import ProductionTask
from briefflow.schemas.production import TaskResponse, TaskUpdateRequest
from briefflow.services import production as production_service
from briefflow.timeutils import as_utc


router = APIRouter(prefix="/production", tags=["production"])


def task_to_response(task: ProductionTask) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        briefId=task.brief_id,
        briefCode=task.brief.code,
        briefTitle=task.brief.title,
        priority=task.brief.priority,
        status=task.status,
        assigneeId=task.assignee_id,
        slaDays=task.sla_days,
        dueDate=as_utc(task.due_date),
        notes=task.notes,
        deliveryCycle=task.delivery_cycle,
        deliveredAt=as_utc(task.delivered_at),
        allowedTransitions=production_service.allowed_transitions(task.status),
        createdAt=as_utc(task.created_at),
        updatedAt=as_utc(task.updated_at),
    )


@router.get("", response_model=list[TaskResponse])
def list_tasks(
    status_filter: Optional[TaskStatusEnum] = Query(default=None, alias="status"),
    mine: bool = False,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    tasks = production_service.list_tasks(session, auth, status=status_filter, mine=mine)
    return [task_to_response(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return task_to_response(production_service.get_task(session, auth, task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return task_to_response(production_service.update_task(session, auth, task_id, payload))
