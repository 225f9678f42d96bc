from datetime import timedelta

import pytest
from sqlalchemy import update

from briefflow.db.base import SessionLocal
from briefflow.db.enums import (
    ApprovalDecisionEnum,
    NotificationTypeEnum,
    OutcomeEnum,
    TaskStatusEnum,
)
from briefflow.db.models import ProductionTask
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.briefs import BriefsRepository
from briefflow.errors import ForbiddenError, StateConflictError, ValidationFailedError
from briefflow.schemas.approvals import ApprovalActionRequest
from briefflow.schemas.briefs import OutcomeRequest
from briefflow.schemas.production import TaskUpdateRequest
from briefflow.services.approvals import decide_brief
from briefflow.services.notifications import list_notifications
from briefflow.services.production import (
    TASK_TRANSITIONS,
    allowed_transitions,
    get_task,
    is_transition_allowed,
    list_tasks,
    tag_outcome,
    update_task,
)

S = TaskStatusEnum


@pytest.fixture()
def approved_task(db_session, seed_data, auth_for, submitted_brief, now):
    brief = submitted_brief()
    result = decide_brief(
        db_session,
        auth_for(seed_data.validator),
        ApprovalActionRequest(briefId=brief.id, decision=ApprovalDecisionEnum.approved),
        now=now,
    )
    return result.task


def _move(session, actor, task, *statuses, now=None):
    for target in statuses:
        task = update_task(session, actor, task.id, TaskUpdateRequest(status=target), now=now)
    return task


def test_transition_table():
    assert is_transition_allowed(S.queued, S.in_progress)
    assert not is_transition_allowed(S.needs_changes, S.closed)
    assert not is_transition_allowed(S.queued, S.delivered)
    assert is_transition_allowed(S.delivered, S.needs_changes)
    assert allowed_transitions(S.in_review) == [S.needs_changes, S.approved]
    assert allowed_transitions(S.closed) == []
    assert set(TASK_TRANSITIONS) == set(TaskStatusEnum)


def test_claiming_a_queued_task(db_session, seed_data, auth_for, approved_task):
    producer = auth_for(seed_data.producer)

    task = _move(db_session, producer, approved_task, S.in_progress)

    assert task.status == S.in_progress
    assert task.assignee_id == seed_data.producer.id
    actions = [entry.action for entry in AuditLogsRepository(db_session).list_for_brief(task.brief_id)]
    assert "TASK_STATUS_IN_PROGRESS" in actions


def test_claim_must_start_the_task(db_session, seed_data, auth_for, approved_task):
    with pytest.raises(ValidationFailedError):
        update_task(db_session, auth_for(seed_data.producer), approved_task.id, TaskUpdateRequest(notes="mine"))


def test_only_assignee_progresses(db_session, seed_data, auth_for, approved_task):
    _move(db_session, auth_for(seed_data.producer), approved_task, S.in_progress)

    with pytest.raises(ForbiddenError):
        _move(db_session, auth_for(seed_data.second_producer), approved_task, S.in_review)
    with pytest.raises(ForbiddenError):
        _move(db_session, auth_for(seed_data.admin), approved_task, S.in_review)


def test_needs_changes_to_closed_is_rejected(db_session, seed_data, auth_for, approved_task):
    producer = auth_for(seed_data.producer)
    task = _move(db_session, producer, approved_task, S.in_progress, S.needs_changes)

    with pytest.raises(ValidationFailedError):
        _move(db_session, producer, task, S.closed)

    assert get_task(db_session, producer, task.id).status == S.needs_changes


def test_delivery_bumps_cycle_and_notifies_author(db_session, seed_data, auth_for, approved_task, now):
    producer = auth_for(seed_data.producer)

    task = _move(db_session, producer, approved_task, S.in_progress, S.in_review, S.approved, S.delivered, now=now)

    assert task.status == S.delivered
    assert task.delivery_cycle == 1
    assert task.delivered_at is not None
    types = [item.type for item in list_notifications(db_session, seed_data.manager.id)]
    assert NotificationTypeEnum.task_delivered in types


def test_stale_status_loses_the_race(db_session, seed_data, auth_for, approved_task):
    assert approved_task.status == S.queued

    other = SessionLocal()
    try:
        other.execute(
            update(ProductionTask)
            .where(ProductionTask.id == approved_task.id)
            .values(status=S.in_progress, assignee_id=seed_data.second_producer.id)
        )
        other.commit()
    finally:
        other.close()

    with pytest.raises(StateConflictError) as excinfo:
        update_task(db_session, auth_for(seed_data.producer), approved_task.id, TaskUpdateRequest(status=S.in_progress))

    assert excinfo.value.expected == S.queued
    assert excinfo.value.actual == S.in_progress


def test_reassign_only_to_production_users(db_session, seed_data, auth_for, approved_task):
    producer = auth_for(seed_data.producer)
    task = _move(db_session, producer, approved_task, S.in_progress)

    with pytest.raises(ValidationFailedError):
        update_task(db_session, producer, task.id, TaskUpdateRequest(assigneeId=seed_data.validator.id))

    handed_over = update_task(db_session, producer, task.id, TaskUpdateRequest(assigneeId=seed_data.second_producer.id))
    assert handed_over.assignee_id == seed_data.second_producer.id
    assert handed_over.status == S.in_progress


def test_outcome_requires_delivered_task(db_session, seed_data, auth_for, approved_task, now):
    producer = auth_for(seed_data.producer)
    task = _move(db_session, producer, approved_task, S.in_progress)

    with pytest.raises(ValidationFailedError):
        tag_outcome(db_session, producer, task.brief_id, OutcomeRequest(outcome=OutcomeEnum.positive), now=now)

    brief = BriefsRepository(db_session).get(task.brief_id)
    db_session.refresh(brief)
    assert brief.outcome is None
    assert brief.outcome_cycle is None


def test_outcome_once_per_delivery_cycle(db_session, seed_data, auth_for, approved_task, now):
    producer = auth_for(seed_data.producer)
    task = _move(db_session, producer, approved_task, S.in_progress, S.in_review, S.approved, S.delivered, now=now)

    brief = tag_outcome(
        db_session,
        producer,
        task.brief_id,
        OutcomeRequest(outcome=OutcomeEnum.positive, outcomeNote="Classes fully booked."),
        now=now,
    )
    assert brief.outcome == OutcomeEnum.positive
    assert brief.outcome_cycle == 1

    with pytest.raises(StateConflictError):
        tag_outcome(db_session, auth_for(seed_data.admin), task.brief_id, OutcomeRequest(outcome=OutcomeEnum.neutral))

    later = now + timedelta(days=2)
    task = _move(db_session, producer, task, S.needs_changes, S.in_review, S.approved, S.delivered, now=later)
    assert task.delivery_cycle == 2

    brief = tag_outcome(db_session, producer, task.brief_id, OutcomeRequest(outcome=OutcomeEnum.negative), now=later)
    assert brief.outcome == OutcomeEnum.negative
    assert brief.outcome_cycle == 2
    assert brief.outcome_note is None


def test_outcome_roles(db_session, seed_data, auth_for, approved_task):
    with pytest.raises(ForbiddenError):
        tag_outcome(
            db_session,
            auth_for(seed_data.manager),
            approved_task.brief_id,
            OutcomeRequest(outcome=OutcomeEnum.positive),
        )


def test_task_listing(db_session, seed_data, auth_for, approved_task):
    producer = auth_for(seed_data.producer)

    assert [task.id for task in list_tasks(db_session, producer)] == [approved_task.id]
    assert list_tasks(db_session, producer, mine=True) == []
    assert list_tasks(db_session, producer, status=S.delivered) == []

    _move(db_session, producer, approved_task, S.in_progress)
    assert [task.id for task in list_tasks(db_session, producer, mine=True)] == [approved_task.id]

    with pytest.raises(ForbiddenError):
        list_tasks(db_session, auth_for(seed_data.manager))
