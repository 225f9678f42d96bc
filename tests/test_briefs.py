from datetime import timedelta

import pytest

from briefflow.db.enums import ApprovalDecisionEnum, BriefStatusEnum, NotificationTypeEnum
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.briefs import BriefsRepository, format_brief_code
from briefflow.errors import ForbiddenError, NotFoundError, StateConflictError, ValidationFailedError
from briefflow.schemas.approvals import ApprovalActionRequest
from briefflow.services.approvals import decide_brief
from briefflow.services.briefs import (
    cancel_brief,
    create_brief,
    get_brief,
    list_briefs,
    submit_brief,
    update_brief,
)
from briefflow.services.notifications import list_notifications


def _actions(session, brief_id):
    return [entry.action for entry in AuditLogsRepository(session).list_for_brief(brief_id)]


def _notification_types(session, user_id):
    return [item.type for item in list_notifications(session, user_id)]


def test_format_brief_code():
    assert format_brief_code(2025, 7) == "BRIEF-2025-0007"
    assert format_brief_code(2026, 1234) == "BRIEF-2026-1234"


def test_create_draft_assigns_sequential_codes(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)

    first = create_brief(db_session, actor, draft(), now=now)
    second = create_brief(db_session, actor, draft(title="Pilates mornings"), now=now)

    assert first.status == BriefStatusEnum.draft
    assert first.code == "BRIEF-2025-0001"
    assert second.code == "BRIEF-2025-0002"
    assert first.submitted_at is None
    assert first.brand_id == seed_data.brand.id
    assert _actions(db_session, first.id) == ["BRIEF_CREATED"]


def test_create_and_submit_notifies_club_validators(db_session, seed_data, auth_for, draft, now):
    brief = create_brief(db_session, auth_for(seed_data.manager), draft(), submit=True, now=now)

    assert brief.status == BriefStatusEnum.submitted
    assert brief.submitted_at is not None
    assert set(_actions(db_session, brief.id)) == {"BRIEF_CREATED", "BRIEF_SUBMITTED"}
    assert _notification_types(db_session, seed_data.validator.id) == [NotificationTypeEnum.brief_submitted]
    assert _notification_types(db_session, seed_data.other_validator.id) == []


def test_submit_requires_objective_and_kpi(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)
    brief = create_brief(db_session, actor, draft(objective=None, kpiDescription=""), now=now)

    with pytest.raises(ValidationFailedError) as excinfo:
        submit_brief(db_session, actor, brief.id, now=now)

    fields = {error.get("field") for error in excinfo.value.errors}
    assert {"objective", "kpiDescription"} <= fields
    assert BriefsRepository(db_session).get_status(brief.id) == BriefStatusEnum.draft
    assert _notification_types(db_session, seed_data.validator.id) == []


def test_submit_rejects_end_before_start(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)
    brief = create_brief(db_session, actor, draft(startDate="2025-04-10", endDate="2025-04-01"), now=now)

    with pytest.raises(ValidationFailedError) as excinfo:
        submit_brief(db_session, actor, brief.id, now=now)

    assert {"field": "endDate", "message": "End date must not be before the start date."} in excinfo.value.errors


def test_submit_blocked_by_policy_errors(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)
    brief = create_brief(
        db_session,
        actor,
        draft(templateId=str(seed_data.event.id), customFields={"eventName": "Yoga day"}),
        now=now,
    )

    with pytest.raises(ValidationFailedError) as excinfo:
        submit_brief(db_session, actor, brief.id, now=now)

    assert any(error.get("rule") == "required_fields" for error in excinfo.value.errors)
    assert BriefsRepository(db_session).get_status(brief.id) == BriefStatusEnum.draft


def test_create_with_failed_submit_writes_nothing(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)

    with pytest.raises(ValidationFailedError):
        create_brief(db_session, actor, draft(deadline=(now + timedelta(days=1)).isoformat()), submit=True, now=now)

    page = list_briefs(db_session, actor)
    assert page.total == 0


def test_deadline_must_be_within_two_years(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)

    with pytest.raises(ValidationFailedError) as excinfo:
        create_brief(db_session, actor, draft(deadline="9999-12-31T23:00:00+00:00"), now=now)
    assert [error["field"] for error in excinfo.value.errors] == ["deadline"]
    assert list_briefs(db_session, actor).total == 0

    brief = create_brief(db_session, actor, draft(deadline=(now + timedelta(days=729)).isoformat()), now=now)
    with pytest.raises(ValidationFailedError):
        update_brief(db_session, actor, brief.id, draft(deadline=(now + timedelta(days=731)).isoformat()), now=now)


def test_manager_cannot_create_for_unmanaged_club(db_session, seed_data, auth_for, draft, now):
    with pytest.raises(ForbiddenError):
        create_brief(db_session, auth_for(seed_data.manager), draft(clubId=str(seed_data.bare_club.id)), now=now)


def test_validator_cannot_create_briefs(db_session, seed_data, auth_for, draft, now):
    with pytest.raises(ForbiddenError):
        create_brief(db_session, auth_for(seed_data.validator), draft(), now=now)


def test_cancel_only_from_draft_or_submitted(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)
    brief = create_brief(db_session, actor, draft(), now=now)

    cancelled = cancel_brief(db_session, actor, brief.id)
    assert cancelled.status == BriefStatusEnum.cancelled
    assert "BRIEF_CANCELLED" in _actions(db_session, brief.id)

    with pytest.raises(StateConflictError) as excinfo:
        cancel_brief(db_session, actor, brief.id)
    assert excinfo.value.actual == BriefStatusEnum.cancelled


def test_author_cannot_edit_submitted_brief(db_session, seed_data, auth_for, draft, now):
    actor = auth_for(seed_data.manager)
    brief = create_brief(db_session, actor, draft(), submit=True, now=now)

    with pytest.raises(ForbiddenError):
        update_brief(db_session, actor, brief.id, draft(title="Changed"), now=now)


def test_validator_edit_notifies_author(db_session, seed_data, auth_for, draft, now):
    brief = create_brief(db_session, auth_for(seed_data.manager), draft(), submit=True, now=now)

    edited = update_brief(
        db_session,
        auth_for(seed_data.validator),
        brief.id,
        draft(title="Yoga retention campaign for loyal members (spring)"),
        now=now,
    )

    assert edited.status == BriefStatusEnum.submitted
    assert edited.title.endswith("(spring)")
    assert "BRIEF_EDITED_BY_VALIDATOR" in _actions(db_session, brief.id)
    assert NotificationTypeEnum.brief_edited_by_validator in _notification_types(db_session, seed_data.manager.id)


def test_validator_cannot_move_brief_to_another_club(db_session, seed_data, auth_for, draft, now):
    brief = create_brief(db_session, auth_for(seed_data.manager), draft(), submit=True, now=now)

    with pytest.raises(ValidationFailedError):
        update_brief(
            db_session,
            auth_for(seed_data.validator),
            brief.id,
            draft(clubId=str(seed_data.flagship.id)),
            now=now,
        )


def test_resubmission_loop(db_session, seed_data, auth_for, draft, now):
    manager = auth_for(seed_data.manager)
    validator = auth_for(seed_data.validator)
    brief = create_brief(db_session, manager, draft(), submit=True, now=now)

    decide_brief(
        db_session,
        validator,
        ApprovalActionRequest(
            briefId=brief.id,
            decision=ApprovalDecisionEnum.changes_requested,
            notes="Add the class schedule.",
        ),
        now=now,
    )
    assert get_brief(db_session, manager, brief.id).status == BriefStatusEnum.changes_requested

    resubmitted = update_brief(
        db_session,
        manager,
        brief.id,
        draft(context="Invite existing members to weekly yoga classes, Mon/Wed 7pm."),
        submit=True,
        now=now,
    )
    assert resubmitted.status == BriefStatusEnum.submitted
    assert "BRIEF_RESUBMITTED" in _actions(db_session, brief.id)
    assert NotificationTypeEnum.brief_resubmitted in _notification_types(db_session, seed_data.validator.id)

    result = decide_brief(
        db_session,
        validator,
        ApprovalActionRequest(briefId=brief.id, decision=ApprovalDecisionEnum.approved),
        now=now,
    )
    assert result.brief.status == BriefStatusEnum.approved
    assert result.task is not None


def test_get_brief_scoping(db_session, seed_data, auth_for, draft, now):
    brief = create_brief(db_session, auth_for(seed_data.manager), draft(), now=now)

    assert get_brief(db_session, auth_for(seed_data.producer), brief.id).id == brief.id
    with pytest.raises(ForbiddenError):
        get_brief(db_session, auth_for(seed_data.other_validator), brief.id)
    with pytest.raises(NotFoundError):
        get_brief(db_session, auth_for(seed_data.admin), seed_data.club.id)


def test_list_briefs_is_role_scoped(db_session, seed_data, auth_for, draft, now):
    manager = auth_for(seed_data.manager)
    create_brief(db_session, manager, draft(), now=now)
    create_brief(db_session, manager, draft(clubId=str(seed_data.flagship.id), title="Flagship wellness"), now=now)
    create_brief(
        db_session,
        auth_for(seed_data.other_manager),
        draft(clubId=str(seed_data.bare_club.id), title="Wola open day"),
        now=now,
    )

    assert list_briefs(db_session, manager).total == 2
    assert list_briefs(db_session, auth_for(seed_data.validator)).total == 2
    assert list_briefs(db_session, auth_for(seed_data.other_validator)).total == 1
    assert list_briefs(db_session, auth_for(seed_data.admin)).total == 3

    page = list_briefs(db_session, auth_for(seed_data.producer), page=2, page_size=1)
    assert page.total == 3
    assert page.total_pages == 3
    assert len(page.items) == 1

    searched = list_briefs(db_session, auth_for(seed_data.admin), search="wellness")
    assert [item.title for item in searched.items] == ["Flagship wellness"]
    assert list_briefs(db_session, manager, status=BriefStatusEnum.submitted).total == 0
