from uuid import uuid4

import pytest

from briefflow.auth.capabilities import (
    BriefResource,
    ClubResource,
    TaskResource,
    check_capability,
    require_capability,
)
from briefflow.auth.dependencies import AuthContext
from briefflow.db.enums import BriefStatusEnum, TaskStatusEnum, UserRoleEnum
from briefflow.errors import ForbiddenError

CLUB = uuid4()
OTHER_CLUB = uuid4()


def _actor(role, *, clubs=(), managed=()):
    return AuthContext(
        user_id=uuid4(),
        role=role,
        club_ids=frozenset(clubs),
        managed_club_ids=frozenset(managed),
    )


@pytest.fixture()
def manager():
    return _actor(UserRoleEnum.club_manager, clubs=[CLUB], managed=[CLUB])


@pytest.fixture()
def validator():
    return _actor(UserRoleEnum.validator, clubs=[CLUB])


@pytest.fixture()
def producer():
    return _actor(UserRoleEnum.production)


@pytest.fixture()
def admin():
    return _actor(UserRoleEnum.admin)


def _brief(author, status=BriefStatusEnum.draft, club_id=CLUB):
    return BriefResource(club_id=club_id, created_by_id=author.user_id, status=status)


def test_only_managers_of_the_club_create_briefs(manager, validator, admin):
    assert check_capability(manager, "brief.create", ClubResource(club_id=CLUB)).allowed
    assert not check_capability(manager, "brief.create", ClubResource(club_id=OTHER_CLUB)).allowed
    assert not check_capability(validator, "brief.create", ClubResource(club_id=CLUB)).allowed
    assert not check_capability(admin, "brief.create", ClubResource(club_id=CLUB)).allowed


def test_author_edits_only_in_editable_statuses(manager):
    for status in (BriefStatusEnum.draft, BriefStatusEnum.changes_requested):
        assert check_capability(manager, "brief.edit", _brief(manager, status)).allowed
    for status in (BriefStatusEnum.submitted, BriefStatusEnum.approved, BriefStatusEnum.cancelled):
        assert not check_capability(manager, "brief.edit", _brief(manager, status)).allowed


def test_other_manager_cannot_touch_brief(manager):
    stranger = _actor(UserRoleEnum.club_manager, clubs=[CLUB], managed=[CLUB])
    resource = _brief(manager)

    assert not check_capability(stranger, "brief.view", resource).allowed
    assert not check_capability(stranger, "brief.edit", resource).allowed
    assert not check_capability(stranger, "brief.submit", resource).allowed
    assert not check_capability(stranger, "brief.cancel", resource).allowed


def test_validator_scope_follows_club_links(manager, validator):
    own_club = _brief(manager, BriefStatusEnum.submitted)
    other_club = _brief(manager, BriefStatusEnum.submitted, club_id=OTHER_CLUB)

    assert check_capability(validator, "brief.view", own_club).allowed
    assert check_capability(validator, "brief.decide", own_club).allowed
    assert check_capability(validator, "brief.validator_edit", own_club).allowed
    assert not check_capability(validator, "brief.view", other_club).allowed
    assert not check_capability(validator, "brief.decide", other_club).allowed
    assert not check_capability(validator, "brief.validator_edit", _brief(manager, BriefStatusEnum.draft)).allowed


def test_only_validators_decide(manager, producer, admin):
    resource = _brief(manager, BriefStatusEnum.submitted)

    for actor in (manager, producer, admin):
        assert not check_capability(actor, "brief.decide", resource).allowed


def test_cancel_by_author_or_admin(manager, validator, admin):
    resource = _brief(manager, BriefStatusEnum.submitted)

    assert check_capability(manager, "brief.cancel", resource).allowed
    assert check_capability(admin, "brief.cancel", resource).allowed
    assert not check_capability(validator, "brief.cancel", resource).allowed


def test_task_progress_is_assignee_only(producer):
    other = _actor(UserRoleEnum.production)
    assigned = TaskResource(status=TaskStatusEnum.in_progress, assignee_id=producer.user_id)

    assert check_capability(producer, "task.progress", assigned).allowed
    assert not check_capability(other, "task.progress", assigned).allowed


def test_unassigned_queued_task_can_be_claimed(producer, admin):
    queued = TaskResource(status=TaskStatusEnum.queued)
    stale = TaskResource(status=TaskStatusEnum.in_review)

    decision = check_capability(producer, "task.progress", queued)
    assert decision.allowed
    assert decision.reason == "claim"
    assert not check_capability(producer, "task.progress", stale).allowed
    assert not check_capability(admin, "task.progress", queued).allowed


def test_outcome_and_task_view_roles(manager, validator, producer, admin):
    for actor in (producer, admin):
        assert check_capability(actor, "brief.tag_outcome").allowed
        assert check_capability(actor, "task.view").allowed
    for actor in (manager, validator):
        assert not check_capability(actor, "brief.tag_outcome").allowed
        assert not check_capability(actor, "task.view").allowed


def test_club_context_permissions(manager, validator, producer, admin):
    club = ClubResource(club_id=CLUB)

    assert check_capability(manager, "club.edit_context", club).allowed
    assert check_capability(admin, "club.edit_context", club).allowed
    assert not check_capability(validator, "club.edit_context", club).allowed
    assert check_capability(validator, "club.view_context", club).allowed
    assert check_capability(producer, "club.view_context", club).allowed
    assert not check_capability(validator, "club.view_context", ClubResource(club_id=OTHER_CLUB)).allowed


def test_strategy_is_admin_only(manager, admin):
    assert check_capability(admin, "strategy.manage").allowed
    assert not check_capability(manager, "strategy.manage").allowed


def test_require_capability_raises_forbidden(validator):
    with pytest.raises(ForbiddenError) as excinfo:
        require_capability(validator, "strategy.manage")

    assert excinfo.value.status_code == 403


def test_unknown_action_is_a_programming_error(admin):
    with pytest.raises(ValueError):
        check_capability(admin, "brief.delete")
