"""
Role/ownership capability checks.

Each action maps to one predicate over (actor, resource); routers and
services ask ``require_capability`` instead of inlining role tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Union
from uuid import UUID

from briefflow.auth.dependencies import AuthContext
from briefflow.db.enums import BriefStatusEnum, TaskStatusEnum, UserRoleEnum
from briefflow.errors import ForbiddenError

logger = logging.getLogger(__name__)

Action = Literal[
    "brief.create",
    "brief.view",
    "brief.edit",
    "brief.validator_edit",
    "brief.submit",
    "brief.cancel",
    "brief.decide",
    "brief.tag_outcome",
    "task.view",
    "task.progress",
    "club.view_context",
    "club.edit_context",
    "strategy.manage",
]


@dataclass(frozen=True)
class BriefResource:
    club_id: UUID
    created_by_id: UUID
    status: BriefStatusEnum


@dataclass(frozen=True)
class TaskResource:
    status: TaskStatusEnum
    assignee_id: Optional[UUID] = None


@dataclass(frozen=True)
class ClubResource:
    club_id: UUID


Resource = Union[BriefResource, TaskResource, ClubResource, None]


def brief_resource(brief) -> BriefResource:
    return BriefResource(club_id=brief.club_id, created_by_id=brief.created_by_id, status=brief.status)


def task_resource(task) -> TaskResource:
    return TaskResource(status=task.status, assignee_id=task.assignee_id)


@dataclass(frozen=True)
class CapabilityDecision:
    allowed: bool
    reason: str


def _allow(reason: str = "ok") -> CapabilityDecision:
    return CapabilityDecision(allowed=True, reason=reason)


def _deny(reason: str) -> CapabilityDecision:
    return CapabilityDecision(allowed=False, reason=reason)


def _expect(resource: Resource, kind: type) -> None:
    if not isinstance(resource, kind):
        raise TypeError(f"Expected {kind.__name__}, got {type(resource).__name__}")


def _brief_create(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, ClubResource)
    if actor.role != UserRoleEnum.club_manager:
        return _deny("Only club managers can create briefs.")
    if resource.club_id not in actor.managed_club_ids:
        return _deny("You do not manage this club.")
    return _allow()


def _brief_view(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, BriefResource)
    if actor.role in (UserRoleEnum.admin, UserRoleEnum.production):
        return _allow()
    if actor.role == UserRoleEnum.club_manager and resource.created_by_id == actor.user_id:
        return _allow()
    if actor.role == UserRoleEnum.validator and resource.club_id in actor.club_ids:
        return _allow()
    return _deny("You do not have access to this brief.")


def _owner_manager(actor: AuthContext, resource: BriefResource) -> Optional[CapabilityDecision]:
    if actor.role != UserRoleEnum.club_manager:
        return _deny("Only the club manager who created the brief can do this.")
    if resource.created_by_id != actor.user_id:
        return _deny("Only the author can do this.")
    if resource.club_id not in actor.managed_club_ids:
        return _deny("You no longer manage this club.")
    return None


def _brief_edit(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, BriefResource)
    denied = _owner_manager(actor, resource)
    if denied:
        return denied
    if resource.status not in (BriefStatusEnum.draft, BriefStatusEnum.changes_requested):
        return _deny("Only draft briefs or briefs with requested changes can be edited.")
    return _allow()


def _brief_validator_edit(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, BriefResource)
    if actor.role != UserRoleEnum.validator:
        return _deny("Only validators can edit submitted briefs.")
    if resource.club_id not in actor.club_ids:
        return _deny("You are not assigned to this club.")
    if resource.status != BriefStatusEnum.submitted:
        return _deny("Validators can only edit submitted briefs.")
    return _allow()


def _brief_submit(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, BriefResource)
    denied = _owner_manager(actor, resource)
    if denied:
        return denied
    return _allow()


def _brief_cancel(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, BriefResource)
    if actor.is_admin or resource.created_by_id == actor.user_id:
        return _allow()
    return _deny("Only the author or an admin can cancel a brief.")


def _brief_decide(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, BriefResource)
    if actor.role != UserRoleEnum.validator:
        return _deny("Only validators can approve briefs.")
    if resource.club_id not in actor.club_ids:
        return _deny("You are not assigned to this club.")
    return _allow()


def _brief_tag_outcome(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    if actor.role in (UserRoleEnum.production, UserRoleEnum.admin):
        return _allow()
    return _deny("Only production staff or admins can tag outcomes.")


def _task_view(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    if actor.role in (UserRoleEnum.production, UserRoleEnum.admin):
        return _allow()
    return _deny("Only production staff or admins can view production tasks.")


def _task_progress(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, TaskResource)
    if actor.role != UserRoleEnum.production:
        return _deny("Only production staff can update tasks.")
    if resource.assignee_id is None:
        if resource.status == TaskStatusEnum.queued:
            return _allow("claim")
        return _deny("Task has no assignee.")
    if resource.assignee_id != actor.user_id:
        return _deny("Only the assignee can update this task.")
    return _allow()


def _club_view_context(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, ClubResource)
    if actor.role in (UserRoleEnum.admin, UserRoleEnum.production):
        return _allow()
    if resource.club_id in actor.club_ids:
        return _allow()
    return _deny("You do not have access to this club.")


def _club_edit_context(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    _expect(resource, ClubResource)
    if actor.is_admin:
        return _allow()
    if actor.role == UserRoleEnum.club_manager and resource.club_id in actor.managed_club_ids:
        return _allow()
    return _deny("Only the club manager or an admin can edit club context.")


def _strategy_manage(actor: AuthContext, resource: Resource) -> CapabilityDecision:
    if actor.is_admin:
        return _allow()
    return _deny("Only admins can manage strategy documents.")


_CHECKS: dict[str, Callable[[AuthContext, Resource], CapabilityDecision]] = {
    "brief.create": _brief_create,
    "brief.view": _brief_view,
    "brief.edit": _brief_edit,
    "brief.validator_edit": _brief_validator_edit,
    "brief.submit": _brief_submit,
    "brief.cancel": _brief_cancel,
    "brief.decide": _brief_decide,
    "brief.tag_outcome": _brief_tag_outcome,
    "task.view": _task_view,
    "task.progress": _task_progress,
    "club.view_context": _club_view_context,
    "club.edit_context": _club_edit_context,
    "strategy.manage": _strategy_manage,
}


def check_capability(actor: AuthContext, action: Action, resource: Resource = None) -> CapabilityDecision:
    try:
        check = _CHECKS[action]
    except KeyError as exc:
        raise ValueError(f"Unknown action: {action}") from exc
    return check(actor, resource)


def require_capability(actor: AuthContext, action: Action, resource: Resource = None) -> CapabilityDecision:
    decision = check_capability(actor, action, resource)
    if not decision.allowed:
        logger.warning(
            "Capability denied",
            extra={"action": action, "user_id": str(actor.user_id), "role": actor.role.value},
        )
        raise ForbiddenError(decision.reason)
    return decision
