from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from briefflow.db.enums import ApprovalDecisionEnum, NotificationTypeEnum, UserRoleEnum
from briefflow.db.models import Brief, Notification, ProductionTask
from briefflow.db.repositories.notifications import NotificationsRepository
from briefflow.db.repositories.users import UsersRepository
from briefflow.errors import NotFoundError
from briefflow.timeutils import utcnow

logger = logging.getLogger(__name__)


def _brief_link(brief: Brief) -> str:
    return f"/briefs/{brief.id}"


def _stage(
    session: Session,
    *,
    user_ids: list[UUID],
    type: NotificationTypeEnum,
    title: str,
    message: str,
    link_url: Optional[str],
) -> list[Notification]:
    if not user_ids:
        return []
    notifications = NotificationsRepository(session).create_many(
        user_ids=user_ids, type=type, title=title, message=message, link_url=link_url
    )
    logger.debug("Staged notifications", extra={"type": type.value, "count": len(notifications)})
    return notifications


def notify_validators_of_submission(session: Session, brief: Brief, *, resubmitted: bool = False) -> list[Notification]:
    validators = UsersRepository(session).validators_for_club(brief.club_id)
    if resubmitted:
        type_ = NotificationTypeEnum.brief_resubmitted
        title = "Brief resubmitted"
        message = f"{brief.code}: {brief.title} was corrected and resubmitted."
    else:
        type_ = NotificationTypeEnum.brief_submitted
        title = "New brief to review"
        message = f"{brief.code}: {brief.title} is waiting for validation."
    return _stage(
        session,
        user_ids=[user.id for user in validators],
        type=type_,
        title=title,
        message=message,
        link_url=f"/approvals/{brief.id}",
    )


def notify_author_of_validator_edit(session: Session, brief: Brief) -> list[Notification]:
    return _stage(
        session,
        user_ids=[brief.created_by_id],
        type=NotificationTypeEnum.brief_edited_by_validator,
        title="Brief edited by validator",
        message=f"A validator updated {brief.code}: {brief.title}.",
        link_url=_brief_link(brief),
    )


_DECISION_NOTIFICATIONS = {
    ApprovalDecisionEnum.approved: (NotificationTypeEnum.brief_approved, "Brief approved"),
    ApprovalDecisionEnum.changes_requested: (NotificationTypeEnum.changes_requested, "Changes requested"),
    ApprovalDecisionEnum.rejected: (NotificationTypeEnum.brief_rejected, "Brief rejected"),
}


def notify_author_of_decision(
    session: Session,
    brief: Brief,
    decision: ApprovalDecisionEnum,
    notes: Optional[str],
) -> list[Notification]:
    type_, title = _DECISION_NOTIFICATIONS[decision]
    message = f"{brief.code}: {brief.title}"
    if notes:
        message = f"{message}. Validator notes: {notes}"
    return _stage(
        session,
        user_ids=[brief.created_by_id],
        type=type_,
        title=title,
        message=message,
        link_url=_brief_link(brief),
    )


def notify_production_of_new_task(session: Session, brief: Brief, task: ProductionTask) -> list[Notification]:
    production_users = UsersRepository(session).active_by_role(UserRoleEnum.production)
    return _stage(
        session,
        user_ids=[user.id for user in production_users],
        type=NotificationTypeEnum.new_task,
        title="New production task",
        message=f"{brief.code}: {brief.title} (priority {brief.priority.value}, SLA {task.sla_days} days).",
        link_url=f"/production/{task.id}",
    )


def notify_author_of_delivery(session: Session, brief: Brief, task: ProductionTask) -> list[Notification]:
    return _stage(
        session,
        user_ids=[brief.created_by_id],
        type=NotificationTypeEnum.task_delivered,
        title="Materials delivered",
        message=f"Production delivered {brief.code}: {brief.title}.",
        link_url=_brief_link(brief),
    )


def list_notifications(session: Session, user_id: UUID, *, unread_only: bool = False) -> list[Notification]:
    return NotificationsRepository(session).list_for_user(user_id, unread_only=unread_only)


def mark_notification_read(session: Session, user_id: UUID, notification_id: UUID) -> Notification:
    notification = NotificationsRepository(session).mark_read(
        notification_id=notification_id, user_id=user_id, read_at=utcnow()
    )
    if notification is None:
        raise NotFoundError("Notification not found.")
    return notification
