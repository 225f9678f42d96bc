from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.db.models import Notification
from briefflow.schemas.notifications import NotificationResponse
from briefflow.services.notifications import list_notifications, mark_notification_read
from briefflow.timeutils import as_utc


router = APIRouter(prefix="/notifications", tags=["notifications"])


def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        linkUrl=notification.link_url,
        readAt=as_utc(notification.read_at),
        createdAt=as_utc(notification.created_at),
    )


@router.get("", response_model=list[NotificationResponse])
def get_notifications(
    unread: bool = Query(default=False),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return [_to_response(item) for item in list_notifications(session, auth.user_id, unread_only=unread)]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def read_notification(
    notification_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return _to_response(mark_notification_read(session, auth.user_id, notification_id))
