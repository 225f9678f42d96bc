from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from briefflow.db.enums import NotificationTypeEnum
from briefflow.db.models import Notification
from briefflow.db.repositories.base import Repository


class NotificationsRepository(Repository):
    def create_many(
        self,
        *,
        user_ids: Iterable[UUID],
        type: NotificationTypeEnum,
        title: str,
        message: str,
        link_url: Optional[str] = None,
    ) -> list[Notification]:
        notifications = [
            Notification(user_id=user_id, type=type, title=title, message=message, link_url=link_url)
            for user_id in dict.fromkeys(user_ids)
        ]
        self.session.add_all(notifications)
        self.session.flush()
        return notifications

    def list_for_user(self, user_id: UUID, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read_at.is_(None))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        return list(self.session.scalars(stmt).all())

    def mark_read(self, *, notification_id: UUID, user_id: UUID, read_at: datetime) -> Optional[Notification]:
        self.session.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                Notification.read_at.is_(None),
            )
            .values(read_at=read_at)
            .execution_options(synchronize_session="fetch")
        )
        self.session.commit()
        stmt = select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        return self.session.scalars(stmt).first()
