from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from briefflow.db.enums import UserRoleEnum
from briefflow.db.models import User, UserClub
from briefflow.db.repositories.base import Repository


class UsersRepository(Repository):
    def get(self, user_id: UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        stmt = select(User).where(User.external_id == external_id)
        return self.session.scalars(stmt).first()

    def club_memberships(self, user_id: UUID) -> list[UserClub]:
        stmt = select(UserClub).where(UserClub.user_id == user_id)
        return list(self.session.scalars(stmt).all())

    def active_by_role(self, role: UserRoleEnum) -> list[User]:
        stmt = select(User).where(User.role == role, User.is_active.is_(True)).order_by(User.created_at)
        return list(self.session.scalars(stmt).all())

    def validators_for_club(self, club_id: UUID) -> list[User]:
        stmt = (
            select(User)
            .join(UserClub, UserClub.user_id == User.id)
            .where(
                UserClub.club_id == club_id,
                User.role == UserRoleEnum.validator,
                User.is_active.is_(True),
            )
            .order_by(User.created_at)
        )
        return list(self.session.scalars(stmt).all())
