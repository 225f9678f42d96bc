from dataclasses import dataclass, field
import logging
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from briefflow.auth.clerk import verify_clerk_token
from briefflow.db.deps import get_session
from briefflow.db.enums import UserRoleEnum
from briefflow.db.repositories.users import UsersRepository
from briefflow.errors import ForbiddenError, UnauthorizedError


bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("auth.deps")


@dataclass(frozen=True)
class AuthContext:
    user_id: UUID
    role: UserRoleEnum
    club_ids: frozenset[UUID] = field(default_factory=frozenset)
    managed_club_ids: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleEnum.admin


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing bearer token.")

    claims = verify_clerk_token(credentials.credentials)
    subject = claims.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid token claims.")

    users_repo = UsersRepository(session)
    user = users_repo.get_by_external_id(subject)
    if user is None or not user.is_active:
        logger.warning("No active user for token subject", extra={"sub": subject})
        raise ForbiddenError("User is not registered or inactive.")

    memberships = users_repo.club_memberships(user.id)
    context = AuthContext(
        user_id=user.id,
        role=user.role,
        club_ids=frozenset(m.club_id for m in memberships),
        managed_club_ids=frozenset(m.club_id for m in memberships if m.is_manager),
    )
    logger.debug(
        "AuthContext built",
        extra={"sub": subject, "user_id": str(user.id), "role": user.role.value, "clubs": len(context.club_ids)},
    )
    return context
