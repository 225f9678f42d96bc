from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from briefflow.auth.capabilities import ClubResource, require_capability
from briefflow.auth.dependencies import AuthContext
from briefflow.db.models import Club, RequestTemplate, StrategyDocument
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.clubs import BrandsRepository, ClubsRepository
from briefflow.db.repositories.strategy_documents import StrategyDocumentsRepository
from briefflow.db.repositories.templates import TemplatesRepository
from briefflow.errors import NotFoundError
from briefflow.schemas.clubs import ClubContextRequest, StrategyDocumentRequest
from briefflow.timeutils import utcnow

logger = logging.getLogger(__name__)


def _load_club(session: Session, club_id: UUID) -> Club:
    club = ClubsRepository(session).get(club_id)
    if club is None:
        raise NotFoundError("Club not found.")
    return club


def get_club_context(session: Session, actor: AuthContext, club_id: UUID) -> Club:
    club = _load_club(session, club_id)
    require_capability(actor, "club.view_context", ClubResource(club_id=club.id))
    return club


def update_club_context(session: Session, actor: AuthContext, club_id: UUID, payload: ClubContextRequest) -> Club:
    club = _load_club(session, club_id)
    require_capability(actor, "club.edit_context", ClubResource(club_id=club.id))

    club.club_character = payload.clubCharacter
    club.custom_character = (payload.customCharacter or "").strip() or None
    club.key_member_groups = [group.strip() for group in payload.keyMemberGroups if group.strip()]
    club.local_constraints = [item.strip() for item in payload.localConstraints if item.strip()]
    club.top_activities = [activity.model_dump() for activity in payload.topActivities]
    club.activity_reasons = payload.activityReasons.model_dump()
    club.local_decision_brief = (payload.localDecisionBrief or "").strip() or None
    club.context_updated_at = utcnow()
    club.context_updated_by_id = actor.user_id
    try:
        AuditLogsRepository(session).record(
            user_id=actor.user_id,
            action="CLUB_CONTEXT_UPDATED",
            details={"clubId": str(club.id)},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(club)
    logger.info("Club context updated", extra={"club_id": str(club.id), "user_id": str(actor.user_id)})
    return club


def upsert_strategy_document(
    session: Session,
    actor: AuthContext,
    brand_id: UUID,
    payload: StrategyDocumentRequest,
) -> StrategyDocument:
    require_capability(actor, "strategy.manage")
    brand = BrandsRepository(session).get(brand_id)
    if brand is None:
        raise NotFoundError("Brand not found.")
    document = StrategyDocumentsRepository(session).upsert_active(
        brand_id=brand.id,
        title=payload.title.strip(),
        content=payload.content,
        updated_by_id=actor.user_id,
    )
    logger.info("Strategy document saved", extra={"brand_id": str(brand.id), "document_id": str(document.id)})
    return document


def list_templates(session: Session) -> list[RequestTemplate]:
    return TemplatesRepository(session).list_active()
