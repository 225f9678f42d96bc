from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.db.models import Club
from briefflow.schemas.clubs import ClubContextRequest, ClubContextResponse
from briefflow.services import clubs as clubs_service
from briefflow.timeutils import as_utc


router = APIRouter(prefix="/clubs", tags=["clubs"])


def _context_to_response(club: Club) -> ClubContextResponse:
    return ClubContextResponse(
        clubId=club.id,
        clubName=club.name,
        tier=club.tier,
        hasContext=club.has_context,
        clubCharacter=club.club_character,
        customCharacter=club.custom_character,
        keyMemberGroups=club.key_member_groups or [],
        localConstraints=club.local_constraints or [],
        topActivities=club.top_activities or [],
        activityReasons=club.activity_reasons or {},
        localDecisionBrief=club.local_decision_brief,
        contextUpdatedAt=as_utc(club.context_updated_at),
        contextUpdatedById=club.context_updated_by_id,
    )


@router.get("/{club_id}/context", response_model=ClubContextResponse)
def get_club_context(
    club_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return _context_to_response(clubs_service.get_club_context(session, auth, club_id))


@router.put("/{club_id}/context", response_model=ClubContextResponse)
def update_club_context(
    club_id: UUID,
    payload: ClubContextRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return _context_to_response(clubs_service.update_club_context(session, auth, club_id, payload))
