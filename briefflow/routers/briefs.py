from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.db.enums import BriefStatusEnum
from briefflow.db.models import Brief
from briefflow.schemas.briefs import (
    BriefDraftRequest,
    BriefListResponse,
    BriefResponse,
    OutcomeRequest,
    OutcomeResponse,
)
from briefflow.services import briefs as briefs_service
from briefflow.services import production as production_service
from briefflow.services.alignment import AlignmentScore
from briefflow.services.policy_engine import PolicyCheckResult
from briefflow.timeutils import as_utc


router = APIRouter(prefix="/briefs", tags=["briefs"])


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def brief_to_response(brief: Brief) -> BriefResponse:
    return BriefResponse(
        id=brief.id,
        code=brief.code,
        clubId=brief.club_id,
        clubName=brief.club.name,
        brandId=brief.brand_id,
        brandCode=brief.brand.code,
        templateId=brief.template_id,
        templateCode=brief.template.code,
        createdById=brief.created_by_id,
        title=brief.title,
        context=brief.context,
        objective=brief.objective,
        kpiDescription=brief.kpi_description,
        kpiTarget=_optional_float(brief.kpi_target),
        priority=brief.priority,
        status=brief.status,
        deadline=as_utc(brief.deadline),
        startDate=brief.start_date,
        endDate=brief.end_date,
        offerDetails=brief.offer_details,
        legalCopy=brief.legal_copy,
        customFields=brief.custom_fields or {},
        assetLinks=brief.asset_links or [],
        formats=brief.formats or [],
        customFormats=brief.custom_formats or [],
        estimatedCost=_optional_float(brief.estimated_cost),
        isCrisisCommunication=brief.is_crisis_communication,
        outcome=brief.outcome,
        outcomeNote=brief.outcome_note,
        submittedAt=as_utc(brief.submitted_at),
        decidedAt=as_utc(brief.decided_at),
        createdAt=as_utc(brief.created_at),
        updatedAt=as_utc(brief.updated_at),
    )


def _outcome_to_response(brief: Brief) -> OutcomeResponse:
    return OutcomeResponse(
        briefId=brief.id,
        outcome=brief.outcome,
        outcomeNote=brief.outcome_note,
        outcomeCycle=brief.outcome_cycle,
        outcomeTaggedAt=as_utc(brief.outcome_tagged_at),
    )


@router.get("", response_model=BriefListResponse)
def list_briefs(
    status_filter: Optional[BriefStatusEnum] = Query(default=None, alias="status"),
    q: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, alias="pageSize"),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = briefs_service.list_briefs(
        session, auth, status=status_filter, page=page, page_size=page_size, search=q
    )
    return BriefListResponse(
        items=[brief_to_response(brief) for brief in result.items],
        total=result.total,
        page=result.page,
        pageSize=result.page_size,
        totalPages=result.total_pages,
    )


@router.post("", response_model=BriefResponse, status_code=status.HTTP_201_CREATED)
def create_brief(
    payload: BriefDraftRequest,
    submit: bool = False,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    brief = briefs_service.create_brief(session, auth, payload, submit=submit)
    return brief_to_response(brief)


@router.get("/{brief_id}", response_model=BriefResponse)
def get_brief(
    brief_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return brief_to_response(briefs_service.get_brief(session, auth, brief_id))


@router.put("/{brief_id}", response_model=BriefResponse)
def update_brief(
    brief_id: UUID,
    payload: BriefDraftRequest,
    submit: bool = False,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    brief = briefs_service.update_brief(session, auth, brief_id, payload, submit=submit)
    return brief_to_response(brief)


@router.delete("/{brief_id}", response_model=BriefResponse)
def cancel_brief(
    brief_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return brief_to_response(briefs_service.cancel_brief(session, auth, brief_id))


@router.post("/{brief_id}/submit", response_model=BriefResponse)
def submit_brief(
    brief_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return brief_to_response(briefs_service.submit_brief(session, auth, brief_id))


@router.get("/{brief_id}/policy", response_model=PolicyCheckResult)
def get_brief_policy(
    brief_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    brief = briefs_service.get_brief(session, auth, brief_id)
    return briefs_service.evaluate_brief_policy(session, brief)


@router.get("/{brief_id}/alignment", response_model=Optional[AlignmentScore])
def get_brief_alignment(
    brief_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return briefs_service.get_brief_alignment(session, auth, brief_id)


@router.post("/{brief_id}/outcome", response_model=OutcomeResponse)
def tag_outcome(
    brief_id: UUID,
    payload: OutcomeRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return _outcome_to_response(production_service.tag_outcome(session, auth, brief_id, payload))


@router.get("/{brief_id}/outcome", response_model=OutcomeResponse)
def get_outcome(
    brief_id: UUID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return _outcome_to_response(production_service.get_outcome(session, auth, brief_id))
