from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from briefflow.auth.capabilities import ClubResource, require_capability
from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.policy.config import get_policy_config
from briefflow.schemas.briefs import BriefDraftRequest
from briefflow.schemas.policy import PolicyConfigResponse
from briefflow.services.briefs import snapshot_from_payload
from briefflow.services.policy_engine import PolicyCheckResult, check_brief_policy


router = APIRouter(prefix="/policy", tags=["policy"])


@router.post("/check", response_model=PolicyCheckResult)
def check_policy(
    payload: BriefDraftRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    require_capability(auth, "brief.create", ClubResource(club_id=payload.clubId))
    return check_brief_policy(snapshot_from_payload(session, payload))


@router.get("/config", response_model=PolicyConfigResponse)
def policy_config(
    brand_code: Optional[str] = Query(default=None, alias="brandCode"),
    auth: AuthContext = Depends(get_current_user),
):
    return PolicyConfigResponse(**get_policy_config(brand_code))
