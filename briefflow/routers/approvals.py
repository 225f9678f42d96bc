from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.schemas.approvals import ApprovalActionRequest, ApprovalResponse
from briefflow.services.approvals import decide_brief
from briefflow.timeutils import as_utc


router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.post("", response_model=ApprovalResponse, status_code=status.HTTP_201_CREATED)
def create_approval(
    payload: ApprovalActionRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = decide_brief(session, auth, payload)
    approval = result.approval
    return ApprovalResponse(
        id=approval.id,
        briefId=approval.brief_id,
        validatorId=approval.validator_id,
        decision=approval.decision,
        notes=approval.notes,
        priority=approval.priority,
        slaDays=approval.sla_days,
        briefStatus=result.brief.status,
        taskId=result.task.id if result.task else None,
        createdAt=as_utc(approval.created_at),
    )
