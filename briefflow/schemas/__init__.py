from briefflow.schemas.approvals import ApprovalActionRequest, ApprovalResponse
from briefflow.schemas.briefs import (
    BriefDraftRequest,
    BriefListResponse,
    BriefResponse,
    OutcomeRequest,
    OutcomeResponse,
)
from briefflow.schemas.clubs import ClubContextRequest, ClubContextResponse, TemplateResponse
from briefflow.schemas.production import TaskResponse, TaskUpdateRequest

__all__ = [
    "ApprovalActionRequest",
    "ApprovalResponse",
    "BriefDraftRequest",
    "BriefListResponse",
    "BriefResponse",
    "OutcomeRequest",
    "OutcomeResponse",
    "ClubContextRequest",
    "ClubContextResponse",
    "TemplateResponse",
    "TaskResponse",
    "TaskUpdateRequest",
]
