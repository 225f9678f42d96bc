from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.schemas.clubs import TemplateResponse
from briefflow.services.clubs import list_templates


router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[TemplateResponse])
def get_templates(
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return [
        TemplateResponse(
            id=template.id,
            name=template.name,
            code=template.code,
            description=template.description,
            requiredFields=template.required_fields or {},
            defaultSlaDays=template.default_sla_days,
            defaultPriority=template.default_priority,
            isInternal=template.is_internal,
        )
        for template in list_templates(session)
    ]
