from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from briefflow.auth.dependencies import AuthContext, get_current_user
from briefflow.db.deps import get_session
from briefflow.schemas.clubs import StrategyDocumentRequest, StrategyDocumentResponse
from briefflow.services.clubs import upsert_strategy_document
from briefflow.timeutils import as_utc


router = APIRouter(prefix="/brands", tags=["brands"])


@router.put("/{brand_id}/strategy", response_model=StrategyDocumentResponse)
def put_strategy_document(
    brand_id: UUID,
    payload: StrategyDocumentRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    document = upsert_strategy_document(session, auth, brand_id, payload)
    return StrategyDocumentResponse(
        id=document.id,
        brandId=document.brand_id,
        title=document.title,
        content=document.content,
        isActive=document.is_active,
        updatedAt=as_utc(document.updated_at),
    )
