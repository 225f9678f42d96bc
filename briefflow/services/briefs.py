from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from briefflow.auth.capabilities import ClubResource, brief_resource, require_capability
from briefflow.auth.dependencies import AuthContext
from briefflow.config import settings
from briefflow.db.enums import BriefStatusEnum, UserRoleEnum
from briefflow.db.models import Brief, Club, RequestTemplate
from briefflow.db.repositories.audit_logs import AuditLogsRepository
from briefflow.db.repositories.briefs import BriefsRepository
from briefflow.db.repositories.clubs import ClubsRepository
from briefflow.db.repositories.strategy_documents import StrategyDocumentsRepository
from briefflow.db.repositories.templates import TemplatesRepository
from briefflow.errors import NotFoundError, StateConflictError, ValidationFailedError
from briefflow.policy.config import PolicyConfig
from briefflow.schemas.briefs import BriefDraftRequest
from briefflow.services.alignment import AlignmentScore, score_alignment
from briefflow.services.notifications import notify_author_of_validator_edit, notify_validators_of_submission
from briefflow.services.policy_engine import BriefSnapshot, PolicyCheckResult, check_brief_policy
from briefflow.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = (BriefStatusEnum.draft, BriefStatusEnum.changes_requested)
CANCELLABLE_STATUSES = (BriefStatusEnum.draft, BriefStatusEnum.submitted)
MAX_DEADLINE_HORIZON = timedelta(days=730)


@dataclass
class BriefPage:
    items: list[Brief]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


# ---- snapshots -------------------------------------------------------------


def _snapshot(
    session: Session,
    *,
    club: Club,
    template: RequestTemplate,
    title: str,
    context: str,
    deadline: datetime,
    **fields: Any,
) -> BriefSnapshot:
    return BriefSnapshot(
        title=title,
        context=context,
        deadline=as_utc(deadline),
        brand_code=club.brand.code if club.brand else None,
        club_tier=club.tier,
        has_club_context=club.has_context,
        has_strategy_document=StrategyDocumentsRepository(session).has_active(club.brand_id),
        template_code=template.code,
        template_default_sla_days=template.default_sla_days,
        template_default_priority=template.default_priority,
        template_required_fields=tuple(template.required_field_names),
        template_is_internal=template.is_internal,
        template_is_blacklisted=template.is_blacklisted,
        template_blacklist_reason=template.blacklist_reason,
        **fields,
    )


def snapshot_from_brief(session: Session, brief: Brief) -> BriefSnapshot:
    return _snapshot(
        session,
        club=brief.club,
        template=brief.template,
        title=brief.title,
        context=brief.context,
        deadline=brief.deadline,
        objective=brief.objective,
        kpi_description=brief.kpi_description,
        estimated_cost=float(brief.estimated_cost) if brief.estimated_cost is not None else None,
        is_crisis_communication=brief.is_crisis_communication,
        formats=tuple(brief.formats or ()),
        custom_formats=tuple(brief.custom_formats or ()),
        custom_fields=dict(brief.custom_fields or {}),
        offer_details=brief.offer_details,
        legal_copy=brief.legal_copy,
    )


def snapshot_from_payload(
    session: Session,
    payload: BriefDraftRequest,
    *,
    now: Optional[datetime] = None,
) -> BriefSnapshot:
    _check_deadline_horizon(payload, as_utc(now) or utcnow())
    club, template = _resolve_club_and_template(session, payload.clubId, payload.templateId)
    return _snapshot(
        session,
        club=club,
        template=template,
        title=payload.title,
        context=payload.context,
        deadline=payload.deadline,
        objective=payload.objective,
        kpi_description=payload.kpiDescription,
        estimated_cost=payload.estimatedCost,
        is_crisis_communication=payload.isCrisisCommunication,
        formats=tuple(payload.formats),
        custom_formats=tuple(payload.customFormats),
        custom_fields=dict(payload.customFields),
        offer_details=payload.offerDetails,
        legal_copy=payload.legalCopy,
    )


def evaluate_brief_policy(
    session: Session,
    brief: Brief,
    *,
    config: Optional[PolicyConfig] = None,
    now: Optional[datetime] = None,
) -> PolicyCheckResult:
    return check_brief_policy(snapshot_from_brief(session, brief), config=config, now=now)


# ---- helpers ---------------------------------------------------------------


def _resolve_club_and_template(session: Session, club_id: UUID, template_id: UUID) -> tuple[Club, RequestTemplate]:
    club = ClubsRepository(session).get(club_id)
    if club is None:
        raise NotFoundError("Club not found.")
    template = TemplatesRepository(session).get(template_id)
    if template is None or not template.is_active:
        raise ValidationFailedError(
            "Request template is not available.",
            errors=[{"field": "templateId", "message": "Template not found or inactive."}],
        )
    return club, template


def _check_deadline_horizon(payload: BriefDraftRequest, now: datetime) -> None:
    if as_utc(payload.deadline) > now + MAX_DEADLINE_HORIZON:
        raise ValidationFailedError(
            "Deadline is too far in the future.",
            errors=[{"field": "deadline", "message": "Deadline must be within two years."}],
        )


def _load_brief(session: Session, brief_id: UUID) -> Brief:
    brief = BriefsRepository(session).get(brief_id)
    if brief is None:
        raise NotFoundError("Brief not found.")
    return brief


def _apply_payload(brief: Brief, payload: BriefDraftRequest, club: Club, template: RequestTemplate) -> list[str]:
    """Copy payload values onto the brief; returns the names of changed columns."""
    values: dict[str, Any] = {
        "club_id": club.id,
        "brand_id": club.brand_id,
        "template_id": template.id,
        "title": payload.title.strip(),
        "context": payload.context.strip(),
        "objective": payload.objective,
        "kpi_description": payload.kpiDescription,
        "kpi_target": payload.kpiTarget,
        "deadline": as_utc(payload.deadline),
        "start_date": payload.startDate,
        "end_date": payload.endDate,
        "offer_details": payload.offerDetails,
        "legal_copy": payload.legalCopy,
        "custom_fields": dict(payload.customFields),
        "asset_links": list(payload.assetLinks),
        "formats": list(payload.formats),
        "custom_formats": list(payload.customFormats),
        "estimated_cost": payload.estimatedCost,
        "is_crisis_communication": payload.isCrisisCommunication,
    }
    changed = []
    for name, value in values.items():
        current = getattr(brief, name)
        if name == "deadline":
            current = as_utc(current)
        if name in ("estimated_cost", "kpi_target") and current is not None:
            current = float(current)
        if current != value:
            setattr(brief, name, value)
            changed.append(name)
    brief.club = club
    brief.brand = club.brand
    brief.template = template
    return changed


def _submission_errors(brief: Brief, policy: PolicyCheckResult) -> list[dict[str, Any]]:
    errors: list[dict[str, Any]] = []
    if brief.objective is None:
        errors.append({"field": "objective", "message": "Choose a business objective before submitting."})
    if not (brief.kpi_description or "").strip():
        errors.append({"field": "kpiDescription", "message": "Describe the success metric (KPI) before submitting."})
    if brief.start_date and brief.end_date and brief.end_date < brief.start_date:
        errors.append({"field": "endDate", "message": "End date must not be before the start date."})
    if not policy.canSubmit:
        for rule in policy.rules:
            if rule.severity == "error" and not rule.passed:
                errors.append({"rule": rule.rule, "message": rule.message})
    return errors


def _submit_in_transaction(
    session: Session,
    actor: AuthContext,
    brief: Brief,
    *,
    now: datetime,
    config: Optional[PolicyConfig] = None,
) -> BriefStatusEnum:
    """Validate and move the brief to SUBMITTED. Returns the status it left. Does not commit."""
    previous = brief.status
    if previous not in SUBMITTABLE_STATUSES:
        raise StateConflictError(
            "Brief cannot be submitted in its current status.", expected=SUBMITTABLE_STATUSES, actual=previous
        )

    session.flush()
    policy = evaluate_brief_policy(session, brief, config=config, now=now)
    errors = _submission_errors(brief, policy)
    if errors:
        logger.info("Brief submission blocked", extra={"brief_id": str(brief.id), "errors": len(errors)})
        raise ValidationFailedError("Brief cannot be submitted.", errors=errors)

    repo = BriefsRepository(session)
    if not repo.transition_status(
        brief.id,
        expected=[previous],
        target=BriefStatusEnum.submitted,
        values={"submitted_at": now},
    ):
        raise StateConflictError(
            "Brief status changed concurrently.", expected=previous, actual=repo.get_status(brief.id)
        )

    resubmitted = previous == BriefStatusEnum.changes_requested
    AuditLogsRepository(session).record(
        user_id=actor.user_id,
        brief_id=brief.id,
        action="BRIEF_RESUBMITTED" if resubmitted else "BRIEF_SUBMITTED",
        details={"summary": policy.summary, "suggestedPriority": policy.suggestedPriority.value},
    )
    notify_validators_of_submission(session, brief, resubmitted=resubmitted)
    logger.info(
        "Brief submitted",
        extra={"brief_id": str(brief.id), "code": brief.code, "resubmitted": resubmitted, "summary": policy.summary},
    )
    return previous


# ---- operations ------------------------------------------------------------


def create_brief(
    session: Session,
    actor: AuthContext,
    payload: BriefDraftRequest,
    *,
    submit: bool = False,
    now: Optional[datetime] = None,
    config: Optional[PolicyConfig] = None,
) -> Brief:
    current = as_utc(now) or utcnow()
    require_capability(actor, "brief.create", ClubResource(club_id=payload.clubId))
    _check_deadline_horizon(payload, current)
    club, template = _resolve_club_and_template(session, payload.clubId, payload.templateId)

    repo = BriefsRepository(session)
    try:
        brief = Brief(
            code=repo.next_code(current.year),
            created_by_id=actor.user_id,
            priority=template.default_priority,
            status=BriefStatusEnum.draft,
        )
        _apply_payload(brief, payload, club, template)
        repo.stage(brief)
        AuditLogsRepository(session).record(
            user_id=actor.user_id,
            brief_id=brief.id,
            action="BRIEF_CREATED",
            details={"code": brief.code, "templateCode": template.code},
        )
        if submit:
            _submit_in_transaction(session, actor, brief, now=current, config=config)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(brief)
    logger.info("Brief created", extra={"brief_id": str(brief.id), "code": brief.code, "status": brief.status.value})
    return brief


def update_brief(
    session: Session,
    actor: AuthContext,
    brief_id: UUID,
    payload: BriefDraftRequest,
    *,
    submit: bool = False,
    now: Optional[datetime] = None,
    config: Optional[PolicyConfig] = None,
) -> Brief:
    current = as_utc(now) or utcnow()
    brief = _load_brief(session, brief_id)
    resource = brief_resource(brief)
    _check_deadline_horizon(payload, current)

    if actor.role == UserRoleEnum.validator:
        require_capability(actor, "brief.validator_edit", resource)
        if payload.clubId != brief.club_id:
            raise ValidationFailedError(
                "Validators cannot move a brief to another club.",
                errors=[{"field": "clubId", "message": "Club cannot be changed."}],
            )
        return _validator_edit(session, actor, brief, payload)

    require_capability(actor, "brief.edit", resource)
    if payload.clubId != brief.club_id:
        require_capability(actor, "brief.create", ClubResource(club_id=payload.clubId))
    club, template = _resolve_club_and_template(session, payload.clubId, payload.templateId)

    try:
        changed = _apply_payload(brief, payload, club, template)
        session.flush()
        AuditLogsRepository(session).record(
            user_id=actor.user_id,
            brief_id=brief.id,
            action="BRIEF_UPDATED",
            details={"changedFields": changed},
        )
        if submit:
            _submit_in_transaction(session, actor, brief, now=current, config=config)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(brief)
    return brief


def _validator_edit(session: Session, actor: AuthContext, brief: Brief, payload: BriefDraftRequest) -> Brief:
    club, template = _resolve_club_and_template(session, payload.clubId, payload.templateId)
    try:
        changed = _apply_payload(brief, payload, club, template)
        session.flush()
        if changed:
            AuditLogsRepository(session).record(
                user_id=actor.user_id,
                brief_id=brief.id,
                action="BRIEF_EDITED_BY_VALIDATOR",
                details={"changedFields": changed},
            )
            notify_author_of_validator_edit(session, brief)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(brief)
    logger.info("Brief edited by validator", extra={"brief_id": str(brief.id), "changed": len(changed)})
    return brief


def submit_brief(
    session: Session,
    actor: AuthContext,
    brief_id: UUID,
    *,
    now: Optional[datetime] = None,
    config: Optional[PolicyConfig] = None,
) -> Brief:
    current = as_utc(now) or utcnow()
    brief = _load_brief(session, brief_id)
    require_capability(actor, "brief.submit", brief_resource(brief))
    try:
        _submit_in_transaction(session, actor, brief, now=current, config=config)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(brief)
    return brief


def cancel_brief(session: Session, actor: AuthContext, brief_id: UUID) -> Brief:
    brief = _load_brief(session, brief_id)
    require_capability(actor, "brief.cancel", brief_resource(brief))
    repo = BriefsRepository(session)
    try:
        if not repo.transition_status(brief.id, expected=CANCELLABLE_STATUSES, target=BriefStatusEnum.cancelled):
            raise StateConflictError(
                "Only draft or submitted briefs can be cancelled.",
                expected=CANCELLABLE_STATUSES,
                actual=repo.get_status(brief.id),
            )
        AuditLogsRepository(session).record(user_id=actor.user_id, brief_id=brief.id, action="BRIEF_CANCELLED")
        session.commit()
    except StateConflictError:
        session.rollback()
        logger.warning("Brief cancel rejected", extra={"brief_id": str(brief_id)})
        raise
    except Exception:
        session.rollback()
        raise
    session.refresh(brief)
    logger.info("Brief cancelled", extra={"brief_id": str(brief.id)})
    return brief


def get_brief(session: Session, actor: AuthContext, brief_id: UUID) -> Brief:
    brief = _load_brief(session, brief_id)
    require_capability(actor, "brief.view", brief_resource(brief))
    return brief


def get_brief_alignment(
    session: Session,
    actor: AuthContext,
    brief_id: UUID,
    *,
    config: Optional[PolicyConfig] = None,
) -> Optional[AlignmentScore]:
    brief = get_brief(session, actor, brief_id)
    return score_alignment(
        brief.title,
        brief.context,
        brief.brand.code,
        has_strategy_document=StrategyDocumentsRepository(session).has_active(brief.brand_id),
        config=config,
    )


def list_briefs(
    session: Session,
    actor: AuthContext,
    *,
    status: Optional[BriefStatusEnum] = None,
    page: int = 1,
    page_size: Optional[int] = None,
    search: Optional[str] = None,
) -> BriefPage:
    page = max(1, page)
    size = min(max(1, page_size or settings.DEFAULT_PAGE_SIZE), settings.MAX_PAGE_SIZE)
    filters: dict[str, Any] = {}
    if actor.role == UserRoleEnum.club_manager:
        filters["created_by_id"] = actor.user_id
    elif actor.role == UserRoleEnum.validator:
        filters["club_ids"] = sorted(actor.club_ids)
    items, total = BriefsRepository(session).list(page=page, page_size=size, status=status, search=search, **filters)
    return BriefPage(items=items, total=total, page=page, page_size=size)
