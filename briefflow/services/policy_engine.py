"""
Brief policy engine.

Evaluates a fixed, ordered set of business rules against a brief snapshot and
aggregates them into a decision hint: auto-reject, owner approval (exception or
escalation), auto-approve or manual review, plus a suggested priority and SLA.
Every rule runs on every call; failures are data, never exceptions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict

from briefflow.db.enums import PRIORITY_ORDER, ClubTierEnum, EscalationTypeEnum, ObjectiveEnum, PriorityEnum
from briefflow.policy.config import PolicyConfig, RuleSetConfig, load_policy_config
from briefflow.services.alignment import AlignmentScore, score_alignment
from briefflow.timeutils import as_utc, utcnow

Severity = Literal["error", "warning", "info"]
PolicySummary = Literal["auto_reject", "owner_approval", "auto_approve", "manual_review"]

RULE_ORDER = (
    "strategic_focus",
    "deadline",
    "lead_time",
    "formats",
    "financial",
    "discount",
    "blacklist",
    "prohibited_claims",
    "legal_copy",
    "club_context",
    "required_fields",
    "strategy_alignment",
    "vip_status",
)

PRIORITY_TIERS = {ClubTierEnum.flagship, ClubTierEnum.vip}


@dataclass(frozen=True)
class BriefSnapshot:
    title: str
    context: str
    deadline: datetime
    brand_code: Optional[str] = None
    objective: Optional[ObjectiveEnum] = None
    kpi_description: Optional[str] = None
    estimated_cost: Optional[float] = None
    is_crisis_communication: bool = False
    formats: tuple[str, ...] = ()
    custom_formats: tuple[str, ...] = ()
    custom_fields: dict[str, Any] = field(default_factory=dict)
    offer_details: Optional[str] = None
    legal_copy: Optional[str] = None
    club_tier: ClubTierEnum = ClubTierEnum.standard
    has_club_context: bool = False
    has_strategy_document: bool = False
    template_code: Optional[str] = None
    template_default_sla_days: int = 5
    template_default_priority: PriorityEnum = PriorityEnum.medium
    template_required_fields: tuple[str, ...] = ()
    template_is_internal: bool = False
    template_is_blacklisted: bool = False
    template_blacklist_reason: Optional[str] = None


class PolicyRuleResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    rule: str
    message: str
    passed: bool
    severity: Severity
    autoReject: bool = False
    requiresOwnerApproval: bool = False
    escalationType: Optional[EscalationTypeEnum] = None


class EscalationDetail(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: EscalationTypeEnum
    reason: str


class PolicyCheckResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    canSubmit: bool
    canAutoApprove: bool
    requiresOwnerApproval: bool
    ownerApprovalReasons: list[str]
    autoRejectReasons: list[str]
    warnings: list[str]
    info: list[str]
    rules: list[PolicyRuleResult]
    suggestedPriority: PriorityEnum
    suggestedSLA: int
    escalationType: Optional[EscalationTypeEnum]
    escalationDetails: list[EscalationDetail]
    alignment: Optional[AlignmentScore]
    summary: PolicySummary


@dataclass(frozen=True)
class _RuleContext:
    snapshot: BriefSnapshot
    rules: RuleSetConfig
    now: datetime
    deadline: datetime
    alignment: Optional[AlignmentScore]

    @property
    def text(self) -> str:
        return f"{self.snapshot.title or ''} {self.snapshot.context or ''}".lower()

    @property
    def offer_text(self) -> str:
        return f"{self.text} {self.snapshot.offer_details or ''}".lower()


def _passed(rule: str, message: str, severity: Severity = "info") -> PolicyRuleResult:
    return PolicyRuleResult(rule=rule, message=message, passed=True, severity=severity)


def _owner_approval(rule: str, message: str, escalation: EscalationTypeEnum) -> PolicyRuleResult:
    return PolicyRuleResult(
        rule=rule,
        message=message,
        passed=False,
        severity="warning",
        requiresOwnerApproval=True,
        escalationType=escalation,
    )


def _auto_reject(rule: str, message: str) -> PolicyRuleResult:
    return PolicyRuleResult(rule=rule, message=message, passed=False, severity="error", autoReject=True)


def business_days_until(deadline: datetime, now: datetime) -> int:
    """Weekdays among the days started from now until the deadline."""
    if deadline <= now:
        return 0
    days = -((now - deadline) // timedelta(days=1))
    weeks, remainder = divmod(days, 7)
    start = now.weekday()
    return weeks * 5 + sum(1 for offset in range(remainder) if (start + offset) % 7 < 5)


def calendar_days_until(deadline: datetime, now: datetime) -> int:
    return (deadline.date() - now.date()).days


def parse_discount_percent(custom_fields: dict[str, Any]) -> tuple[Optional[float], bool]:
    """Return (percent, valid). A missing value is valid with percent None."""
    raw = (custom_fields or {}).get("discountPercent")
    if raw is None or raw == "":
        return None, True
    if isinstance(raw, bool):
        return None, False
    if isinstance(raw, (int, float)):
        percent = float(raw)
    else:
        try:
            percent = float(str(raw).strip().rstrip("%").replace(",", "."))
        except ValueError:
            return None, False
    # Non-finite values cannot be held against a discount limit.
    if not math.isfinite(percent):
        return None, False
    return percent, True


def _first_match(text: str, phrases: list[str]) -> Optional[str]:
    for phrase in phrases:
        if phrase in text:
            return phrase
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


# ---- rules -----------------------------------------------------------------


def _check_strategic_focus(ctx: _RuleContext) -> PolicyRuleResult:
    objective = ctx.snapshot.objective
    if objective is None:
        return _owner_approval(
            "strategic_focus",
            "No objective defined. Owner approval required.",
            EscalationTypeEnum.ESCALATION,
        )
    if objective in ctx.rules.primaryObjectives:
        return _passed("strategic_focus", f"Primary objective: {objective.value}")
    if objective in ctx.rules.secondaryObjectives:
        return _passed("strategic_focus", f"Secondary objective: {objective.value}")
    if objective in ctx.rules.unsupportedObjectives:
        return _owner_approval(
            "strategic_focus",
            f'Objective "{objective.value}" is not supported by default. Owner approval required.',
            EscalationTypeEnum.EXCEPTION,
        )
    return _owner_approval(
        "strategic_focus",
        "Unknown objective. Owner approval required.",
        EscalationTypeEnum.ESCALATION,
    )


def _check_deadline(ctx: _RuleContext) -> PolicyRuleResult:
    if ctx.deadline < ctx.now:
        return _auto_reject("deadline", "Deadline is in the past.")
    return _passed("deadline", "Deadline is in the future.")


def _check_lead_time(ctx: _RuleContext) -> PolicyRuleResult:
    snapshot = ctx.snapshot
    business_days = business_days_until(ctx.deadline, ctx.now)
    normal_min = ctx.rules.minLeadTimeBusinessDays
    crisis_min = ctx.rules.crisisMinLeadTimeBusinessDays

    if snapshot.is_crisis_communication:
        if business_days < crisis_min:
            return _auto_reject(
                "lead_time",
                f"Lead time too short even for crisis communication: {business_days} business days "
                f"(minimum {crisis_min}).",
            )
        if business_days < normal_min:
            return _passed(
                "lead_time",
                f"Crisis communication: reduced lead time ({business_days} business days).",
                severity="warning",
            )
        return _passed("lead_time", f"Lead time OK: {business_days} business days.")

    if business_days < normal_min:
        return _auto_reject(
            "lead_time",
            f"Lead time too short: {business_days} business days (minimum {normal_min}). "
            "Mark the brief as crisis communication or move the deadline.",
        )
    if business_days < normal_min + ctx.rules.tightDeadlineBufferDays:
        return _passed(
            "lead_time",
            f"Tight deadline: {business_days} business days (minimum {normal_min}).",
            severity="warning",
        )
    return _passed("lead_time", f"Lead time OK: {business_days} business days.")


def _check_formats(ctx: _RuleContext) -> PolicyRuleResult:
    custom_formats = [item for item in ctx.snapshot.custom_formats if item and item.strip()]
    if custom_formats:
        return _owner_approval(
            "formats",
            f"Custom formats ({', '.join(custom_formats)}) require an ROI justification. Owner approval required.",
            EscalationTypeEnum.EXCEPTION,
        )
    standard = set(ctx.rules.standardFormats)
    extended = [item for item in ctx.snapshot.formats if item not in standard]
    if extended:
        return _passed("formats", f"Extended formats: {', '.join(extended)}")
    return _passed("formats", "Standard formats.")


def _check_financial(ctx: _RuleContext) -> PolicyRuleResult:
    cost = float(ctx.snapshot.estimated_cost or 0)
    limit = ctx.rules.validatorMaxCost
    if cost == 0 and ctx.snapshot.template_is_internal:
        return _passed("financial", "Zero cost on an internal template.")
    if cost == 0:
        return _passed("financial", "Production cost: 0.")
    if cost <= limit:
        return _passed("financial", f"Cost {cost:g} is within the validator limit ({limit:g}).")
    return _owner_approval(
        "financial",
        f"Cost {cost:g} exceeds the validator limit ({limit:g}). Owner approval required.",
        EscalationTypeEnum.EXCEPTION,
    )


def _check_discount(ctx: _RuleContext) -> PolicyRuleResult:
    percent, valid = parse_discount_percent(ctx.snapshot.custom_fields)
    if not valid:
        return _owner_approval(
            "discount",
            "Discount value could not be interpreted. Owner approval required.",
            EscalationTypeEnum.ESCALATION,
        )
    if percent is None:
        return _passed("discount", "No discount.")
    tier = ctx.snapshot.club_tier
    limit = ctx.rules.discount_limit(tier)
    if limit is not None and percent > limit:
        return _owner_approval(
            "discount",
            f"Discount {percent:g}% exceeds the {tier.value} club limit ({limit:g}%). Owner approval required.",
            EscalationTypeEnum.EXCEPTION,
        )
    return _passed("discount", f"Discount {percent:g}% is within the {tier.value} club limit.")


def _check_blacklist(ctx: _RuleContext) -> PolicyRuleResult:
    snapshot = ctx.snapshot
    if snapshot.template_is_blacklisted:
        reason = snapshot.template_blacklist_reason or "no reason given"
        return _auto_reject("blacklist", f"Request type is blacklisted: {reason}")
    keyword = _first_match(ctx.text, ctx.rules.blacklistKeywords)
    if keyword:
        return _auto_reject(
            "blacklist",
            f'Blacklisted keyword detected: "{keyword}". Logo redesigns, partnerships without '
            "a contract and sponsoring are rejected.",
        )
    return _passed("blacklist", "No blacklisted elements.")


def _check_prohibited_claims(ctx: _RuleContext) -> PolicyRuleResult:
    claim = _first_match(ctx.offer_text, ctx.rules.prohibitedClaims)
    if claim:
        return _auto_reject("prohibited_claims", f'Prohibited claim detected: "{claim}".')
    return _passed("prohibited_claims", "No prohibited claims.")


def _check_legal_copy(ctx: _RuleContext) -> PolicyRuleResult:
    snapshot = ctx.snapshot
    percent, _valid = parse_discount_percent(snapshot.custom_fields)
    regulated = (
        not _is_blank(snapshot.offer_details)
        or (percent is not None and percent > 0)
        or _first_match(ctx.text, ctx.rules.regulatedOfferKeywords) is not None
    )
    if not regulated:
        return _passed("legal_copy", "No regulated offer.")
    if _is_blank(snapshot.legal_copy):
        return _auto_reject("legal_copy", "Regulated offer without legal copy. Add the offer terms.")
    return _passed("legal_copy", "Regulated offer has legal copy.")


def _check_club_context(ctx: _RuleContext) -> PolicyRuleResult:
    if not ctx.snapshot.has_club_context:
        return _owner_approval(
            "club_context",
            "Club has no local context. Not enough data to assess the brief.",
            EscalationTypeEnum.ESCALATION,
        )
    return _passed("club_context", "Club context available.")


def _check_required_fields(ctx: _RuleContext) -> PolicyRuleResult:
    custom_fields = ctx.snapshot.custom_fields or {}
    missing = [name for name in ctx.snapshot.template_required_fields if _is_blank(custom_fields.get(name))]
    if missing:
        return PolicyRuleResult(
            rule="required_fields",
            message=f"Missing required template fields: {', '.join(missing)}",
            passed=False,
            severity="error",
        )
    return _passed("required_fields", "All required template fields are present.")


def _check_strategy_alignment(ctx: _RuleContext) -> PolicyRuleResult:
    alignment = ctx.alignment
    if alignment is None:
        return _passed("strategy_alignment", "Strategy alignment not applicable for this brand.")
    threshold = ctx.rules.lowAlignmentThreshold
    if alignment.score < threshold:
        return PolicyRuleResult(
            rule="strategy_alignment",
            message=f"Low strategy alignment: {alignment.score}/100 (threshold {threshold}).",
            passed=False,
            severity="warning",
        )
    return _passed("strategy_alignment", f"Strategy alignment: {alignment.score}/100 ({alignment.label}).")


def _check_vip_status(ctx: _RuleContext) -> PolicyRuleResult:
    tier = ctx.snapshot.club_tier
    if tier in PRIORITY_TIERS:
        return _passed("vip_status", f"{tier.value.capitalize()} club: priority handling.")
    return _passed("vip_status", "Standard club.")


_RULES: tuple[Callable[[_RuleContext], PolicyRuleResult], ...] = (
    _check_strategic_focus,
    _check_deadline,
    _check_lead_time,
    _check_formats,
    _check_financial,
    _check_discount,
    _check_blacklist,
    _check_prohibited_claims,
    _check_legal_copy,
    _check_club_context,
    _check_required_fields,
    _check_strategy_alignment,
    _check_vip_status,
)


# ---- suggestions -----------------------------------------------------------


def _bump(priority: PriorityEnum) -> PriorityEnum:
    index = PRIORITY_ORDER.index(priority)
    return PRIORITY_ORDER[min(index + 1, len(PRIORITY_ORDER) - 1)]


def _at_least(priority: PriorityEnum, floor: PriorityEnum) -> PriorityEnum:
    return max(priority, floor, key=PRIORITY_ORDER.index)


def suggest_priority(snapshot: BriefSnapshot, *, now: datetime, deadline: datetime) -> PriorityEnum:
    priority = snapshot.template_default_priority
    if calendar_days_until(deadline, now) <= snapshot.template_default_sla_days:
        priority = _bump(priority)
    if snapshot.club_tier in PRIORITY_TIERS:
        priority = _at_least(priority, PriorityEnum.high)
    if snapshot.is_crisis_communication:
        priority = PriorityEnum.critical
    return priority


def suggest_sla_days(
    snapshot: BriefSnapshot,
    priority: PriorityEnum,
    rules: RuleSetConfig,
    *,
    now: datetime,
    deadline: datetime,
) -> int:
    default_sla = max(1, snapshot.template_default_sla_days)
    if priority == PriorityEnum.critical:
        sla = rules.crisisSlaDays
    else:
        days_left = calendar_days_until(deadline, now)
        sla = days_left if days_left < default_sla else default_sla
    return max(1, min(sla, default_sla))


# ---- entry points ----------------------------------------------------------


def check_brief_policy(
    snapshot: BriefSnapshot,
    *,
    config: Optional[PolicyConfig] = None,
    now: Optional[datetime] = None,
) -> PolicyCheckResult:
    cfg = config or load_policy_config()
    current = as_utc(now) or utcnow()
    deadline = as_utc(snapshot.deadline)
    alignment = score_alignment(
        snapshot.title,
        snapshot.context,
        snapshot.brand_code,
        has_strategy_document=snapshot.has_strategy_document,
        config=cfg,
    )
    ctx = _RuleContext(
        snapshot=snapshot,
        rules=cfg.rule_set(snapshot.brand_code),
        now=current,
        deadline=deadline,
        alignment=alignment,
    )
    rules = [rule(ctx) for rule in _RULES]

    owner_approval_reasons: list[str] = []
    auto_reject_reasons: list[str] = []
    warnings: list[str] = []
    info: list[str] = []
    escalation_details: list[EscalationDetail] = []
    for result in rules:
        if result.autoReject:
            auto_reject_reasons.append(result.message)
        elif result.requiresOwnerApproval:
            owner_approval_reasons.append(result.message)
            if result.escalationType is not None:
                escalation_details.append(EscalationDetail(type=result.escalationType, reason=result.message))
        elif result.severity == "warning":
            warnings.append(result.message)
        elif result.severity == "info":
            info.append(result.message)

    has_auto_reject = bool(auto_reject_reasons)
    has_blocking_errors = any(
        r.severity == "error" and not r.autoReject and not r.requiresOwnerApproval for r in rules
    )
    requires_owner_approval = bool(owner_approval_reasons)
    can_submit = not has_auto_reject and not has_blocking_errors
    can_auto_approve = can_submit and not requires_owner_approval

    escalation_type: Optional[EscalationTypeEnum] = None
    if escalation_details:
        escalation_type = (
            EscalationTypeEnum.EXCEPTION
            if any(detail.type == EscalationTypeEnum.EXCEPTION for detail in escalation_details)
            else EscalationTypeEnum.ESCALATION
        )

    suggested_priority = suggest_priority(snapshot, now=current, deadline=deadline)
    suggested_sla = suggest_sla_days(snapshot, suggested_priority, ctx.rules, now=current, deadline=deadline)

    if has_auto_reject:
        summary: PolicySummary = "auto_reject"
    elif requires_owner_approval:
        summary = "owner_approval"
    elif can_auto_approve:
        summary = "auto_approve"
    else:
        summary = "manual_review"

    return PolicyCheckResult(
        canSubmit=can_submit,
        canAutoApprove=can_auto_approve,
        requiresOwnerApproval=requires_owner_approval,
        ownerApprovalReasons=owner_approval_reasons,
        autoRejectReasons=auto_reject_reasons,
        warnings=warnings,
        info=info,
        rules=rules,
        suggestedPriority=suggested_priority,
        suggestedSLA=suggested_sla,
        escalationType=escalation_type,
        escalationDetails=escalation_details,
        alignment=alignment,
        summary=summary,
    )


def get_policy_summary(result: PolicyCheckResult) -> str:
    """One-line human readable verdict for list views."""
    if result.autoRejectReasons:
        return f"REJECTED: {result.autoRejectReasons[0]}"
    if result.requiresOwnerApproval:
        return f"OWNER APPROVAL REQUIRED: {'; '.join(result.ownerApprovalReasons)}"
    if result.canAutoApprove:
        return "AUTO-APPROVE"
    return "VALIDATION REQUIRED"
