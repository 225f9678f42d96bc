from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from briefflow.db.enums import ClubTierEnum, EscalationTypeEnum, ObjectiveEnum, PriorityEnum
from briefflow.policy.config import PolicyConfig, get_policy_config, load_policy_config
from briefflow.services.policy_engine import (
    RULE_ORDER,
    BriefSnapshot,
    business_days_until,
    check_brief_policy,
    get_policy_summary,
    parse_discount_percent,
    suggest_priority,
    suggest_sla_days,
)


@pytest.fixture()
def snapshot(now):
    return BriefSnapshot(
        title="Yoga retention campaign for loyal members",
        context="Weekly classes for existing members.",
        deadline=now + timedelta(days=21),
        brand_code="ZDROFIT",
        objective=ObjectiveEnum.retention,
        kpi_description="Attendance up 15%",
        formats=("plakat_a4",),
        club_tier=ClubTierEnum.standard,
        has_club_context=True,
        has_strategy_document=True,
        template_code="SOCIAL_POST",
        template_default_sla_days=3,
        template_default_priority=PriorityEnum.medium,
    )


def _check(snapshot, now, **overrides):
    return check_brief_policy(replace(snapshot, **overrides), config=load_policy_config(), now=now)


def _rule(result, name):
    return next(rule for rule in result.rules if rule.rule == name)


def test_clean_brief_can_be_auto_approved(snapshot, now):
    result = _check(snapshot, now)

    assert [rule.rule for rule in result.rules] == list(RULE_ORDER)
    assert result.canSubmit is True
    assert result.canAutoApprove is True
    assert result.requiresOwnerApproval is False
    assert result.autoRejectReasons == []
    assert result.ownerApprovalReasons == []
    assert result.escalationType is None
    assert result.escalationDetails == []
    assert result.summary == "auto_approve"
    assert result.suggestedPriority == PriorityEnum.medium
    assert result.suggestedSLA == 3
    assert result.alignment is not None and result.alignment.label == "high"
    assert "Standard club." in result.info
    assert get_policy_summary(result) == "AUTO-APPROVE"


def test_evaluation_is_idempotent(snapshot, now):
    first = _check(snapshot, now, custom_formats=("billboard",), estimated_cost=5000)
    second = _check(snapshot, now, custom_formats=("billboard",), estimated_cost=5000)

    assert first == second


def test_past_deadline_is_auto_rejected(snapshot, now):
    result = _check(snapshot, now, deadline=now - timedelta(days=1))

    assert _rule(result, "deadline").autoReject is True
    assert result.canSubmit is False
    assert result.canAutoApprove is False
    assert result.summary == "auto_reject"
    assert get_policy_summary(result).startswith("REJECTED: ")


def test_short_lead_time_blocks_regular_brief(snapshot, now):
    result = _check(snapshot, now, deadline=now + timedelta(days=2))

    lead_time = _rule(result, "lead_time")
    assert lead_time.passed is False
    assert lead_time.autoReject is True
    assert result.canSubmit is False


def test_crisis_communication_allows_short_lead_time(snapshot, now):
    result = _check(snapshot, now, deadline=now + timedelta(days=2), is_crisis_communication=True)

    lead_time = _rule(result, "lead_time")
    assert lead_time.passed is True
    assert lead_time.severity == "warning"
    assert result.canSubmit is True
    assert result.suggestedPriority == PriorityEnum.critical
    assert result.suggestedSLA == 1


def test_crisis_still_needs_minimum_lead_time(snapshot, now):
    result = _check(snapshot, now, deadline=now, is_crisis_communication=True)

    assert _rule(result, "lead_time").autoReject is True


def test_tight_deadline_is_a_warning(snapshot, now):
    result = _check(snapshot, now, deadline=now + timedelta(days=8))

    lead_time = _rule(result, "lead_time")
    assert lead_time.passed is True
    assert lead_time.severity == "warning"
    assert lead_time.message in result.warnings
    assert result.canAutoApprove is True


def test_missing_objective_escalates(snapshot, now):
    result = _check(snapshot, now, objective=None)

    assert result.requiresOwnerApproval is True
    assert result.escalationType == EscalationTypeEnum.ESCALATION
    assert result.canSubmit is True
    assert result.canAutoApprove is False
    assert result.summary == "owner_approval"
    assert get_policy_summary(result).startswith("OWNER APPROVAL REQUIRED: ")


def test_unsupported_objective_is_an_exception(snapshot, now):
    result = _check(snapshot, now, objective=ObjectiveEnum.awareness)

    rule = _rule(result, "strategic_focus")
    assert rule.requiresOwnerApproval is True
    assert rule.escalationType == EscalationTypeEnum.EXCEPTION


def test_secondary_objective_passes(snapshot, now):
    result = _check(snapshot, now, objective=ObjectiveEnum.attendance)

    assert _rule(result, "strategic_focus").passed is True


def test_flagship_discount_above_limit_is_an_exception(snapshot, now):
    result = _check(
        snapshot,
        now,
        club_tier=ClubTierEnum.flagship,
        custom_fields={"discountPercent": "25%"},
        legal_copy="Offer valid until 31.03 for new agreements.",
    )

    discount = _rule(result, "discount")
    assert discount.requiresOwnerApproval is True
    assert discount.escalationType == EscalationTypeEnum.EXCEPTION
    assert result.escalationType == EscalationTypeEnum.EXCEPTION
    assert result.suggestedPriority == PriorityEnum.high


def test_standard_club_discount_within_limit(snapshot, now):
    result = _check(
        snapshot,
        now,
        custom_fields={"discountPercent": 25},
        legal_copy="Offer valid until 31.03.",
    )

    assert _rule(result, "discount").passed is True
    assert _rule(result, "legal_copy").passed is True


def test_unreadable_discount_escalates(snapshot, now):
    result = _check(snapshot, now, custom_fields={"discountPercent": "a lot"})

    discount = _rule(result, "discount")
    assert discount.requiresOwnerApproval is True
    assert discount.escalationType == EscalationTypeEnum.ESCALATION


@pytest.mark.parametrize("raw", ["nan", "inf", "-inf", float("nan")])
def test_non_finite_discount_escalates(snapshot, now, raw):
    result = _check(snapshot, now, club_tier=ClubTierEnum.flagship, custom_fields={"discountPercent": raw})

    discount = _rule(result, "discount")
    assert discount.passed is False
    assert discount.escalationType == EscalationTypeEnum.ESCALATION
    assert result.requiresOwnerApproval is True
    assert result.canAutoApprove is False


def test_exception_wins_over_escalation(snapshot, now):
    result = _check(snapshot, now, objective=None, estimated_cost=2500, has_club_context=False)

    types = [detail.type for detail in result.escalationDetails]
    assert types.count(EscalationTypeEnum.ESCALATION) == 2
    assert types.count(EscalationTypeEnum.EXCEPTION) == 1
    assert result.escalationType == EscalationTypeEnum.EXCEPTION
    assert len(result.ownerApprovalReasons) == 3


def test_financial_limit(snapshot, now):
    within = _check(snapshot, now, estimated_cost=1000)
    above = _check(snapshot, now, estimated_cost=1000.01)
    internal = _check(snapshot, now, estimated_cost=0, template_is_internal=True)

    assert _rule(within, "financial").passed is True
    assert _rule(above, "financial").escalationType == EscalationTypeEnum.EXCEPTION
    assert _rule(internal, "financial").passed is True


def test_custom_formats_need_owner_approval(snapshot, now):
    result = _check(snapshot, now, custom_formats=("billboard 12x4",))

    assert _rule(result, "formats").escalationType == EscalationTypeEnum.EXCEPTION


def test_blacklisted_template_and_keyword(snapshot, now):
    template = _check(snapshot, now, template_is_blacklisted=True, template_blacklist_reason="Central branding")
    keyword = _check(snapshot, now, context="Sponsoring of the local marathon.")

    assert _rule(template, "blacklist").autoReject is True
    assert "Central branding" in _rule(template, "blacklist").message
    assert _rule(keyword, "blacklist").autoReject is True


def test_prohibited_claim_in_offer_details(snapshot, now):
    result = _check(
        snapshot,
        now,
        offer_details="Guaranteed results after four weeks",
        legal_copy="Terms at the reception.",
    )

    assert _rule(result, "prohibited_claims").autoReject is True
    assert _rule(result, "legal_copy").passed is True


def test_regulated_offer_requires_legal_copy(snapshot, now):
    missing = _check(snapshot, now, context="Spring promotion for existing members.")
    present = _check(snapshot, now, context="Spring promotion for existing members.", legal_copy="Valid until 30.04.")

    assert _rule(missing, "legal_copy").autoReject is True
    assert missing.canSubmit is False
    assert _rule(present, "legal_copy").passed is True


def test_missing_club_context_escalates(snapshot, now):
    result = _check(snapshot, now, has_club_context=False)

    assert _rule(result, "club_context").escalationType == EscalationTypeEnum.ESCALATION
    assert result.canAutoApprove is False


def test_missing_required_fields_block_submission_without_auto_reject(snapshot, now):
    result = _check(
        snapshot,
        now,
        template_required_fields=("eventName", "eventDate"),
        custom_fields={"eventName": "Yoga day", "eventDate": "  "},
    )

    rule = _rule(result, "required_fields")
    assert rule.severity == "error"
    assert rule.autoReject is False
    assert "eventDate" in rule.message
    assert result.autoRejectReasons == []
    assert result.canSubmit is False
    assert result.canAutoApprove is False
    assert result.summary == "manual_review"
    assert get_policy_summary(result) == "VALIDATION REQUIRED"


def test_low_alignment_is_a_warning(snapshot, now):
    result = _check(
        snapshot,
        now,
        title="Black Friday acquisition push",
        context="Reach new customers before the holidays.",
        objective=ObjectiveEnum.acquisition,
    )

    rule = _rule(result, "strategy_alignment")
    assert rule.passed is False
    assert rule.severity == "warning"
    assert rule.message in result.warnings
    assert result.canAutoApprove is True


def test_alignment_not_applicable_for_brand_without_table(snapshot, now):
    result = _check(snapshot, now, brand_code="FABRYKA")

    assert result.alignment is None
    assert _rule(result, "strategy_alignment").passed is True


def test_brand_rule_set_overrides_defaults(snapshot, now):
    config = PolicyConfig.model_validate(
        {"brands": {"ACME": {"ruleSet": {"minLeadTimeBusinessDays": 10, "tightDeadlineBufferDays": 0}}}}
    )
    acme = replace(snapshot, brand_code="ACME", deadline=now + timedelta(days=7))

    strict = check_brief_policy(acme, config=config, now=now)
    default = check_brief_policy(replace(acme, brand_code="ZDROFIT"), config=config, now=now)

    assert _rule(strict, "lead_time").autoReject is True
    assert _rule(default, "lead_time").passed is True


@pytest.mark.parametrize(
    "overrides",
    [
        {},
        {"objective": None},
        {"estimated_cost": 5000},
        {"deadline_days": -1},
        {"template_required_fields": ("eventName",)},
        {"has_club_context": False, "custom_formats": ("banner",)},
        {"context": "Cashback offer for members"},
        {"is_crisis_communication": True, "deadline_days": 1},
    ],
)
def test_auto_approve_iff_no_rejects_no_owner_approval_no_errors(snapshot, now, overrides):
    overrides = dict(overrides)
    days = overrides.pop("deadline_days", None)
    if days is not None:
        overrides["deadline"] = now + timedelta(days=days)

    result = _check(snapshot, now, **overrides)

    failed_errors = [rule for rule in result.rules if rule.severity == "error" and not rule.passed]
    expected = not result.autoRejectReasons and not result.requiresOwnerApproval and not failed_errors
    assert result.canAutoApprove is expected


def test_suggest_priority():
    now = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
    base = BriefSnapshot(
        title="t",
        context="c",
        deadline=now + timedelta(days=30),
        template_default_sla_days=5,
        template_default_priority=PriorityEnum.low,
    )

    def priority(**overrides):
        snap = replace(base, **overrides)
        return suggest_priority(snap, now=now, deadline=snap.deadline)

    assert priority() == PriorityEnum.low
    assert priority(deadline=now + timedelta(days=4)) == PriorityEnum.medium
    assert priority(club_tier=ClubTierEnum.vip) == PriorityEnum.high
    assert priority(club_tier=ClubTierEnum.flagship, deadline=now + timedelta(days=2)) == PriorityEnum.high
    assert priority(is_crisis_communication=True) == PriorityEnum.critical


def test_suggest_sla_days():
    now = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
    rules = load_policy_config().defaultRuleSet
    base = BriefSnapshot(title="t", context="c", deadline=now + timedelta(days=30), template_default_sla_days=5)

    def sla(priority=PriorityEnum.medium, days=30):
        return suggest_sla_days(base, priority, rules, now=now, deadline=now + timedelta(days=days))

    assert sla() == 5
    assert sla(days=2) == 2
    assert sla(days=0) == 1
    assert sla(priority=PriorityEnum.critical) == rules.crisisSlaDays


def test_business_days_until():
    monday = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
    friday = datetime(2025, 3, 7, 9, 0, tzinfo=timezone.utc)

    assert business_days_until(monday + timedelta(days=7), monday) == 5
    assert business_days_until(friday + timedelta(days=3), friday) == 1
    assert business_days_until(monday - timedelta(days=1), monday) == 0


def test_business_days_match_a_day_by_day_count():
    monday = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)

    for start_offset in range(7):
        start = monday + timedelta(days=start_offset)
        for hours in range(0, 24 * 30, 7):
            deadline = start + timedelta(hours=hours)
            expected = 0
            current = start
            while current < deadline:
                expected += current.weekday() < 5
                current += timedelta(days=1)
            assert business_days_until(deadline, start) == expected


def test_far_future_deadline_is_evaluated(snapshot, now):
    result = _check(snapshot, now, deadline=datetime(9999, 12, 31, 23, 0, tzinfo=timezone.utc))

    assert _rule(result, "deadline").passed is True
    assert _rule(result, "lead_time").passed is True
    assert business_days_until(datetime(9999, 12, 31, 23, 0, tzinfo=timezone.utc), now) > 2_000_000


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, (None, True)),
        ("", (None, True)),
        (15, (15.0, True)),
        ("20%", (20.0, True)),
        ("12,5", (12.5, True)),
        ("plenty", (None, False)),
        ("nan", (None, False)),
        ("inf", (None, False)),
        (float("inf"), (None, False)),
        (True, (None, False)),
    ],
)
def test_parse_discount_percent(raw, expected):
    assert parse_discount_percent({"discountPercent": raw}) == expected


def test_policy_config_for_brand():
    config = get_policy_config("zdrofit")

    assert config["brandCode"] == "ZDROFIT"
    assert config["hasKeywordTable"] is True
    assert config["positiveKeywords"]["yoga"] == 15
    assert config["ruleSet"]["minLeadTimeBusinessDays"] == 5

    unknown = get_policy_config("UNKNOWN")
    assert unknown["hasKeywordTable"] is False
    assert unknown["positiveKeywords"] == {}
