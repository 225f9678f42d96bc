from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from briefflow.policy.config import PolicyConfig, load_policy_config

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

AlignmentLabel = Literal["high", "good", "medium", "low", "very_low"]

# (lower bound, label, description), checked top-down.
_LABEL_THRESHOLDS: tuple[tuple[int, AlignmentLabel, str], ...] = (
    (80, "high", "Strongly aligned with the brand strategy."),
    (60, "good", "Aligned with the brand strategy."),
    (40, "medium", "Partially aligned with the brand strategy."),
    (20, "low", "Weakly aligned with the brand strategy."),
    (0, "very_low", "Not aligned with the brand strategy."),
)


class AlignmentScore(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    score: int
    label: AlignmentLabel
    description: str
    matchedPositive: list[str]
    matchedNegative: list[str]


def label_for_score(score: int) -> tuple[AlignmentLabel, str]:
    for lower_bound, label, description in _LABEL_THRESHOLDS:
        if score >= lower_bound:
            return label, description
    return _LABEL_THRESHOLDS[-1][1], _LABEL_THRESHOLDS[-1][2]


def score_alignment(
    title: Optional[str],
    context: Optional[str],
    brand_code: Optional[str],
    *,
    has_strategy_document: bool,
    config: Optional[PolicyConfig] = None,
) -> Optional[AlignmentScore]:
    """
    Score how well a brief's text fits the brand strategy.

    Returns None when the brand has no keyword table or no active strategy
    document; callers must render that differently from a score of 0.
    Each keyword counts at most once, however often it appears.
    """
    cfg = config or load_policy_config()
    brand = cfg.brand(brand_code)
    if brand is None or not brand.has_keyword_table or not has_strategy_document:
        return None

    text = f"{title or ''} {context or ''}".lower()
    matched_positive = [keyword for keyword in brand.positiveKeywords if keyword in text]
    matched_negative = [keyword for keyword in brand.negativeKeywords if keyword in text]

    raw = BASE_SCORE
    raw += sum(brand.positiveKeywords[keyword] for keyword in matched_positive)
    raw += sum(brand.negativeKeywords[keyword] for keyword in matched_negative)
    score = max(MIN_SCORE, min(MAX_SCORE, raw))

    label, description = label_for_score(score)
    return AlignmentScore(
        score=score,
        label=label,
        description=description,
        matchedPositive=matched_positive,
        matchedNegative=matched_negative,
    )
