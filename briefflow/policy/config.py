from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from briefflow.config import settings
from briefflow.db.enums import ClubTierEnum, ObjectiveEnum

logger = logging.getLogger(__name__)

DEFAULT_POLICY_PATH = Path(__file__).resolve().parent / "default_policy.json"


class PolicyConfigurationError(RuntimeError):
    """Raised when the brand policy file is missing or malformed."""


class RuleSetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    primaryObjectives: list[ObjectiveEnum] = Field(
        default_factory=lambda: [ObjectiveEnum.acquisition, ObjectiveEnum.retention, ObjectiveEnum.upsell]
    )
    secondaryObjectives: list[ObjectiveEnum] = Field(default_factory=lambda: [ObjectiveEnum.attendance])
    unsupportedObjectives: list[ObjectiveEnum] = Field(
        default_factory=lambda: [ObjectiveEnum.awareness, ObjectiveEnum.other]
    )
    minLeadTimeBusinessDays: int = Field(default=5, ge=0)
    crisisMinLeadTimeBusinessDays: int = Field(default=1, ge=0)
    tightDeadlineBufferDays: int = Field(default=2, ge=0)
    standardFormats: list[str] = Field(default_factory=list)
    validatorMaxCost: float = Field(default=1000, ge=0)
    maxDiscountPercent: dict[ClubTierEnum, float] = Field(
        default_factory=lambda: {
            ClubTierEnum.standard: 30,
            ClubTierEnum.flagship: 20,
            ClubTierEnum.vip: 20,
        }
    )
    blacklistKeywords: list[str] = Field(default_factory=list)
    prohibitedClaims: list[str] = Field(default_factory=list)
    regulatedOfferKeywords: list[str] = Field(default_factory=list)
    lowAlignmentThreshold: int = Field(default=40, ge=0, le=100)
    crisisSlaDays: int = Field(default=1, ge=1)

    @field_validator("blacklistKeywords", "prohibitedClaims", "regulatedOfferKeywords", mode="before")
    @classmethod
    def lowercase_phrases(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item).strip().lower() for item in value if str(item).strip()]
        return value

    def discount_limit(self, tier: Optional[ClubTierEnum]) -> Optional[float]:
        return self.maxDiscountPercent.get(tier or ClubTierEnum.standard)


class BrandPolicy(BaseModel):
    model_config = ConfigDict(extra="forbid")

    positiveKeywords: dict[str, int] = Field(default_factory=dict)
    negativeKeywords: dict[str, int] = Field(default_factory=dict)
    ruleSet: Optional[RuleSetConfig] = None

    @field_validator("positiveKeywords", "negativeKeywords", mode="before")
    @classmethod
    def lowercase_keywords(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key).strip().lower(): weight for key, weight in value.items() if str(key).strip()}
        return value

    @property
    def has_keyword_table(self) -> bool:
        return bool(self.positiveKeywords or self.negativeKeywords)


class PolicyConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    defaultRuleSet: RuleSetConfig = Field(default_factory=RuleSetConfig)
    brands: dict[str, BrandPolicy] = Field(default_factory=dict)

    @field_validator("brands", mode="before")
    @classmethod
    def uppercase_brand_codes(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key).strip().upper(): policy for key, policy in value.items()}
        return value

    def brand(self, brand_code: Optional[str]) -> Optional[BrandPolicy]:
        if not brand_code:
            return None
        return self.brands.get(brand_code.strip().upper())

    def rule_set(self, brand_code: Optional[str]) -> RuleSetConfig:
        brand = self.brand(brand_code)
        if brand is not None and brand.ruleSet is not None:
            return brand.ruleSet
        return self.defaultRuleSet


@lru_cache(maxsize=8)
def _load_policy_config(path: str) -> PolicyConfig:
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise PolicyConfigurationError(f"Policy config file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise PolicyConfigurationError(f"Policy config file is not valid JSON: {config_path}") from exc
    try:
        config = PolicyConfig.model_validate(raw)
    except ValidationError as exc:
        raise PolicyConfigurationError(f"Policy config file is invalid: {config_path}: {exc}") from exc
    logger.info(
        "Loaded brand policy config",
        extra={"path": str(config_path), "brands": sorted(config.brands.keys())},
    )
    return config


def load_policy_config(path: Optional[str] = None) -> PolicyConfig:
    resolved = path or settings.POLICY_CONFIG_PATH or str(DEFAULT_POLICY_PATH)
    return _load_policy_config(str(resolved))


def get_policy_config(brand_code: Optional[str], *, config: Optional[PolicyConfig] = None) -> dict[str, Any]:
    """Effective policy for a brand, shaped for the admin view."""
    cfg = config or load_policy_config()
    brand = cfg.brand(brand_code)
    rule_set = cfg.rule_set(brand_code)
    return {
        "brandCode": brand_code.strip().upper() if brand_code else None,
        "hasKeywordTable": bool(brand and brand.has_keyword_table),
        "positiveKeywords": dict(brand.positiveKeywords) if brand else {},
        "negativeKeywords": dict(brand.negativeKeywords) if brand else {},
        "ruleSet": rule_set.model_dump(mode="json"),
    }
