from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class PolicyConfigResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    brandCode: Optional[str] = None
    hasKeywordTable: bool
    positiveKeywords: dict[str, int]
    negativeKeywords: dict[str, int]
    ruleSet: dict[str, Any]
