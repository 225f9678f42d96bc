from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from briefflow.db.enums import BriefStatusEnum, ObjectiveEnum, OutcomeEnum, PriorityEnum


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class BriefDraftRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    clubId: UUID
    templateId: UUID
    title: str = Field(min_length=1, max_length=200)
    context: str = Field(min_length=1, max_length=2000)
    objective: Optional[ObjectiveEnum] = None
    kpiDescription: Optional[str] = Field(default=None, max_length=500)
    kpiTarget: Optional[float] = Field(default=None, gt=0)
    deadline: datetime
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    offerDetails: Optional[str] = Field(default=None, max_length=2000)
    legalCopy: Optional[str] = Field(default=None, max_length=1000)
    customFields: dict[str, Any] = Field(default_factory=dict)
    assetLinks: list[str] = Field(default_factory=list)
    formats: list[str] = Field(default_factory=list)
    customFormats: list[str] = Field(default_factory=list)
    estimatedCost: Optional[float] = Field(default=None, ge=0)
    isCrisisCommunication: bool = False

    @field_validator(
        "kpiDescription",
        "kpiTarget",
        "startDate",
        "endDate",
        "offerDetails",
        "legalCopy",
        "estimatedCost",
        mode="before",
    )
    @classmethod
    def blank_strings_are_null(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("customFields", mode="before")
    @classmethod
    def null_custom_fields(cls, value: Any) -> Any:
        return value or {}

    @field_validator("assetLinks")
    @classmethod
    def absolute_links(cls, value: list[str]) -> list[str]:
        for link in value:
            if not link.startswith(("http://", "https://")):
                raise ValueError(f"Invalid URL: {link}")
        return value


class BriefResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    code: str
    clubId: UUID
    clubName: str
    brandId: UUID
    brandCode: str
    templateId: UUID
    templateCode: str
    createdById: UUID
    title: str
    context: str
    objective: Optional[ObjectiveEnum] = None
    kpiDescription: Optional[str] = None
    kpiTarget: Optional[float] = None
    priority: PriorityEnum
    status: BriefStatusEnum
    deadline: datetime
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    offerDetails: Optional[str] = None
    legalCopy: Optional[str] = None
    customFields: dict[str, Any] = Field(default_factory=dict)
    assetLinks: list[str] = Field(default_factory=list)
    formats: list[str] = Field(default_factory=list)
    customFormats: list[str] = Field(default_factory=list)
    estimatedCost: Optional[float] = None
    isCrisisCommunication: bool = False
    outcome: Optional[OutcomeEnum] = None
    outcomeNote: Optional[str] = None
    submittedAt: Optional[datetime] = None
    decidedAt: Optional[datetime] = None
    createdAt: datetime
    updatedAt: datetime


class BriefListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[BriefResponse]
    total: int
    page: int
    pageSize: int
    totalPages: int


class OutcomeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: OutcomeEnum
    outcomeNote: Optional[str] = Field(default=None, max_length=500)


class OutcomeResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    briefId: UUID
    outcome: Optional[OutcomeEnum] = None
    outcomeNote: Optional[str] = None
    outcomeCycle: Optional[int] = None
    outcomeTaggedAt: Optional[datetime] = None
