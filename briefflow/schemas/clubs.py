from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from briefflow.db.enums import ClubCharacterEnum, ClubTierEnum, PriorityEnum


class TopActivity(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    popularity: Literal["low", "medium", "high"]


class ActivityReasons(BaseModel):
    model_config = ConfigDict(extra="forbid")

    selected: list[str] = Field(default_factory=list)
    note: Optional[str] = Field(default=None, max_length=120)


class ClubContextRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    clubCharacter: Optional[ClubCharacterEnum] = None
    customCharacter: Optional[str] = Field(default=None, max_length=50)
    keyMemberGroups: list[str] = Field(default_factory=list, max_length=3)
    localConstraints: list[str] = Field(default_factory=list)
    topActivities: list[TopActivity] = Field(default_factory=list, max_length=3)
    activityReasons: ActivityReasons = Field(default_factory=ActivityReasons)
    localDecisionBrief: Optional[str] = Field(default=None, max_length=400)

    @model_validator(mode="after")
    def custom_character_required(self) -> "ClubContextRequest":
        if self.clubCharacter == ClubCharacterEnum.custom and not (self.customCharacter or "").strip():
            raise ValueError("customCharacter is required when clubCharacter is custom")
        for group in self.keyMemberGroups + self.localConstraints:
            if len(group) > 60:
                raise ValueError("Member groups and constraints are limited to 60 characters")
        return self


class ClubContextResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    clubId: UUID
    clubName: str
    tier: ClubTierEnum
    hasContext: bool
    clubCharacter: Optional[ClubCharacterEnum] = None
    customCharacter: Optional[str] = None
    keyMemberGroups: list[str] = Field(default_factory=list)
    localConstraints: list[str] = Field(default_factory=list)
    topActivities: list[dict[str, Any]] = Field(default_factory=list)
    activityReasons: dict[str, Any] = Field(default_factory=dict)
    localDecisionBrief: Optional[str] = None
    contextUpdatedAt: Optional[datetime] = None
    contextUpdatedById: Optional[UUID] = None


class StrategyDocumentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)


class StrategyDocumentResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    brandId: UUID
    title: str
    content: str
    isActive: bool
    updatedAt: datetime


class TemplateResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    name: str
    code: str
    description: Optional[str] = None
    requiredFields: dict[str, Any] = Field(default_factory=dict)
    defaultSlaDays: int
    defaultPriority: PriorityEnum
    isInternal: bool
