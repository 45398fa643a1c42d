from __future__ import annotations

from typing import Literal, Optional, List

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator

from model.enums import REACTION_TYPES


# ------------------------------------------------------------
# Posts
# ------------------------------------------------------------
class ReactIn(BaseModel):
    type: str

    @field_validator("type")
    @classmethod
    def _type(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in REACTION_TYPES:
            raise ValueError("Invalid reaction type")
        return v


class CommentIn(BaseModel):
    text: str = Field(max_length=1000)

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Comment text required")
        return v


# ------------------------------------------------------------
# Groups / pages
# ------------------------------------------------------------
class GroupCreate(BaseModel):
    name: str
    description: str = Field(default="", max_length=300)
    privacy: Literal["public", "private"] = "public"

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = (v or "").strip()
        if not 3 <= len(v) <= 80:
            raise ValueError("Group name must be 3-80 chars")
        return v


class PageCreate(BaseModel):
    name: str
    category: str = Field(default="", max_length=80)
    description: str = Field(default="", max_length=300)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = (v or "").strip()
        if not 3 <= len(v) <= 80:
            raise ValueError("Page name must be 3-80 chars")
        return v


# ------------------------------------------------------------
# Messages / reports
# ------------------------------------------------------------
class MessageIn(BaseModel):
    text: str = Field(max_length=4000)

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Message text required")
        return v


class ReportIn(BaseModel):
    target_type: Literal["post", "comment", "user", "page", "group"] = Field(
        default="post", validation_alias=AliasChoices("targetType", "target_type")
    )
    target_id: int = Field(ge=1, validation_alias=AliasChoices("targetId", "target_id", "postId"))
    reason: str = Field(default="other", max_length=100)
    note: str = Field(default="", max_length=1000)

    model_config = ConfigDict(populate_by_name=True)


# ------------------------------------------------------------
# Motivation
# ------------------------------------------------------------
class ToneIn(BaseModel):
    inspiration: Optional[bool] = None
    humor: Optional[bool] = None


class MotivationPrefsIn(BaseModel):
    enabled: Optional[bool] = None
    hour_local: Optional[int] = Field(default=None, ge=0, le=23, validation_alias=AliasChoices("hourLocal", "hour_local"))
    tone: Optional[ToneIn] = None
    interests: Optional[List[str]] = Field(default=None, max_length=25)
    goals: Optional[List[str]] = Field(default=None, max_length=25)
    role: Optional[str] = Field(default=None, max_length=40)
    language: Optional[str] = Field(default=None, max_length=10)

    model_config = ConfigDict(populate_by_name=True)

    def as_update(self) -> dict:
        data = self.model_dump(exclude_none=True)
        if "hour_local" in data:
            data["hourLocal"] = data.pop("hour_local")
        return data


__all__ = [
    "ReactIn",
    "CommentIn",
    "GroupCreate",
    "PageCreate",
    "MessageIn",
    "ReportIn",
    "ToneIn",
    "MotivationPrefsIn",
]
