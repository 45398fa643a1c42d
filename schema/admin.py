# schema/admin.py
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from src.motivation import norm_tags


class ResolveIn(BaseModel):
    note: str = Field(default="", max_length=400)


class BroadcastIn(BaseModel):
    message: str = Field(min_length=1, max_length=1000)
    user_ids: Optional[List[int]] = Field(default=None, alias="userIds")

    model_config = {"populate_by_name": True}


class QuoteIn(BaseModel):
    text: str = Field(min_length=1, max_length=1000)
    author: str = Field(default="", max_length=120)
    tone: Literal["inspiration", "humor"] = "inspiration"
    tags: Union[List[str], str, None] = None
    lang: str = Field(default="en", max_length=10)

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Quote text required")
        return v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v):
        return norm_tags(v)


class QuoteUpdate(BaseModel):
    text: Optional[str] = Field(default=None, max_length=1000)
    author: Optional[str] = Field(default=None, max_length=120)
    tone: Optional[Literal["inspiration", "humor"]] = None
    tags: Union[List[str], str, None] = None
    lang: Optional[str] = Field(default=None, max_length=10)
    active: Optional[bool] = None

    @field_validator("tags")
    @classmethod
    def _tags(cls, v):
        return None if v is None else norm_tags(v)


class PreviewIn(BaseModel):
    tags: Union[List[str], str, None] = None
    tone: Literal["inspiration", "humor"] = "inspiration"
