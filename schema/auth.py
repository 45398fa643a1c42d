# schema/auth.py
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, EmailStr, AliasChoices, field_validator
from pydantic.config import ConfigDict

from src.reserved_names import is_reserved_name

_PSEUDONYM_RE = re.compile(r"^[\w .\-]+$", re.UNICODE)


def check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 chars")
    if not re.search(r"[A-Za-z]", value):
        raise ValueError("Password needs a letter")
    if not re.search(r"\d", value):
        raise ValueError("Password needs a number")
    return value


class SignupIn(BaseModel):
    pseudonym: str
    password: str
    email: Optional[EmailStr] = None
    code: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("pseudonym")
    @classmethod
    def _pseudonym(cls, v: str) -> str:
        v = (v or "").strip()
        if not 3 <= len(v) <= 32:
            raise ValueError("Pseudonym must be 3-32 chars")
        if not _PSEUDONYM_RE.match(v):
            raise ValueError("Only letters, numbers, space, _ - .")
        if is_reserved_name(v):
            raise ValueError("Pseudonym not allowed")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        if v is None:
            return None
        v = str(v).strip().lower()
        return v or None

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("code")
    @classmethod
    def _code(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not re.fullmatch(r"\d{6}", v):
            raise ValueError("Bad code")
        return v


class SignupCodeIn(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v):
        return str(v or "").strip().lower()


class LoginIn(BaseModel):
    # pseudonym or email; a few client spellings are accepted
    identifier: str = Field(
        min_length=1,
        validation_alias=AliasChoices("identifier", "pseudonym", "username", "email", "login"),
    )
    password: str = Field(min_length=1)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ChangePasswordIn(BaseModel):
    current: str = Field(min_length=1)
    next: str

    @field_validator("next")
    @classmethod
    def _next(cls, v: str) -> str:
        return check_password_strength(v)


class ResetPasswordIn(BaseModel):
    identifier: str = Field(
        min_length=1,
        validation_alias=AliasChoices("identifier", "pseudonym", "username", "email"),
    )
    new_password: str = Field(validation_alias=AliasChoices("newPassword", "new_password", "password"))

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("new_password")
    @classmethod
    def _new(cls, v: str) -> str:
        return check_password_strength(v)


class BootstrapIn(BaseModel):
    pseudonym: str = Field(min_length=3, max_length=32)
    password: str
    email: Optional[EmailStr] = None

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password_strength(v)
