"""Account, registration and profile schemas."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from fastapi_users import schemas
from pydantic import Field, field_validator, model_validator
from pydantic.networks import validate_email

from scribe.config import settings
from scribe.schemas.base import CamelModel
from scribe.schemas.post import PostSummary
from scribe.utils.sentinel import UNSET, Unset


class UserCreate(schemas.BaseUserCreate):
    name: str


class RegisterRequest(CamelModel):
    name: str | None = Field(default=None, validate_default=True)
    email: str | None = Field(default=None, validate_default=True)
    password: str | None = Field(default=None, validate_default=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValueError("Email is required")
        _, normalized = validate_email(value.strip())
        return normalized

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str | None) -> str:
        if value is None or len(value) < settings.min_password_length:
            raise ValueError(
                f"Password must be at least {settings.min_password_length} characters"
            )
        return value


class RegisteredAccount(CamelModel):
    id: uuid.UUID
    email: str
    name: str


class ProfileRead(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    short_bio: str | None = None
    about: str | None = None


@dataclass(frozen=True, slots=True)
class ProfileChanges:
    name: str | Unset = UNSET
    short_bio: str | None | Unset = UNSET
    about: str | None | Unset = UNSET


class ProfileUpdate(CamelModel):
    """Body of ``POST /profile``.

    ``id`` is accepted only so a client that sends one can be told off:
    naming any account other than the caller's is refused.
    """

    id: uuid.UUID | None = None
    name: str | None = None
    short_bio: str | None = Field(default=None, max_length=160)
    about: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    def to_changes(self) -> ProfileChanges:
        provided = self.model_fields_set
        return ProfileChanges(
            name=self.name if "name" in provided else UNSET,
            short_bio=self.short_bio if "short_bio" in provided else UNSET,
            about=self.about if "about" in provided else UNSET,
        )


class PasswordChange(CamelModel):
    current_password: str | None = None
    new_password: str | None = None

    @model_validator(mode="after")
    def require_both(self) -> PasswordChange:
        if not self.current_password or not self.new_password:
            raise ValueError("Missing fields")
        return self


class PasswordChanged(CamelModel):
    ok: bool = True


class PublicProfile(CamelModel):
    id: uuid.UUID
    name: str
    short_bio: str | None = None
    about: str | None = None
    created_at: datetime
    posts: list[PostSummary]


class AuthorizationURL(CamelModel):
    authorization_url: str
