"""Authentication service request/response schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(_CamelModel):
    username: str
    password: str


class RegisterRequest(_CamelModel):
    username: str
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: List[str] = Field(default_factory=lambda: ["user"])
    is_active: bool = True
    last_login: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserProfile(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(validation_alias=AliasChoices("id", "userId"))
    email: str
    roles: List[str] = Field(default_factory=list)
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class AuthResponse(_CamelModel):
    user: Optional[UserProfile] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class RefreshRequest(_CamelModel):
    refresh_token: str


class RefreshResponse(_CamelModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
