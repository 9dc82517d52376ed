"""Authentication-related Pydantic schemas."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    """Credentials submitted to ``/auth/login``."""

    account: str = ""
    password: str = ""

    @field_validator("account", "password", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class AuthUser(BaseModel):
    """Public identity of a signed-in account."""

    account: str
    role: Literal["admin", "user"]
    name: str


class LoginResponse(BaseModel):
    token: str = Field(description="Opaque bearer token")
    user: AuthUser
