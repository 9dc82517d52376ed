"""Pydantic schemas for account administration endpoints."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AdminModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserSummary(AdminModel):
    """Row of the admin user table."""

    account: str
    active: bool
    name: str
    role: Literal["admin", "user"]
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    vocabulary_count: int = Field(alias="englishCount")
    sentence_count: int = Field(alias="japaneseCount")


class UserListResponse(AdminModel):
    users: List[UserSummary]


class UserCreateRequest(AdminModel):
    account: str = ""
    password: str = ""
    name: Optional[str] = None
    role: Optional[str] = None


class PasswordChangeRequest(AdminModel):
    password: str = ""


class StatusChangeRequest(AdminModel):
    active: bool = False


class BackupFile(AdminModel):
    file_name: str = Field(alias="fileName")
    size: int
    mtime: str


class BackupListResponse(AdminModel):
    files: List[BackupFile]


class OkResponse(AdminModel):
    ok: bool = True
