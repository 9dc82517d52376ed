"""Schemas for the learner data endpoints."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from echolingo.schemas.records import UserDataRecord


class UserDataEnvelope(BaseModel):
    """Signed-in account plus its full data record."""

    account: str
    active: bool
    role: Literal["admin", "user"]
    name: str
    data: UserDataRecord


class ImportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    vocabulary_count: int = Field(alias="englishCount")
    sentence_count: int = Field(alias="japaneseCount")
