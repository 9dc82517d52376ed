"""Schemas for news, translation, speech and provider endpoints."""
from __future__ import annotations

from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from echolingo.schemas.records import NewsHeadline


class HeadlineResponse(BaseModel):
    lang: Literal["en", "ja"]
    source: Literal["rss", "newsapi"]
    query: str
    count: int
    items: List[NewsHeadline]


class TranslationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    translated_text: str = Field(alias="translatedText")


class SpeechRequest(BaseModel):
    """Body of ``POST /tts``."""

    text: str = ""
    voice: str = "alloy"
    speed: Any = 1.0

    @field_validator("text", "voice", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class SpeechProviders(BaseModel):
    local: bool = True
    hosted: bool = False


class NewsProviders(BaseModel):
    rss: bool = True
    newsapi: bool = False


class ProviderStatus(BaseModel):
    tts: SpeechProviders
    news: NewsProviders
