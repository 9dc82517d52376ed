"""Pydantic models for persisted learner records.

Wire names are camelCase (``meaningZh``, ``lastReviewedAt`` ...) so exported
and imported JSON stays compatible with existing backups; attributes are
snake_case. Dump with ``by_alias=True`` when writing JSON.
"""
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Bucket = Literal["en", "zh", "ja"]
BUCKETS: tuple[str, ...] = ("en", "zh", "ja")

SpeechEngine = Literal["local", "hosted"]
ThemeMode = Literal["light", "dark"]
UserRole = Literal["admin", "user"]


class RecordModel(BaseModel):
    """Base model accepting both attribute and wire names."""

    model_config = ConfigDict(populate_by_name=True)


class BucketVoices(RecordModel):
    """Local voice identifiers per language bucket ("" = engine default)."""

    en: str = ""
    zh: str = ""
    ja: str = ""

    def get(self, bucket: str) -> str:
        return getattr(self, bucket)


class BucketLevels(RecordModel):
    """Numeric setting (rate, pitch, volume) per language bucket."""

    en: float
    zh: float
    ja: float

    def get(self, bucket: str) -> float:
        return getattr(self, bucket)

    @classmethod
    def uniform(cls, value: float) -> "BucketLevels":
        return cls(en=value, zh=value, ja=value)


class VocabularyItem(RecordModel):
    """English vocabulary card."""

    id: str
    word: str = Field(min_length=1)
    meaning: str = Field(alias="meaningZh")
    tags: List[str] = Field(default_factory=list)
    needs_work: bool = Field(default=False, alias="needsWork")
    level: int = Field(default=0, ge=0)
    last_reviewed_at: Optional[str] = Field(default=None, alias="lastReviewedAt")


class VocabularyGloss(RecordModel):
    """Term/gloss pair attached to a sentence."""

    word: str = Field(min_length=1)
    meaning: str = Field(alias="meaningZh", min_length=1)


class SentenceItem(RecordModel):
    """Japanese sentence card."""

    id: str
    sentence: str = Field(min_length=1)
    romanization: str = Field(alias="romaji")
    meaning: str = Field(alias="meaningZh")
    tags: List[str] = Field(default_factory=list)
    glosses: List[VocabularyGloss] = Field(default_factory=list, alias="vocabulary")
    level: int = Field(default=0, ge=0)
    last_reviewed_at: Optional[str] = Field(default=None, alias="lastReviewedAt")


class SpeechProfile(RecordModel):
    """Narration settings; every bucket map holds exactly en/zh/ja."""

    engine: SpeechEngine = "local"
    hosted_voice: str = Field(default="alloy", alias="hostedVoice")
    local_voices: BucketVoices = Field(default_factory=BucketVoices, alias="localVoices")
    rates: BucketLevels = Field(default_factory=lambda: BucketLevels.uniform(0.95))
    pitches: BucketLevels = Field(default_factory=lambda: BucketLevels.uniform(1.0))
    local_volumes: BucketLevels = Field(
        default_factory=lambda: BucketLevels.uniform(1.0), alias="localVolumes"
    )
    hosted_volumes: BucketLevels = Field(
        default_factory=lambda: BucketLevels.uniform(0.9), alias="hostedVolumes"
    )


class UserDataRecord(RecordModel):
    """Everything one learner owns."""

    vocabulary: List[VocabularyItem] = Field(default_factory=list, alias="englishWords")
    sentences: List[SentenceItem] = Field(default_factory=list, alias="japaneseSentences")
    speech: SpeechProfile = Field(default_factory=SpeechProfile, alias="speechSettings")
    theme: ThemeMode = "light"
    updated_at: str = Field(alias="updatedAt")


class UserRecord(RecordModel):
    """Account entry in the JSON database."""

    account: str
    password: str
    active: bool = True
    role: UserRole = "user"
    name: str
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    data: UserDataRecord


class DatabaseMeta(RecordModel):
    last_backup_date: Optional[str] = Field(default=None, alias="lastBackupDate")


class AppDatabase(RecordModel):
    """Root document of ``app-db.json``."""

    meta: DatabaseMeta = Field(default_factory=DatabaseMeta)
    users: Dict[str, UserRecord] = Field(default_factory=dict)


class NewsHeadline(RecordModel):
    id: str
    title: str
    summary: str = ""
    link: str = ""
    source: str
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
