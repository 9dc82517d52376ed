"""Pydantic schemas package."""

from echolingo.schemas.admin import (
    BackupFile,
    BackupListResponse,
    OkResponse,
    PasswordChangeRequest,
    StatusChangeRequest,
    UserCreateRequest,
    UserListResponse,
    UserSummary,
)
from echolingo.schemas.auth import AuthUser, LoginRequest, LoginResponse
from echolingo.schemas.content import (
    HeadlineResponse,
    ProviderStatus,
    SpeechRequest,
    TranslationResponse,
)
from echolingo.schemas.records import (
    AppDatabase,
    NewsHeadline,
    SentenceItem,
    SpeechProfile,
    UserDataRecord,
    UserRecord,
    VocabularyGloss,
    VocabularyItem,
)
from echolingo.schemas.user_data import ImportResponse, UserDataEnvelope

__all__ = [
    "AppDatabase",
    "AuthUser",
    "BackupFile",
    "BackupListResponse",
    "HeadlineResponse",
    "ImportResponse",
    "LoginRequest",
    "LoginResponse",
    "NewsHeadline",
    "OkResponse",
    "PasswordChangeRequest",
    "ProviderStatus",
    "SentenceItem",
    "SpeechProfile",
    "SpeechRequest",
    "StatusChangeRequest",
    "TranslationResponse",
    "UserCreateRequest",
    "UserDataEnvelope",
    "UserDataRecord",
    "UserListResponse",
    "UserRecord",
    "UserSummary",
    "VocabularyGloss",
    "VocabularyItem",
]
