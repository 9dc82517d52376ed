"""Service layer package."""

from echolingo.services.auth import AuthService, SessionRegistry
from echolingo.services.news_service import NewsService
from echolingo.services.playback import ReviewSession, StartOutcome, Track
from echolingo.services.speech import HostedVoiceBackend, LocalVoiceBackend, Narrator
from echolingo.services.store import JsonStore
from echolingo.services.translation import TranslationService
from echolingo.services.tts import OpenAISpeechClient
from echolingo.services.users import UserService
from echolingo.services.workspace import LearnerWorkspace

__all__ = [
    "AuthService",
    "SessionRegistry",
    "NewsService",
    "ReviewSession",
    "StartOutcome",
    "Track",
    "HostedVoiceBackend",
    "LocalVoiceBackend",
    "Narrator",
    "JsonStore",
    "TranslationService",
    "OpenAISpeechClient",
    "UserService",
    "LearnerWorkspace",
]
