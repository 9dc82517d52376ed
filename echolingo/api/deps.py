"""Shared API dependencies."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from echolingo.config import settings
from echolingo.schemas.records import UserRecord
from echolingo.services.auth import AuthService, SessionRegistry
from echolingo.services.news_service import NewsService
from echolingo.services.store import JsonStore
from echolingo.services.translation import TranslationService
from echolingo.services.tts import OpenAISpeechClient
from echolingo.services.users import UserService
from echolingo.utils.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    handle_authentication_error,
    handle_permission_denied,
)

# auto_error is off so a missing header gets the same 401 body as a bad token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)

_store_singleton: JsonStore | None = None
_sessions_singleton: SessionRegistry | None = None
_news_singleton: NewsService | None = None
_translation_singleton: TranslationService | None = None
_speech_client_singleton: OpenAISpeechClient | None = None


def get_store() -> JsonStore:
    """Return the process-wide JSON store (loaded by the app lifespan)."""

    global _store_singleton
    if _store_singleton is None:
        _store_singleton = JsonStore(settings.DATA_DIR)
    return _store_singleton


def get_sessions() -> SessionRegistry:
    global _sessions_singleton
    if _sessions_singleton is None:
        _sessions_singleton = SessionRegistry()
    return _sessions_singleton


def get_news_service() -> NewsService:
    global _news_singleton
    if _news_singleton is None:
        _news_singleton = NewsService()
    return _news_singleton


def get_translation_service() -> TranslationService:
    global _translation_singleton
    if _translation_singleton is None:
        _translation_singleton = TranslationService()
    return _translation_singleton


def get_speech_client() -> OpenAISpeechClient:
    global _speech_client_singleton
    if _speech_client_singleton is None:
        _speech_client_singleton = OpenAISpeechClient()
    return _speech_client_singleton


def get_auth_service(
    store: JsonStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AuthService:
    return AuthService(store, sessions)


def get_user_service(
    store: JsonStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
) -> UserService:
    return UserService(store, sessions)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> UserRecord:
    """Resolve the signed-in account from the Authorization header."""

    try:
        return auth.authenticate(token)
    except AuthenticationError as exc:
        raise handle_authentication_error(exc) from exc
    except PermissionDeniedError as exc:
        raise handle_permission_denied(exc) from exc


def get_current_admin(current_user: UserRecord = Depends(get_current_user)) -> UserRecord:
    try:
        return AuthService.require_admin(current_user)
    except PermissionDeniedError as exc:
        raise handle_permission_denied(exc) from exc


async def close_clients() -> None:
    """Close outbound HTTP clients created by the getters above."""

    global _news_singleton, _translation_singleton, _speech_client_singleton
    for client in (_news_singleton, _translation_singleton, _speech_client_singleton):
        if client is not None:
            await client.close()
    _news_singleton = _translation_singleton = _speech_client_singleton = None
