"""Hosted text-to-speech endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from echolingo.api.deps import get_current_user, get_speech_client
from echolingo.schemas import SpeechRequest
from echolingo.schemas.records import UserRecord
from echolingo.services.tts import OpenAISpeechClient
from echolingo.utils.exceptions import (
    ProviderUnavailableError,
    SpeechProviderError,
    handle_provider_error,
)

router = APIRouter(tags=["tts"])


@router.post("/tts", response_class=Response)
async def synthesize(
    payload: SpeechRequest,
    _: UserRecord = Depends(get_current_user),
    client: OpenAISpeechClient = Depends(get_speech_client),
) -> Response:
    """Return MP3 audio for ``payload.text``."""

    if not payload.text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="text required")
    if not client.configured:
        raise handle_provider_error(ProviderUnavailableError("OPENAI_API_KEY not configured"))

    try:
        audio = await client.synthesize(payload.text, voice=payload.voice, speed=payload.speed)
    except SpeechProviderError as exc:
        raise handle_provider_error(exc) from exc
    return Response(content=audio, media_type="audio/mpeg")
