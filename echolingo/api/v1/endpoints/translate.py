"""Translation endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from echolingo.api.deps import get_current_user, get_translation_service
from echolingo.schemas import TranslationResponse
from echolingo.schemas.records import UserRecord
from echolingo.services.translation import TranslationService
from echolingo.utils.exceptions import TranslationError, handle_provider_error

router = APIRouter(tags=["translate"])


@router.get("/translate", response_model=TranslationResponse)
async def translate(
    text: str = Query(""),
    source: str = Query("en", alias="from"),
    target: str = Query("zh-TW", alias="to"),
    _: UserRecord = Depends(get_current_user),
    translator: TranslationService = Depends(get_translation_service),
) -> TranslationResponse:
    text = text.strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="text required")

    try:
        translated = await translator.translate(text, source.strip() or "en", target.strip() or "zh-TW")
    except TranslationError as exc:
        raise handle_provider_error(exc) from exc
    return TranslationResponse(translated_text=translated)
