"""Machine translation through the public MyMemory API."""
from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from echolingo.config import settings
from echolingo.utils.cache import build_cache_key, cache_backend
from echolingo.utils.exceptions import TranslationError


class TranslationService:
    """Translate short texts (words, headlines, sentences)."""

    MYMEMORY_URL = "https://api.mymemory.translated.net/get"
    CACHE_TTL_SECONDS = 60 * 60 * 24

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self.client = client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True
        )

    async def translate(self, text: str, source: str = "en", target: str = "zh-TW") -> str:
        """Return the translation of ``text``; the input itself if the provider answers blank."""

        text = (text or "").strip()
        if not text:
            return ""

        cache_key = build_cache_key(text=text, source=source, target=target)
        cached = cache_backend.get("translation", cache_key)
        if cached:
            return cached

        try:
            response = await self._fetch(text, f"{source}|{target}")
        except httpx.HTTPError as exc:
            logger.warning("Translation request failed", error=str(exc))
            raise TranslationError("translation request failed") from exc

        if response.status_code >= 400:
            logger.warning("Translation provider returned error", status=response.status_code)
            raise TranslationError("translation request failed", {"status": response.status_code})

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranslationError("translation response was not JSON") from exc

        data = payload.get("responseData") if isinstance(payload, dict) else None
        translated = str((data or {}).get("translatedText") or "").strip()
        result = translated or text
        cache_backend.set("translation", cache_key, result, ttl_seconds=self.CACHE_TTL_SECONDS)
        return result

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.HTTP_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        before_sleep=before_sleep_log(logger, "WARNING"),
        reraise=True,
    )
    async def _fetch(self, text: str, langpair: str) -> httpx.Response:
        return await self.client.get(self.MYMEMORY_URL, params={"q": text, "langpair": langpair})

    async def close(self) -> None:
        await self.client.aclose()
