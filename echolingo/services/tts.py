"""Hosted text-to-speech client (OpenAI ``audio/speech``)."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from loguru import logger
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from echolingo.config import settings
from echolingo.core.sanitizer import clamp_number, to_number
from echolingo.utils.exceptions import SpeechProviderError

SPEED_RANGE = (0.5, 1.5)
# Raw PCM returned for response_format="pcm": 24 kHz, signed 16-bit little endian, mono.
PCM_SAMPLE_RATE = 24_000


class OpenAISpeechClient:
    """Synthesize speech audio through the OpenAI API."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_TTS_MODEL
        self.base_url = str(base_url or settings.OPENAI_API_BASE or self.DEFAULT_BASE_URL).rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def clamp_speed(speed: Any) -> float:
        return clamp_number(to_number(speed, 1.0), *SPEED_RANGE)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.HTTP_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        before_sleep=before_sleep_log(logger, "WARNING"),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        return await self.client.post(
            f"{self.base_url}/audio/speech", json=payload, headers=self._build_headers()
        )

    async def synthesize(
        self,
        text: str,
        *,
        voice: str = "alloy",
        speed: Any = 1.0,
        response_format: str = "mp3",
    ) -> bytes:
        """Return encoded audio for ``text``."""

        if not self.configured:
            raise SpeechProviderError("OPENAI_API_KEY not configured")

        payload = {
            "model": self.model,
            "voice": (voice or "").strip() or "alloy",
            "speed": self.clamp_speed(speed),
            "input": text,
            "response_format": response_format,
        }
        try:
            response = await self._post(payload)
        except httpx.HTTPError as exc:
            logger.error("Hosted speech request failed", error=str(exc))
            raise SpeechProviderError("hosted speech request failed") from exc

        if response.status_code >= 400:
            logger.error("Hosted speech returned error", status=response.status_code, body=response.text)
            raise SpeechProviderError(
                f"hosted speech failed: {response.text}", {"status": response.status_code}
            )

        logger.debug("Hosted speech synthesized", chars=len(text), bytes=len(response.content))
        return response.content

    async def close(self) -> None:
        await self.client.aclose()
