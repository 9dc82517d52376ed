"""Tests for the translation and hosted speech clients."""
from __future__ import annotations

import json

import httpx
import pytest

from echolingo.services.translation import TranslationService
from echolingo.services.tts import OpenAISpeechClient
from echolingo.utils.exceptions import SpeechProviderError, TranslationError


def translator(handler) -> TranslationService:
    return TranslationService(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_translate_and_cache() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(dict(request.url.params))
        return httpx.Response(200, json={"responseData": {"translatedText": " 蘋果 "}})

    service = translator(handler)

    assert await service.translate("apple") == "蘋果"
    assert await service.translate("apple") == "蘋果"
    assert requests == [{"q": "apple", "langpair": "en|zh-TW"}]


@pytest.mark.asyncio
async def test_blank_translation_returns_input() -> None:
    service = translator(lambda request: httpx.Response(200, json={"responseData": {"translatedText": ""}}))

    assert await service.translate("雨", "ja") == "雨"
    assert await service.translate("  ") == ""


@pytest.mark.asyncio
async def test_translation_provider_error() -> None:
    service = translator(lambda request: httpx.Response(503))

    with pytest.raises(TranslationError):
        await service.translate("apple")


@pytest.mark.asyncio
async def test_translation_non_json() -> None:
    service = translator(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(TranslationError, match="not JSON"):
        await service.translate("apple")


@pytest.mark.asyncio
async def test_speech_client_payload() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"ID3")

    client = OpenAISpeechClient(
        "sk-test",
        model="tts-test",
        base_url="https://speech.example.com/v1/",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    audio = await client.synthesize("hello", voice=" ", speed="3")

    assert audio == b"ID3"
    assert captured["url"] == "https://speech.example.com/v1/audio/speech"
    assert captured["auth"] == "Bearer sk-test"
    assert captured["body"] == {
        "model": "tts-test",
        "voice": "alloy",
        "speed": 1.5,
        "input": "hello",
        "response_format": "mp3",
    }


@pytest.mark.asyncio
async def test_speech_client_without_key() -> None:
    client = OpenAISpeechClient("", client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))))

    with pytest.raises(SpeechProviderError, match="not configured"):
        await client.synthesize("hello")


def test_clamp_speed() -> None:
    assert OpenAISpeechClient.clamp_speed("abc") == 0.5
    assert OpenAISpeechClient.clamp_speed(None) == 1.0
    assert OpenAISpeechClient.clamp_speed(0.9) == 0.9
