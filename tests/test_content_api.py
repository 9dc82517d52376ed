"""Tests for the provider-backed endpoints: providers, news, translate and tts."""
from __future__ import annotations

import json

import httpx
from fastapi.testclient import TestClient

from echolingo.api.deps import get_news_service, get_speech_client, get_translation_service
from echolingo.services.news_service import NewsService
from echolingo.services.translation import TranslationService
from echolingo.services.tts import OpenAISpeechClient
from tests.test_news_service import rss_handler


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def override(client: TestClient, dependency, value) -> None:
    client.app.dependency_overrides[dependency] = lambda: value


def test_provider_status(client: TestClient, admin_headers: dict[str, str]) -> None:
    override(client, get_speech_client, OpenAISpeechClient("", client=mock_client(lambda r: httpx.Response(200))))
    override(
        client,
        get_news_service,
        NewsService(mock_client(rss_handler), newsapi_key="", gnews_key="g", provider_mode="auto"),
    )

    response = client.get("/api/providers", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {
        "tts": {"local": True, "hosted": False},
        "news": {"rss": True, "newsapi": True},
    }
    refreshed = client.post("/api/admin/providers/refresh", headers=admin_headers)
    assert refreshed.json() == response.json()


def test_headlines(client: TestClient, admin_headers: dict[str, str]) -> None:
    override(
        client,
        get_news_service,
        NewsService(mock_client(rss_handler), newsapi_key="", gnews_key="", provider_mode="auto"),
    )

    response = client.get(
        "/api/news/headlines",
        params={"lang": "fr", "source": "other", "limit": "5", "q": " storm "},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["lang"], body["source"], body["query"], body["count"]) == ("en", "rss", "storm", 1)
    assert body["items"][0]["publishedAt"] == "2024-05-01T10:00:00.000Z"


def test_headlines_api_without_keys(client: TestClient, admin_headers: dict[str, str]) -> None:
    override(
        client,
        get_news_service,
        NewsService(mock_client(rss_handler), newsapi_key="", gnews_key="", provider_mode="auto"),
    )

    response = client.get("/api/news/headlines", params={"source": "newsapi"}, headers=admin_headers)

    assert response.status_code == 503


def test_headlines_require_auth(client: TestClient) -> None:
    assert client.get("/api/news/headlines").status_code == 401


def test_translate(client: TestClient, admin_headers: dict[str, str]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["langpair"] == "ja|zh-TW"
        return httpx.Response(200, json={"responseData": {"translatedText": "下雨"}})

    override(client, get_translation_service, TranslationService(mock_client(handler)))

    response = client.get("/api/translate", params={"text": "雨", "from": "ja"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"translatedText": "下雨"}


def test_translate_errors(client: TestClient, admin_headers: dict[str, str]) -> None:
    override(client, get_translation_service, TranslationService(mock_client(lambda r: httpx.Response(500))))

    blank = client.get("/api/translate", params={"text": "  "}, headers=admin_headers)
    assert blank.status_code == 400
    assert blank.json()["detail"] == "text required"

    failed = client.get("/api/translate", params={"text": "apple"}, headers=admin_headers)
    assert failed.status_code == 500


def test_tts_not_configured(client: TestClient, admin_headers: dict[str, str]) -> None:
    override(client, get_speech_client, OpenAISpeechClient("", client=mock_client(lambda r: httpx.Response(200))))

    assert client.post("/api/tts", json={"text": "hi"}, headers=admin_headers).status_code == 503
    assert client.post("/api/tts", json={"text": " "}, headers=admin_headers).status_code == 400


def test_tts_returns_audio(client: TestClient, admin_headers: dict[str, str]) -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, content=b"ID3audio")

    override(client, get_speech_client, OpenAISpeechClient("sk", model="tts-test", client=mock_client(handler)))

    response = client.post(
        "/api/tts", json={"text": "hello", "voice": "nova", "speed": 0.8}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.content == b"ID3audio"
    assert bodies[0]["voice"] == "nova"
    assert bodies[0]["speed"] == 0.8


def test_tts_provider_failure(client: TestClient, admin_headers: dict[str, str]) -> None:
    override(
        client,
        get_speech_client,
        OpenAISpeechClient("sk", client=mock_client(lambda r: httpx.Response(429, text="rate limited"))),
    )

    response = client.post("/api/tts", json={"text": "hello"}, headers=admin_headers)

    assert response.status_code == 500
    assert "rate limited" in response.json()["detail"]
