"""Which optional outbound providers this deployment has configured."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from echolingo.api.deps import get_current_user, get_news_service, get_speech_client
from echolingo.schemas import ProviderStatus
from echolingo.schemas.content import NewsProviders, SpeechProviders
from echolingo.schemas.records import UserRecord
from echolingo.services.news_service import NewsService
from echolingo.services.tts import OpenAISpeechClient

router = APIRouter(tags=["providers"])


def build_provider_status(speech: OpenAISpeechClient, news: NewsService) -> ProviderStatus:
    return ProviderStatus(
        tts=SpeechProviders(local=True, hosted=speech.configured),
        news=NewsProviders(rss=True, newsapi=news.newsapi_available),
    )


@router.get("/providers", response_model=ProviderStatus)
def read_providers(
    _: UserRecord = Depends(get_current_user),
    speech: OpenAISpeechClient = Depends(get_speech_client),
    news: NewsService = Depends(get_news_service),
) -> ProviderStatus:
    return build_provider_status(speech, news)
