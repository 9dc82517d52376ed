"""Headline endpoints used for importing study material."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from echolingo.api.deps import get_current_user, get_news_service
from echolingo.schemas import HeadlineResponse
from echolingo.schemas.records import UserRecord
from echolingo.services.news_service import DEFAULT_LIMIT, NewsService, normalize_lang
from echolingo.utils.exceptions import ProviderError, handle_provider_error

router = APIRouter(prefix="/news", tags=["news"])


@router.get("/headlines", response_model=HeadlineResponse)
async def read_headlines(
    lang: Optional[str] = Query("en"),
    source: Optional[str] = Query("rss"),
    limit: Optional[str] = Query(str(DEFAULT_LIMIT)),
    q: Optional[str] = Query(""),
    _: UserRecord = Depends(get_current_user),
    news: NewsService = Depends(get_news_service),
) -> HeadlineResponse:
    """Return headlines from RSS feeds or the configured news API."""

    lang = normalize_lang(lang)
    source = "newsapi" if source == "newsapi" else "rss"
    query = (q or "").strip()
    try:
        items = await news.fetch_headlines(lang, source, limit, query)
    except ProviderError as exc:
        raise handle_provider_error(exc) from exc
    return HeadlineResponse(lang=lang, source=source, query=query, count=len(items), items=items)
