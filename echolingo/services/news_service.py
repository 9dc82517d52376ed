"""Service for fetching news headlines used as study material."""
from __future__ import annotations

import html
import re
import xml.etree.ElementTree as ET
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

import httpx
from loguru import logger

from echolingo.config import settings
from echolingo.core.sanitizer import clamp_number, to_number
from echolingo.schemas.records import NewsHeadline
from echolingo.utils.cache import build_cache_key, cache_backend
from echolingo.utils.exceptions import NewsProviderError, ProviderUnavailableError
from echolingo.utils.timestamps import format_timestamp, parse_timestamp

SUPPORTED_LANGS = ("en", "ja")
LIMIT_RANGE = (1, 50)
DEFAULT_LIMIT = 8

_CONTENT_ENCODED = "{http://purl.org/rss/1.0/modules/content/}encoded"


def normalize_lang(lang: Optional[str]) -> str:
    return "ja" if (lang or "").strip().lower() == "ja" else "en"


def normalize_limit(limit: object) -> int:
    return int(clamp_number(to_number(limit, DEFAULT_LIMIT), *LIMIT_RANGE))


def deduplicate_headlines(items: list[NewsHeadline]) -> list[NewsHeadline]:
    """Drop repeats of the same title from the same source."""

    seen: set[str] = set()
    result: list[NewsHeadline] = []
    for item in items:
        key = f"{item.title.lower()}|{item.source.lower()}"
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


class NewsService:
    """Fetch headlines from fixed RSS feeds or a keyed news API."""

    RSS_FEEDS = {
        "en": (
            "https://feeds.bbci.co.uk/news/world/rss.xml",
            "https://rss.nytimes.com/services/xml/rss/nyt/World.xml",
            "https://www.theguardian.com/world/rss",
        ),
        "ja": (
            "https://www3.nhk.or.jp/rss/news/cat0.xml",
            "https://www3.nhk.or.jp/rss/news/cat1.xml",
        ),
    }
    NEWSAPI_TOP = "https://newsapi.org/v2/top-headlines"
    NEWSAPI_EVERYTHING = "https://newsapi.org/v2/everything"
    GNEWS_TOP = "https://gnews.io/api/v4/top-headlines"
    GNEWS_SEARCH = "https://gnews.io/api/v4/search"
    CACHE_TTL_SECONDS = 60 * 10

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        newsapi_key: Optional[str] = None,
        gnews_key: Optional[str] = None,
        provider_mode: Optional[str] = None,
    ) -> None:
        self.client = client or httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True
        )
        self.newsapi_key = newsapi_key if newsapi_key is not None else (settings.NEWSAPI_KEY or "")
        self.gnews_key = gnews_key if gnews_key is not None else (settings.GNEWS_API_KEY or "")
        mode = (provider_mode or settings.news_provider_mode).strip().lower()
        self.provider_mode = mode if mode in {"newsapi", "gnews"} else "auto"

    @property
    def newsapi_available(self) -> bool:
        return bool(self.newsapi_key or self.gnews_key)

    async def fetch_headlines(
        self,
        lang: str = "en",
        source: str = "rss",
        limit: object = DEFAULT_LIMIT,
        query: str = "",
    ) -> list[NewsHeadline]:
        """Return up to ``limit`` headlines, newest first for RSS."""

        lang = normalize_lang(lang)
        source = "newsapi" if source == "newsapi" else "rss"
        limit = normalize_limit(limit)
        query = (query or "").strip()

        cache_key = build_cache_key(lang=lang, source=source, limit=limit, query=query)
        cached = cache_backend.get("news:headlines", cache_key)
        if cached is not None:
            return [NewsHeadline.model_validate(item) for item in cached]

        if source == "newsapi":
            items = await self._fetch_api_headlines(lang, limit, query)
        else:
            items = await self._fetch_rss_headlines(lang, limit, query)

        cache_backend.set(
            "news:headlines",
            cache_key,
            [item.model_dump(by_alias=True) for item in items],
            ttl_seconds=self.CACHE_TTL_SECONDS,
        )
        logger.info("Headlines fetched", lang=lang, source=source, count=len(items))
        return items

    # ------------------------------------------------------------------ rss

    async def _fetch_rss_headlines(self, lang: str, limit: int, query: str) -> list[NewsHeadline]:
        collected: list[NewsHeadline] = []
        for feed_url in self.RSS_FEEDS[lang]:
            try:
                response = await self.client.get(feed_url)
                if response.status_code >= 400:
                    logger.debug("RSS feed returned error", url=feed_url, status=response.status_code)
                    continue
                collected.extend(self._parse_rss_items(response.text, feed_url=feed_url))
            except (httpx.HTTPError, ET.ParseError) as exc:
                logger.debug("RSS feed fetch failed", url=feed_url, error=str(exc))
                continue

        unique = deduplicate_headlines(collected)
        keyword = query.lower()
        if keyword:
            unique = [item for item in unique if keyword in f"{item.title} {item.summary}".lower()]
        unique.sort(key=self._published_sort_key, reverse=True)
        return unique[:limit]

    @staticmethod
    def _published_sort_key(item: NewsHeadline) -> float:
        parsed = parse_timestamp(item.published_at) if item.published_at else None
        return parsed.timestamp() if parsed else float("-inf")

    def _parse_rss_items(self, xml_text: str, *, feed_url: str) -> list[NewsHeadline]:
        root = ET.fromstring(xml_text)
        channel = root.find("./channel")
        channel_title = self._clean_text(channel.findtext("title") if channel is not None else "")
        source = channel_title or urlparse(feed_url).hostname or feed_url

        items: list[NewsHeadline] = []
        for item in root.findall("./channel/item"):
            title = (item.findtext("title") or "").strip()
            if not title:
                continue
            summary = self._clean_text(item.findtext("description") or item.findtext(_CONTENT_ENCODED) or "")
            published = parse_timestamp(item.findtext("pubDate"))
            items.append(
                NewsHeadline(
                    id=f"{source}-{title}",
                    title=title,
                    summary=summary,
                    link=(item.findtext("link") or "").strip(),
                    source=source,
                    published_at=format_timestamp(published) if published else None,
                )
            )
        return items

    def _clean_text(self, value: str) -> str:
        raw = html.unescape(value or "")
        raw = re.sub(r"<[^>]+>", " ", raw)
        raw = re.sub(r"\s+", " ", raw)
        return raw.strip()

    # ------------------------------------------------------------------ api

    def _api_attempts(
        self, lang: str, limit: int, query: str
    ) -> list[Callable[[], Awaitable[list[NewsHeadline]]]]:
        if self.provider_mode == "newsapi":
            if not self.newsapi_key:
                raise ProviderUnavailableError("NEWS_PROVIDER=newsapi but NEWSAPI_KEY is not set")
            return [lambda: self._fetch_newsapi(lang, limit, query, self.newsapi_key)]

        if self.provider_mode == "gnews":
            key = self.gnews_key or self.newsapi_key
            if not key:
                raise ProviderUnavailableError(
                    "NEWS_PROVIDER=gnews but neither GNEWS_API_KEY nor NEWSAPI_KEY is set"
                )
            return [lambda: self._fetch_gnews(lang, limit, query, key)]

        attempts: list[Callable[[], Awaitable[list[NewsHeadline]]]] = []
        if self.newsapi_key:
            attempts.append(lambda: self._fetch_newsapi(lang, limit, query, self.newsapi_key))
        if self.gnews_key:
            attempts.append(lambda: self._fetch_gnews(lang, limit, query, self.gnews_key))
        elif self.newsapi_key:
            # Some deployments only have one key and it belongs to GNews.
            attempts.append(lambda: self._fetch_gnews(lang, limit, query, self.newsapi_key))
        if not attempts:
            raise ProviderUnavailableError("neither NEWSAPI_KEY nor GNEWS_API_KEY is set")
        return attempts

    async def _fetch_api_headlines(self, lang: str, limit: int, query: str) -> list[NewsHeadline]:
        errors: list[str] = []
        for attempt in self._api_attempts(lang, limit, query):
            try:
                return await attempt()
            except NewsProviderError as exc:
                errors.append(exc.message)
            except (httpx.HTTPError, ValueError) as exc:
                errors.append(str(exc) or exc.__class__.__name__)
        raise NewsProviderError(" | ".join(errors))

    async def _fetch_newsapi(self, lang: str, limit: int, query: str, api_key: str) -> list[NewsHeadline]:
        if query:
            url = self.NEWSAPI_EVERYTHING
            params = {"pageSize": str(limit), "language": lang, "q": query, "sortBy": "publishedAt"}
        else:
            url = self.NEWSAPI_TOP
            params = {"pageSize": str(limit), "country": "jp" if lang == "ja" else "us"}

        response = await self.client.get(url, params=params, headers={"X-Api-Key": api_key})
        if response.status_code >= 400:
            raise NewsProviderError(f"NewsAPI failed: {response.text or response.reason_phrase}")
        return self._map_articles(response.json(), provider="NewsAPI", limit=limit)

    async def _fetch_gnews(self, lang: str, limit: int, query: str, api_key: str) -> list[NewsHeadline]:
        params = {"lang": lang, "max": str(limit), "apikey": api_key}
        if query:
            url = self.GNEWS_SEARCH
            params["q"] = query
        else:
            url = self.GNEWS_TOP
            params["country"] = "jp" if lang == "ja" else "us"

        response = await self.client.get(url, params=params)
        if response.status_code >= 400:
            raise NewsProviderError(f"GNews failed: {response.text or response.reason_phrase}")
        return self._map_articles(response.json(), provider="GNews", limit=limit)

    def _map_articles(self, payload: object, *, provider: str, limit: int) -> list[NewsHeadline]:
        articles = payload.get("articles") if isinstance(payload, dict) else None
        mapped: list[NewsHeadline] = []
        for article in articles or []:
            if not isinstance(article, dict):
                continue
            title = str(article.get("title") or "").strip()
            if not title:
                continue
            source_info = article.get("source") if isinstance(article.get("source"), dict) else {}
            source = str(source_info.get("name") or provider)
            published = parse_timestamp(str(article.get("publishedAt") or "").strip())
            mapped.append(
                NewsHeadline(
                    id=f"{source}-{title}",
                    title=title,
                    summary=str(article.get("description") or "").strip(),
                    link=str(article.get("url") or "").strip(),
                    source=source,
                    published_at=format_timestamp(published) if published else None,
                )
            )

        if not mapped:
            raise NewsProviderError(f"{provider} returned no results, try a different keyword")
        return deduplicate_headlines(mapped)[:limit]

    async def close(self) -> None:
        await self.client.aclose()
