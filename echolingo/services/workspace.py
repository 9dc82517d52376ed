"""Learner workspace: the in-memory record of one signed-in learner.

The workspace owns the sanitized record, the learner's :class:`ReviewSession`
and a :class:`DebouncedPersister` that writes the record back through
:class:`UserService` shortly after every change.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from loguru import logger

from echolingo.core.cancellation import CancellationToken
from echolingo.core.content import (
    extract_english_keywords,
    extract_japanese_sentences,
    infer_japanese_tags,
    parse_tags,
    parse_vocab_pairs,
    romanize,
)
from echolingo.core.narration import compose_voice_check
from echolingo.core.sanitizer import (
    MISSING_MEANING,
    sanitize_sentence_item,
    sanitize_speech_profile,
    sanitize_user_data,
    sanitize_vocabulary_item,
)
from echolingo.schemas.records import NewsHeadline, SentenceItem, SpeechProfile, VocabularyItem
from echolingo.services.news_service import NewsService
from echolingo.services.playback import ReviewSession
from echolingo.services.speech import NarrationReport, Narrator
from echolingo.services.translation import TranslationService
from echolingo.services.users import UserService
from echolingo.utils.exceptions import EchoLingoException, InvalidRequestError, ProviderError, TranslationError
from echolingo.utils.timestamps import utc_now

NEWS_TAG = "news"
NEWS_IMPORT_LIMIT = 30


class DebouncedPersister:
    """Coalesce bursts of changes into one save.

    ``schedule()`` restarts a short timer. When it fires while a save is still
    running, one more save is queued to run right after it.
    """

    def __init__(self, save: Callable[[], Awaitable[Any]], *, delay_seconds: float = 0.5) -> None:
        self._save = save
        self.delay_seconds = delay_seconds
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._in_flight = False
        self._pending = False

    @property
    def idle(self) -> bool:
        return self._timer is None and not self._in_flight

    def schedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.delay_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._in_flight:
            self._pending = True
            return
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        self._in_flight = True
        try:
            while True:
                self._pending = False
                await self._save_once()
                if not self._pending:
                    break
        finally:
            self._in_flight = False

    async def _save_once(self) -> None:
        try:
            await self._save()
        except EchoLingoException as exc:
            logger.warning("Saving learner data failed", error=exc.message)

    async def flush(self) -> None:
        """Run any scheduled save now and wait for writes to settle."""
        scheduled = self._timer is not None
        if scheduled:
            self._timer.cancel()
            self._timer = None
        if self._task is not None and not self._task.done():
            await self._task
        if scheduled:
            await self._save_once()


@dataclass
class NewsImport:
    """Headlines fetched for import plus the study candidates found in them."""

    lang: str
    source: str
    headlines: list[NewsHeadline] = field(default_factory=list)
    candidates: list[str] = field(default_factory=list)


def _tag_list(tags: Union[str, Iterable[str], None]) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        return parse_tags(tags)
    return parse_tags(",".join(str(tag) for tag in tags))


class LearnerWorkspace:
    """Everything one learner can change, with persistence wired in."""

    def __init__(
        self,
        account: str,
        users: UserService,
        narrator: Narrator,
        *,
        translator: Optional[TranslationService] = None,
        news: Optional[NewsService] = None,
        clock: Callable[[], dt.datetime] = utc_now,
        persist_delay_seconds: float = 0.5,
        on_notice: Optional[Callable[[str], None]] = None,
    ) -> None:
        user = users.get(account)
        self.account = user.account
        self.users = users
        self.narrator = narrator
        self.translator = translator
        self.news = news
        self.on_notice = on_notice
        self.record = sanitize_user_data(user.data)
        self.persister = DebouncedPersister(self._save, delay_seconds=persist_delay_seconds)
        self.session = ReviewSession(
            lambda: self.record,
            narrator,
            clock=clock,
            on_mutate=lambda _record: self.persister.schedule(),
            on_notice=self._notice,
        )

    # ------------------------------------------------------------ persistence

    async def _save(self) -> None:
        user = await self.users.replace_data(self.account, self.record.model_dump(by_alias=True))
        logger.debug("Learner data saved", account=self.account, updated_at=user.data.updated_at)

    def _touch(self) -> None:
        self.persister.schedule()

    def _notice(self, message: str) -> None:
        if self.on_notice:
            self.on_notice(message)

    async def _translate(self, text: str, source: str) -> str:
        if self.translator is None:
            return ""
        try:
            return await self.translator.translate(text, source, "zh-TW")
        except TranslationError as exc:
            logger.warning("Auto translation failed", text=text, error=exc.message)
            return ""

    # ------------------------------------------------------------ vocabulary

    def find_vocabulary(self, item_id: str) -> Optional[VocabularyItem]:
        return next((item for item in self.record.vocabulary if item.id == item_id), None)

    def find_sentence(self, item_id: str) -> Optional[SentenceItem]:
        return next((item for item in self.record.sentences if item.id == item_id), None)

    async def add_vocabulary(
        self,
        word: str,
        meaning: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = (),
    ) -> VocabularyItem:
        word = (word or "").strip()
        if not word:
            raise InvalidRequestError("word is required")

        meaning = (meaning or "").strip() or await self._translate(word, "en")
        item = sanitize_vocabulary_item(
            {
                "id": f"en-{uuid.uuid4().hex[:12]}",
                "word": word,
                "meaningZh": meaning or MISSING_MEANING,
                "tags": _tag_list(tags),
            }
        )
        self.record.vocabulary.insert(0, item)
        self._touch()
        logger.info("Vocabulary added", account=self.account, word=word)
        return item

    async def add_vocabulary_candidate(
        self, candidate: str, tags: Union[str, Iterable[str], None] = (NEWS_TAG,)
    ) -> Optional[VocabularyItem]:
        """Add a word found in the news; ``None`` if it is already present."""
        candidate = (candidate or "").strip()
        lowered = candidate.lower()
        if any(item.word.lower() == lowered for item in self.record.vocabulary):
            self._notice(f"'{candidate}' is already in your vocabulary")
            return None
        return await self.add_vocabulary(candidate, tags=_tag_list(tags) or [NEWS_TAG])

    def toggle_needs_work(self, item_id: str) -> VocabularyItem:
        for index, item in enumerate(self.record.vocabulary):
            if item.id == item_id:
                updated = item.model_copy(update={"needs_work": not item.needs_work})
                self.record.vocabulary[index] = updated
                self._touch()
                return updated
        raise InvalidRequestError(f"unknown vocabulary item: {item_id}")

    def remove_vocabulary(self, item_id: str) -> bool:
        before = len(self.record.vocabulary)
        self.record.vocabulary = [item for item in self.record.vocabulary if item.id != item_id]
        removed = len(self.record.vocabulary) < before
        if removed:
            self._touch()
        return removed

    # ------------------------------------------------------------- sentences

    async def add_sentence(
        self,
        sentence: str,
        romanization: Optional[str] = None,
        meaning: Optional[str] = None,
        glosses: Union[str, list[dict[str, str]], None] = "",
        tags: Union[str, Iterable[str], None] = (),
    ) -> SentenceItem:
        sentence = (sentence or "").strip()
        if not sentence:
            raise InvalidRequestError("sentence is required")

        romanization = (romanization or "").strip() or romanize(sentence)
        meaning = (meaning or "").strip() or await self._translate(sentence, "ja")
        pairs = parse_vocab_pairs(glosses) if isinstance(glosses, str) or glosses is None else glosses
        item = sanitize_sentence_item(
            {
                "id": f"ja-{uuid.uuid4().hex[:12]}",
                "sentence": sentence,
                "romaji": romanization,
                "meaningZh": meaning or MISSING_MEANING,
                "tags": _tag_list(tags) or infer_japanese_tags(sentence),
                "vocabulary": pairs,
            }
        )
        self.record.sentences.insert(0, item)
        self._touch()
        logger.info("Sentence added", account=self.account, length=len(sentence))
        return item

    async def add_sentence_candidate(
        self, candidate: str, tags: Union[str, Iterable[str], None] = (NEWS_TAG,)
    ) -> Optional[SentenceItem]:
        """Add a sentence found in the news; ``None`` if it is already present."""
        candidate = (candidate or "").strip()
        if any(item.sentence == candidate for item in self.record.sentences):
            self._notice("That sentence is already in your list")
            return None
        return await self.add_sentence(candidate, tags=tags)

    def remove_sentence(self, item_id: str) -> bool:
        before = len(self.record.sentences)
        self.record.sentences = [item for item in self.record.sentences if item.id != item_id]
        removed = len(self.record.sentences) < before
        if removed:
            self._touch()
        return removed

    # -------------------------------------------------------------- settings

    def set_theme(self, theme: str) -> str:
        self.record.theme = "dark" if theme == "dark" else "light"
        self._touch()
        return self.record.theme

    def update_speech(self, changes: Any) -> SpeechProfile:
        """Merge ``changes`` (wire or attribute keys) over the current profile."""
        merged = self.record.speech.model_dump(by_alias=True)
        if isinstance(changes, dict):
            merged.update(changes)
        self.record.speech = sanitize_speech_profile(merged)
        self._touch()
        return self.record.speech

    # ------------------------------------------------------------------ news

    async def import_news(self, lang: str = "en", source: str = "rss", query: str = "") -> NewsImport:
        """Fetch headlines and extract study candidates from them.

        A failing ``newsapi`` request is retried once against the RSS feeds.
        """
        if self.news is None:
            raise InvalidRequestError("news import is not available")

        lang = "ja" if lang == "ja" else "en"
        try:
            headlines = await self.news.fetch_headlines(lang, source, NEWS_IMPORT_LIMIT, query)
        except ProviderError as exc:
            if source != "newsapi":
                raise
            self._notice(f"News API failed, using RSS instead: {exc.message}")
            source = "rss"
            headlines = await self.news.fetch_headlines(lang, source, NEWS_IMPORT_LIMIT, query)

        if lang == "en":
            candidates = extract_english_keywords(" ".join(f"{item.title} {item.summary}" for item in headlines))
        else:
            candidates = extract_japanese_sentences("。".join(f"{item.title}{item.summary}" for item in headlines))

        if not headlines:
            self._notice(f"No news found for '{query or 'current filters'}', try another keyword or source")
        logger.info("News imported", account=self.account, lang=lang, source=source, candidates=len(candidates))
        return NewsImport(lang=lang, source=source, headlines=headlines, candidates=candidates)

    # -------------------------------------------------------------- speaking

    async def preview(self, item: Union[VocabularyItem, SentenceItem]) -> NarrationReport:
        return await self.session.preview(item)

    async def voice_check(self) -> NarrationReport:
        """Speak one short phrase per language with the current settings."""
        self.session.cancel_preview()
        return await self.narrator.speak(
            compose_voice_check(self.record.speech),
            engine=self.record.speech.engine,
            token=CancellationToken(),
        )

    async def aclose(self) -> None:
        await self.session.aclose()
        await self.persister.flush()


__all__ = ["DebouncedPersister", "NewsImport", "LearnerWorkspace"]
