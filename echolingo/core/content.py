"""Text helpers for turning free text and news into study items."""
from __future__ import annotations

import re
from collections import Counter
from functools import lru_cache
from typing import Iterable, List

import pykakasi
from loguru import logger

MAX_TAGS = 10
MAX_CANDIDATES = 200
MIN_SENTENCE_LENGTH = 8

ENGLISH_STOPWORDS = frozenset(
    {
        "the", "a", "an", "to", "of", "is", "are", "was", "were", "be", "been", "am",
        "for", "in", "on", "at", "as", "with", "that", "this", "it", "its", "by", "from",
        "or", "and", "but", "about", "into", "after", "before", "if", "then", "than",
        "we", "you", "they", "he", "she", "i", "our", "their", "his", "her", "your",
        "will", "would", "can", "could", "should", "may", "might", "do", "does", "did",
        "not",
    }
)

_ENGLISH_TOKEN = re.compile(r"[A-Za-z][A-Za-z'-]{2,}")
_SENTENCE_BREAK = re.compile(r"(?<=[。！？])")
_NON_LETTERS = re.compile(r"[^A-Za-z]")

# Topic keywords -> tag, checked in order.
JAPANESE_TOPIC_TAGS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"経済|市場|投資"), "economy"),
    (re.compile(r"天気|気温|台風"), "weather"),
    (re.compile(r"観光|旅行|空港"), "travel"),
    (re.compile(r"学校|授業|勉強"), "study"),
)


def merge_unique(current: Iterable[str], incoming: Iterable[str]) -> List[str]:
    """Order-preserving union of two string sequences."""
    return list(dict.fromkeys([*current, *incoming]))


def parse_tags(raw: str) -> List[str]:
    """Split a comma separated tag string into normalized tags."""
    tags = [tag.strip().lower() for tag in (raw or "").split(",")]
    return merge_unique([], [tag for tag in tags if tag])[:MAX_TAGS]


def parse_vocab_pairs(raw: str) -> List[dict[str, str]]:
    """Parse ``"word=meaning; word2=meaning2"`` into gloss dictionaries.

    Pairs missing either side are dropped.
    """
    if not (raw or "").strip():
        return []

    pairs: List[dict[str, str]] = []
    for part in raw.split(";"):
        part = part.strip()
        if not part:
            continue
        word, _, meaning = part.partition("=")
        word, meaning = word.strip(), meaning.split("=")[0].strip()
        if word and meaning:
            pairs.append({"word": word, "meaningZh": meaning})
    return pairs


def extract_english_keywords(text: str, limit: int = MAX_CANDIDATES) -> List[str]:
    """Rank non-stopword English tokens of ``text`` by frequency."""
    counts: Counter[str] = Counter()
    for token in _ENGLISH_TOKEN.findall(text or ""):
        normalized = token.lower()
        if normalized in ENGLISH_STOPWORDS:
            continue
        counts[normalized] += 1
    # most_common keeps first-seen order among ties
    return [word for word, _ in counts.most_common(limit)]


def extract_japanese_sentences(text: str, limit: int = MAX_CANDIDATES) -> List[str]:
    """Split ``text`` after sentence-final punctuation, keeping long unique sentences."""
    parts = (part.strip() for part in _SENTENCE_BREAK.split(text or ""))
    return merge_unique([], [part for part in parts if len(part) >= MIN_SENTENCE_LENGTH])[:limit]


def infer_japanese_tags(sentence: str) -> List[str]:
    """Tag a news sentence with ``news`` plus any topic it mentions."""
    tags = ["news"]
    for pattern, tag in JAPANESE_TOPIC_TAGS:
        if pattern.search(sentence or ""):
            tags.append(tag)
    return parse_tags(",".join(tags))


def spell_letters(word: str) -> List[str]:
    """Letters of ``word`` for spelling aloud.

    Non-letters are stripped and the rest upper-cased; a word with no Latin
    letters is spelled character by character instead.
    """
    letters = list(_NON_LETTERS.sub("", word or "").upper())
    if letters:
        return letters
    return list(word or "")


@lru_cache(maxsize=1)
def _kakasi() -> pykakasi.kakasi:
    return pykakasi.kakasi()


def romanize(sentence: str) -> str:
    """Hepburn romanization of a Japanese sentence (the sentence itself on failure)."""
    text = (sentence or "").strip()
    if not text:
        return ""
    try:
        result = _kakasi().convert(text)
    except Exception as exc:  # pykakasi raises bare errors on odd input
        logger.debug("Romanization failed", sentence=text, error=str(exc))
        return text
    romaji = " ".join(item["hepburn"] for item in result if item["hepburn"].strip())
    return romaji.strip() or text


__all__ = [
    "ENGLISH_STOPWORDS",
    "MAX_TAGS",
    "merge_unique",
    "parse_tags",
    "parse_vocab_pairs",
    "extract_english_keywords",
    "extract_japanese_sentences",
    "infer_japanese_tags",
    "spell_letters",
    "romanize",
]
