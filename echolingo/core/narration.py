"""Turning a study item into an ordered list of spoken segments."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from echolingo.core.content import spell_letters
from echolingo.schemas.records import SentenceItem, SpeechProfile, VocabularyItem

# Pause after every segment, for comprehension pacing.
INTER_SEGMENT_PAUSE_SECONDS = 0.14

LANG_ENGLISH = "en-US"
LANG_MANDARIN = "zh-TW"
LANG_JAPANESE = "ja-JP"

_LANG_BUCKETS = {LANG_ENGLISH: "en", LANG_MANDARIN: "zh", LANG_JAPANESE: "ja"}


@dataclass(frozen=True)
class Segment:
    """One span of text spoken in a single language and voice."""

    text: str
    lang: str
    bucket: str
    rate: float
    pitch: float
    local_voice: str
    local_volume: float
    hosted_volume: float
    hosted_voice: str = "alloy"


def bucket_for(lang: str) -> str:
    """Map a language tag (``ja-JP``, ``zh``, ...) to its settings bucket."""
    if lang in _LANG_BUCKETS:
        return _LANG_BUCKETS[lang]
    prefix = lang.lower()[:2]
    return prefix if prefix in ("zh", "ja") else "en"


def make_segment(text: str, lang: str, profile: SpeechProfile) -> Segment:
    bucket = bucket_for(lang)
    return Segment(
        text=text,
        lang=lang,
        bucket=bucket,
        rate=profile.rates.get(bucket),
        pitch=profile.pitches.get(bucket),
        local_voice=profile.local_voices.get(bucket),
        local_volume=profile.local_volumes.get(bucket),
        hosted_volume=profile.hosted_volumes.get(bucket),
        hosted_voice=profile.hosted_voice,
    )


def compose_vocabulary(item: VocabularyItem, profile: SpeechProfile) -> list[Segment]:
    """Word, the word spelled out, then its gloss."""
    return [
        make_segment(item.word, LANG_ENGLISH, profile),
        make_segment(" ".join(spell_letters(item.word)), LANG_ENGLISH, profile),
        make_segment(item.meaning, LANG_MANDARIN, profile),
    ]


def compose_sentence(item: SentenceItem, profile: SpeechProfile) -> list[Segment]:
    """Sentence, then its gloss."""
    return [
        make_segment(item.sentence, LANG_JAPANESE, profile),
        make_segment(item.meaning, LANG_MANDARIN, profile),
    ]


def compose(item: Union[VocabularyItem, SentenceItem], profile: SpeechProfile) -> list[Segment]:
    if isinstance(item, VocabularyItem):
        return compose_vocabulary(item, profile)
    return compose_sentence(item, profile)


def compose_voice_check(profile: SpeechProfile) -> list[Segment]:
    """One short line per bucket, to audition the configured voices."""
    return [
        make_segment(f"This is an English voice test using the {profile.engine} engine.", LANG_ENGLISH, profile),
        make_segment("這是中文語音測試。", LANG_MANDARIN, profile),
        make_segment("これは日本語の音声テストです。", LANG_JAPANESE, profile),
    ]


__all__ = [
    "INTER_SEGMENT_PAUSE_SECONDS",
    "LANG_ENGLISH",
    "LANG_MANDARIN",
    "LANG_JAPANESE",
    "Segment",
    "bucket_for",
    "make_segment",
    "compose_vocabulary",
    "compose_sentence",
    "compose",
    "compose_voice_check",
]
