"""Total normalization of untrusted learner data.

Every function here accepts anything (parsed JSON, partial dicts, models) and
returns a well-formed value; malformed fields silently fall back to defaults.
The store runs it on every write and the workspace on every load, so the two
always agree. Running it twice changes nothing.
"""
from __future__ import annotations

import math
import re
import uuid
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from echolingo.core.content import MAX_TAGS, romanize
from echolingo.core.seed import generate_sentence_seed, generate_vocabulary_seed
from echolingo.core.srs.intervals import MAX_LEVEL
from echolingo.schemas.records import (
    BUCKETS,
    BucketLevels,
    BucketVoices,
    SentenceItem,
    SpeechProfile,
    UserDataRecord,
    VocabularyGloss,
    VocabularyItem,
)
from echolingo.utils.timestamps import format_timestamp, parse_timestamp

MISSING_MEANING = "(missing)"

DEFAULT_ENGINE = "local"
ENGINE_ALIASES = {
    "local": "local",
    "browser": "local",
    "hosted": "hosted",
    "openai": "hosted",
}
DEFAULT_HOSTED_VOICE = "alloy"

RATE_RANGE = (0.6, 1.3)
PITCH_RANGE = (0.7, 1.4)
VOLUME_RANGE = (0.0, 1.0)
DEFAULT_RATE = 0.95
DEFAULT_PITCH = 1.0
DEFAULT_LOCAL_VOLUME = 1.0
DEFAULT_HOSTED_VOLUME = 0.9

_HEX_NUMBER = re.compile(r"0[xX][0-9a-fA-F]+")


# ---------------------------------------------------------------------------
# primitives


def _int_to_float(value: int) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.copysign(math.inf, value)


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` the way a JSON client's ``Number(...)`` would.

    Missing (``None``) yields ``default``, booleans map to 0/1, blank strings
    to 0, and anything non-numeric to NaN.
    """
    if value is None:
        return float(default)
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        return _int_to_float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _HEX_NUMBER.fullmatch(text):
            return _int_to_float(int(text, 16))
        if "_" in text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def clamp_number(value: float, minimum: float, maximum: float) -> float:
    """Clamp ``value`` into ``[minimum, maximum]``; NaN becomes ``minimum``."""
    if math.isnan(value):
        return minimum
    return max(minimum, min(maximum, value))


def parse_iso_or(value: Any, fallback: str) -> str:
    """Canonical ISO form of ``value`` if it is a parseable timestamp string."""
    if not isinstance(value, str):
        return fallback
    parsed = parse_timestamp(value)
    if parsed is None:
        return fallback
    return format_timestamp(parsed)


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _truthy(value: Any) -> bool:
    if isinstance(value, (dict, list, tuple, set)):
        return True
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _pick(source: Mapping[str, Any], *keys: str) -> Any:
    """First non-``None`` value among ``keys``."""
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _level(value: Any) -> int:
    return int(clamp_number(to_number(value, 0), 0, MAX_LEVEL))


def _last_reviewed(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def sanitize_tags(raw: Any) -> list[str]:
    """Lowercase, trimmed, deduplicated, order-preserving, at most ten tags."""
    if not isinstance(raw, (list, tuple)):
        return []
    tags = (_text(item).lower() for item in raw)
    return list(dict.fromkeys(tag for tag in tags if tag))[:MAX_TAGS]


# ---------------------------------------------------------------------------
# items


def sanitize_vocabulary_item(raw: Any, index: int = 0) -> Optional[VocabularyItem]:
    """Normalize one vocabulary entry; ``None`` when it has no word."""
    source = _as_mapping(raw)
    if not source:
        return None

    word = _text(source.get("word"))
    if not word:
        return None

    return VocabularyItem(
        id=_text(source.get("id")) or f"en-{index}-{uuid.uuid4()}",
        word=word,
        meaning=_text(_pick(source, "meaningZh", "meaning")) or MISSING_MEANING,
        tags=sanitize_tags(source.get("tags")),
        needs_work=_truthy(_pick(source, "needsWork", "needs_work")),
        level=_level(source.get("level")),
        last_reviewed_at=_last_reviewed(_pick(source, "lastReviewedAt", "last_reviewed_at")),
    )


def _sanitize_glosses(raw: Any) -> list[VocabularyGloss]:
    glosses: list[VocabularyGloss] = []
    for entry in _as_list(raw):
        pair = _as_mapping(entry)
        word = _text(pair.get("word"))
        meaning = _text(_pick(pair, "meaningZh", "meaning"))
        if word and meaning:
            glosses.append(VocabularyGloss(word=word, meaning=meaning))
    return glosses


def sanitize_sentence_item(raw: Any, index: int = 0) -> Optional[SentenceItem]:
    """Normalize one sentence entry; ``None`` when it has no sentence."""
    source = _as_mapping(raw)
    if not source:
        return None

    sentence = _text(source.get("sentence"))
    if not sentence:
        return None

    romanization = _text(_pick(source, "romaji", "romanization")) or romanize(sentence) or sentence

    return SentenceItem(
        id=_text(source.get("id")) or f"ja-{index}-{uuid.uuid4()}",
        sentence=sentence,
        romanization=romanization,
        meaning=_text(_pick(source, "meaningZh", "meaning")) or MISSING_MEANING,
        tags=sanitize_tags(source.get("tags")),
        glosses=_sanitize_glosses(_pick(source, "vocabulary", "glosses")),
        level=_level(source.get("level")),
        last_reviewed_at=_last_reviewed(_pick(source, "lastReviewedAt", "last_reviewed_at")),
    )


# ---------------------------------------------------------------------------
# speech profile


def _bucket_source(source: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    for key in keys:
        value = source.get(key)
        if isinstance(value, Mapping):
            return value
    return {}


def _levels(
    primary: Mapping[str, Any],
    default: float,
    bounds: tuple[float, float],
    *,
    legacy: Optional[Mapping[str, Any]] = None,
) -> BucketLevels:
    legacy = legacy or {}
    values = {}
    for bucket in BUCKETS:
        raw = primary.get(bucket)
        if raw is None:
            raw = legacy.get(bucket)
        values[bucket] = clamp_number(to_number(raw, default), *bounds)
    return BucketLevels(**values)


def sanitize_speech_profile(raw: Any) -> SpeechProfile:
    """Normalize narration settings, migrating legacy key names."""
    source = _as_mapping(raw)

    engine = ENGINE_ALIASES.get(_text(source.get("engine")).lower(), DEFAULT_ENGINE)

    voice = _pick(source, "hostedVoice", "openAiVoice", "hosted_voice")
    hosted_voice = voice.strip() if isinstance(voice, str) and voice.strip() else DEFAULT_HOSTED_VOICE

    voices_source = _bucket_source(source, "localVoices", "browserVoices", "local_voices")
    local_voices = BucketVoices(
        **{
            bucket: voices_source[bucket] if isinstance(voices_source.get(bucket), str) else ""
            for bucket in BUCKETS
        }
    )

    legacy_volumes = _bucket_source(source, "volumes")

    return SpeechProfile(
        engine=engine,
        hosted_voice=hosted_voice,
        local_voices=local_voices,
        rates=_levels(_bucket_source(source, "rates"), DEFAULT_RATE, RATE_RANGE),
        pitches=_levels(_bucket_source(source, "pitches"), DEFAULT_PITCH, PITCH_RANGE),
        local_volumes=_levels(
            _bucket_source(source, "localVolumes", "browserVolumes", "local_volumes"),
            DEFAULT_LOCAL_VOLUME,
            VOLUME_RANGE,
            legacy=legacy_volumes,
        ),
        hosted_volumes=_levels(
            _bucket_source(source, "hostedVolumes", "openAiVolumes", "hosted_volumes"),
            DEFAULT_HOSTED_VOLUME,
            VOLUME_RANGE,
            legacy=legacy_volumes,
        ),
    )


# ---------------------------------------------------------------------------
# record


def _collect(raw: Any, sanitize_one) -> list:
    items = (sanitize_one(entry, index) for index, entry in enumerate(_as_list(raw)))
    return [item for item in items if item is not None]


def sanitize_user_data(raw: Any, *, now: Optional[str] = None) -> UserDataRecord:
    """Normalize a whole learner record.

    Lists that end up empty are replaced with the starter deck so there is
    always something to study.
    """
    source = _as_mapping(raw)
    timestamp = now or format_timestamp()

    vocabulary = _collect(_pick(source, "englishWords", "vocabulary"), sanitize_vocabulary_item)
    sentences = _collect(_pick(source, "japaneseSentences", "sentences"), sanitize_sentence_item)

    return UserDataRecord(
        vocabulary=vocabulary or generate_vocabulary_seed(),
        sentences=sentences or generate_sentence_seed(),
        speech=sanitize_speech_profile(_pick(source, "speechSettings", "speech")),
        theme="dark" if source.get("theme") == "dark" else "light",
        updated_at=parse_iso_or(_pick(source, "updatedAt", "updated_at"), timestamp),
    )


__all__ = [
    "MISSING_MEANING",
    "to_number",
    "clamp_number",
    "parse_iso_or",
    "sanitize_tags",
    "sanitize_vocabulary_item",
    "sanitize_sentence_item",
    "sanitize_speech_profile",
    "sanitize_user_data",
]
