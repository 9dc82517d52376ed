import pytest

from echolingo.core.narration import (
    LANG_ENGLISH,
    LANG_JAPANESE,
    LANG_MANDARIN,
    bucket_for,
    compose,
    compose_sentence,
    compose_vocabulary,
    compose_voice_check,
)
from echolingo.core.sanitizer import sanitize_speech_profile
from echolingo.schemas.records import SentenceItem, SpeechProfile, VocabularyItem


def test_vocabulary_segments() -> None:
    item = VocabularyItem(id="1", word="e-mail", meaning="電子郵件")
    segments = compose_vocabulary(item, SpeechProfile())

    assert [segment.text for segment in segments] == ["e-mail", "E M A I L", "電子郵件"]
    assert [segment.lang for segment in segments] == [LANG_ENGLISH, LANG_ENGLISH, LANG_MANDARIN]


def test_spelling_falls_back_to_raw_characters() -> None:
    item = VocabularyItem(id="1", word="123", meaning="數字")
    assert compose_vocabulary(item, SpeechProfile())[1].text == "1 2 3"


def test_sentence_segments() -> None:
    item = SentenceItem(id="s", sentence="雨です。", romanization="ame desu", meaning="下雨")
    segments = compose_sentence(item, SpeechProfile())

    assert [(segment.text, segment.lang) for segment in segments] == [
        ("雨です。", LANG_JAPANESE),
        ("下雨", LANG_MANDARIN),
    ]


def test_segments_take_bucket_settings() -> None:
    profile = sanitize_speech_profile(
        {
            "engine": "hosted",
            "hostedVoice": "nova",
            "localVoices": {"zh": "mei-jia"},
            "rates": {"zh": 0.7},
            "pitches": {"zh": 1.2},
            "localVolumes": {"zh": 0.5},
            "hostedVolumes": {"zh": 0.4},
        }
    )
    item = VocabularyItem(id="1", word="cat", meaning="貓")
    gloss = compose(item, profile)[2]

    assert gloss.bucket == "zh"
    assert gloss.rate == pytest.approx(0.7)
    assert gloss.pitch == pytest.approx(1.2)
    assert gloss.local_voice == "mei-jia"
    assert gloss.local_volume == pytest.approx(0.5)
    assert gloss.hosted_volume == pytest.approx(0.4)
    assert gloss.hosted_voice == "nova"


def test_bucket_for() -> None:
    assert bucket_for("ja-JP") == "ja"
    assert bucket_for("zh-CN") == "zh"
    assert bucket_for("fr-FR") == "en"


def test_voice_check_covers_every_bucket() -> None:
    segments = compose_voice_check(SpeechProfile())
    assert [segment.bucket for segment in segments] == ["en", "zh", "ja"]
