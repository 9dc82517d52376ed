from datetime import datetime, timedelta, timezone

from echolingo.core.grouping import group_options, search, select_group
from echolingo.schemas.records import SentenceItem, VocabularyItem
from echolingo.utils.timestamps import format_timestamp

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _words() -> list[VocabularyItem]:
    return [
        VocabularyItem(id="1", word="market", meaning="市場", tags=["news", "economy"]),
        VocabularyItem(id="2", word="apple", meaning="蘋果", tags=["food"], needs_work=True),
        VocabularyItem(id="3", word="storm", meaning="暴風雨", tags=["news"]),
        VocabularyItem(
            id="4",
            word="river",
            meaning="河流",
            level=2,
            last_reviewed_at=format_timestamp(NOW - timedelta(hours=1)),
        ),
        VocabularyItem(id="5", word="window", meaning="窗戶", tags=["home"]),
    ]


def test_tag_group_returns_matching_items_in_order() -> None:
    selected = select_group(_words(), "tag:news")
    assert [item.id for item in selected] == ["1", "3"]


def test_tag_group_is_case_folded() -> None:
    assert [item.id for item in select_group(_words(), "tag:NEWS")] == ["1", "3"]


def test_due_group_uses_scheduler() -> None:
    selected = select_group(_words(), "due", now=NOW)
    assert [item.id for item in selected] == ["1", "2", "3", "5"]


def test_needs_work_group() -> None:
    assert [item.id for item in select_group(_words(), "needs-work")] == ["2"]


def test_unknown_and_all_keys_select_everything() -> None:
    assert len(select_group(_words(), "all")) == 5
    assert len(select_group(_words(), "whatever")) == 5
    assert len(select_group(_words(), None)) == 5


def test_needs_work_on_sentences_selects_all() -> None:
    sentences = [
        SentenceItem(id="s1", sentence="雨です。", romanization="ame desu", meaning="下雨"),
        SentenceItem(id="s2", sentence="晴れです。", romanization="hare desu", meaning="晴天"),
    ]
    assert len(select_group(sentences, "needs-work")) == 2


def test_search_matches_text_gloss_and_tags() -> None:
    words = _words()
    assert [item.id for item in search(words, "APP")] == ["2"]
    assert [item.id for item in search(words, "河")] == ["4"]
    assert [item.id for item in search(words, "econ")] == ["1"]
    assert search(words, "  ") == words


def test_search_sentences_by_romanization() -> None:
    sentences = [SentenceItem(id="s1", sentence="雨です。", romanization="ame desu", meaning="下雨")]
    assert search(sentences, "AME") == sentences


def test_group_options() -> None:
    options = group_options(_words())
    assert options[:3] == ["due", "all", "needs-work"]
    assert options[3:] == ["tag:economy", "tag:food", "tag:home", "tag:news"]


def test_due_group_skips_items_reviewed_far_in_the_future() -> None:
    words = _words() + [
        VocabularyItem(id="6", word="comet", meaning="彗星", level=5, last_reviewed_at="9999-12-31T00:00:00Z"),
    ]

    selected = select_group(words, "due", now=NOW)

    assert "6" not in [item.id for item in selected]
    assert "1" in [item.id for item in selected]
