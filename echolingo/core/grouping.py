"""Selecting review groups and browsing filters over item lists."""
from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence, TypeVar

from echolingo.core.srs.intervals import is_due
from echolingo.schemas.records import SentenceItem, VocabularyItem

ItemT = TypeVar("ItemT", VocabularyItem, SentenceItem)

GROUP_ALL = "all"
GROUP_DUE = "due"
GROUP_NEEDS_WORK = "needs-work"
TAG_PREFIX = "tag:"


def _matches_group(item: VocabularyItem | SentenceItem, key: str, now: Optional[dt.datetime]) -> bool:
    if key == GROUP_DUE:
        return is_due(item.level, item.last_reviewed_at, now)
    if key == GROUP_NEEDS_WORK:
        # Sentences carry no flag, so the key falls through to "all" for them.
        return getattr(item, "needs_work", True)
    if key.startswith(TAG_PREFIX):
        return key[len(TAG_PREFIX):].strip().casefold() in item.tags
    return True


def select_group(
    items: Sequence[ItemT],
    group_key: Optional[str],
    now: Optional[dt.datetime] = None,
) -> list[ItemT]:
    """Items belonging to ``group_key``, in their original order.

    Keys: ``all``, ``due``, ``needs-work``, ``tag:<name>``. Unknown keys select
    everything.
    """
    key = (group_key or GROUP_ALL).strip()
    return [item for item in items if _matches_group(item, key, now)]


def _haystack(item: VocabularyItem | SentenceItem) -> list[str]:
    if isinstance(item, VocabularyItem):
        return [item.word.lower(), item.meaning.lower()]
    return [item.sentence.lower(), item.romanization.lower(), item.meaning.lower()]


def search(items: Sequence[ItemT], query: Optional[str]) -> list[ItemT]:
    """Case-insensitive substring filter over text, gloss and tags."""
    keyword = (query or "").strip().lower()
    if not keyword:
        return list(items)
    return [
        item
        for item in items
        if any(keyword in text for text in _haystack(item))
        or any(keyword in tag for tag in item.tags)
    ]


def group_options(items: Sequence[VocabularyItem | SentenceItem]) -> list[str]:
    """Group keys worth offering for ``items``: the fixed keys then one per tag."""
    options = [GROUP_DUE, GROUP_ALL]
    if any(isinstance(item, VocabularyItem) for item in items):
        options.append(GROUP_NEEDS_WORK)
    tags = sorted({tag for item in items for tag in item.tags})
    options.extend(f"{TAG_PREFIX}{tag}" for tag in tags)
    return options


__all__ = [
    "GROUP_ALL",
    "GROUP_DUE",
    "GROUP_NEEDS_WORK",
    "TAG_PREFIX",
    "select_group",
    "search",
    "group_options",
]
