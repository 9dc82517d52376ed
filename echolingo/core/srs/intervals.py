"""Fixed-interval spaced repetition scheduler.

Each successful review moves an item one step up the interval table; nothing
ever moves it back down. An item is due once the wait for its level has
elapsed since its last review.
"""
from __future__ import annotations

import datetime as dt
from typing import Optional, TypeVar, Union

from echolingo.schemas.records import SentenceItem, VocabularyItem
from echolingo.utils.timestamps import format_timestamp, parse_timestamp, utc_now

# Days to wait before an item of a given level is due again.
REVIEW_INTERVAL_DAYS: tuple[int, ...] = (0, 1, 3, 7, 14, 30)
MAX_LEVEL = len(REVIEW_INTERVAL_DAYS) - 1

ReviewItem = Union[VocabularyItem, SentenceItem]
ItemT = TypeVar("ItemT", VocabularyItem, SentenceItem)


def wait_days(level: int) -> int:
    """Return the wait for ``level``; the last entry covers anything out of range."""
    if 0 <= level < len(REVIEW_INTERVAL_DAYS):
        return REVIEW_INTERVAL_DAYS[level]
    return REVIEW_INTERVAL_DAYS[-1]


def is_due(level: int, last_reviewed_at: Optional[str], now: Optional[dt.datetime] = None) -> bool:
    """Whether an item with ``level`` last reviewed at ``last_reviewed_at`` is due.

    Items never reviewed, or carrying a timestamp that cannot be parsed, are
    always due.
    """
    reviewed = parse_timestamp(last_reviewed_at) if last_reviewed_at else None
    if reviewed is None:
        return True
    current = now or utc_now()
    if current.tzinfo is None:
        current = current.replace(tzinfo=dt.timezone.utc)
    try:
        return current >= reviewed + dt.timedelta(days=wait_days(level))
    except OverflowError:
        # The wait runs past the last representable date.
        return False


def advance(item: ItemT, now: Optional[dt.datetime] = None) -> ItemT:
    """Return a copy of ``item`` marked reviewed at ``now`` one level higher."""
    next_level = max(item.level, min(item.level + 1, MAX_LEVEL))
    return item.model_copy(
        update={"level": next_level, "last_reviewed_at": format_timestamp(now)}
    )


def next_due_at(item: ReviewItem) -> Optional[dt.datetime]:
    """When ``item`` becomes due, or ``None`` if it is due regardless of time.

    A due date beyond the datetime range is reported as ``datetime.max``.
    """
    reviewed = parse_timestamp(item.last_reviewed_at) if item.last_reviewed_at else None
    if reviewed is None:
        return None
    try:
        return reviewed + dt.timedelta(days=wait_days(item.level))
    except OverflowError:
        return dt.datetime.max.replace(tzinfo=dt.timezone.utc)


__all__ = [
    "REVIEW_INTERVAL_DAYS",
    "MAX_LEVEL",
    "ReviewItem",
    "wait_days",
    "is_due",
    "advance",
    "next_due_at",
]
