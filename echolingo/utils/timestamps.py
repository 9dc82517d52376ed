"""Timestamp parsing/formatting shared by the scheduler, sanitizer and store."""
from __future__ import annotations

import datetime as dt
from email.utils import parsedate_to_datetime
from typing import Any, Optional

TZ = dt.timezone.utc


def utc_now() -> dt.datetime:
    return dt.datetime.now(TZ)


def parse_timestamp(value: Any) -> Optional[dt.datetime]:
    """Parse an ISO-8601 (or RFC 2822) string into an aware UTC datetime.

    Returns ``None`` for anything that is not a parseable string. Naive values
    are interpreted as UTC.
    """

    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = parsedate_to_datetime(value.strip())
            except (TypeError, ValueError, IndexError):
                return None
            if parsed is None:
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=TZ)
    try:
        return parsed.astimezone(TZ)
    except OverflowError:
        # Offset pushes the instant outside the datetime range.
        return None


def format_timestamp(moment: Optional[dt.datetime] = None) -> str:
    """Render ``moment`` (default: now) as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    moment = moment or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=TZ)
    moment = moment.astimezone(TZ)
    return moment.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


__all__ = ["TZ", "utc_now", "parse_timestamp", "format_timestamp"]
