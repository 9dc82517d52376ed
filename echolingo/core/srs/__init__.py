"""Spaced repetition scheduling."""

from echolingo.core.srs.intervals import (
    MAX_LEVEL,
    REVIEW_INTERVAL_DAYS,
    advance,
    is_due,
    next_due_at,
    wait_days,
)

__all__ = ["MAX_LEVEL", "REVIEW_INTERVAL_DAYS", "advance", "is_due", "next_due_at", "wait_days"]
