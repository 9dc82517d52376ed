"""In-process TTL cache for outbound provider responses (headlines, translations).

Values are stored as JSON text so callers always get a fresh copy back and
never share mutable state across requests.
"""

from __future__ import annotations

import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

DEFAULT_MAX_ENTRIES = 512


def build_cache_key(**components: Any) -> str:
    """Join keyword components into a stable ``name=value`` key."""

    return "&".join(f"{name}={json.dumps(components[name], ensure_ascii=False)}" for name in sorted(components))


@dataclass
class _Entry:
    expires_at: Optional[float]
    payload: str


class ProviderCache:
    """Namespaced, size-bounded cache; the least recently used entry goes first."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, namespace: str, key: str) -> Any | None:
        slot = f"{namespace}|{key}"
        with self._lock:
            entry = self._entries.get(slot)
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= self._clock():
                del self._entries[slot]
                return None
            self._entries.move_to_end(slot)
            return json.loads(entry.payload)

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value``; a ``ttl_seconds`` of zero keeps it until evicted."""

        slot = f"{namespace}|{key}"
        entry = _Entry(
            expires_at=self._clock() + ttl_seconds if ttl_seconds else None,
            payload=json.dumps(value, ensure_ascii=False),
        )
        with self._lock:
            self._entries[slot] = entry
            self._entries.move_to_end(slot)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


cache_backend = ProviderCache()


__all__ = ["ProviderCache", "cache_backend", "build_cache_key"]
