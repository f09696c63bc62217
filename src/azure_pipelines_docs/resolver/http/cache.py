"""In-memory TTL cache with lazy eviction.

Expired entries are removed only when they are read.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_TTL_SECONDS = 60 * 60


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Key/value store whose entries expire after a per-entry lifetime."""

    def __init__(
        self,
        *,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl_seconds = default_ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""

        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        # Counts expired entries that have not been read since expiring.
        return len(self._entries)
