from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterable
from typing import Any

from .models import RecommendationFilters

_DEFAULT_TTL = 3600  # 1 hour


def seed_prefix(seed_ids: Iterable[str]) -> str:
    return ",".join(sorted(str(s) for s in seed_ids)) + "|"


def make_key(seed_ids: Iterable[str], filters: RecommendationFilters) -> str:
    return seed_prefix(seed_ids) + json.dumps(filters.canonical(), sort_keys=True)


class RecommendationCache:
    """In-process TTL cache for raw LLM suggestion lists.

    One instance is built at startup and handed to the engine. The event loop is
    single-threaded, so there is no locking; two concurrent misses for the same
    key both call the model and the last ``set`` wins.
    """

    def __init__(
        self,
        ttl_seconds: float = _DEFAULT_TTL,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        entry = self._entries.get(key)
        if entry and self._clock() - entry["timestamp"] < self.ttl_seconds:
            self._hits += 1
            return entry["data"]
        if entry:
            del self._entries[key]
        self._misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        if self.enabled:
            self._entries[key] = {"data": value, "timestamp": self._clock()}

    def invalidate_seeds(self, seed_ids: Iterable[str]) -> int:
        """Drop every entry derived from the given seed-id set; returns how many."""
        prefix = seed_prefix(seed_ids)
        stale = [k for k in self._entries if k.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            "ttl_seconds": self.ttl_seconds,
            "enabled": self.enabled,
        }
