from __future__ import annotations

import time
from typing import Any

_MAX_EVENTS = 10_000


class EventLog:
    """Append-only, in-process log of recommendation requests."""

    def __init__(self, max_events: int = _MAX_EVENTS) -> None:
        self.max_events = max_events
        self._events: list[dict[str, Any]] = []

    def record(self, event_type: str, data: dict[str, Any]) -> None:
        self._events.append({
            "type": event_type,
            "timestamp": time.time(),
            **data,
        })
        # Oldest events go first once the log is full.
        if len(self._events) > self.max_events:
            del self._events[: len(self._events) - self.max_events]

    def events(self, event_type: str | None = None) -> list[dict[str, Any]]:
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e["type"] == event_type]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
