from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Skipped:
    """A candidate source that produced nothing, and why."""

    label: str
    reason: str


async def attempt(label: str, pending: Awaitable[T | Skipped]) -> T | Skipped:
    """Await one best-effort step, turning any failure into ``Skipped``."""
    try:
        return await pending
    except Exception as exc:
        logger.warning("Skipping %s: %s", label, exc, exc_info=True)
        return Skipped(label, f"error: {exc}")


def survivors(outcomes: Iterable[T | Skipped]) -> list[T]:
    kept: list[T] = []
    for outcome in outcomes:
        if isinstance(outcome, Skipped):
            logger.debug("Dropped %s (%s)", outcome.label, outcome.reason)
        else:
            kept.append(outcome)
    return kept
