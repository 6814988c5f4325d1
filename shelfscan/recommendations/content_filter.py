from __future__ import annotations

import os
from dataclasses import dataclass

from ..config import env_flag
from .models import Book

RESTRICTED_CATEGORIES = (
    "erotica",
    "adult",
    "explicit",
    "mature content",
    "adult fiction",
    "adult content",
)

RESTRICTED_KEYWORDS = (
    "explicit",
    "erotic",
    "adult only",
    "mature audiences",
)


@dataclass(frozen=True)
class ContentFilterSettings:
    # Google Books rates volumes "NOT_MATURE" or "MATURE".
    max_rating: str = os.getenv("MAX_CONTENT_RATING", "NOT_MATURE")
    filter_restricted_categories: bool = env_flag("FILTER_RESTRICTED_CATEGORIES", True)
    filter_restricted_keywords: bool = env_flag("FILTER_RESTRICTED_KEYWORDS", True)
    enabled: bool = env_flag("ENABLE_CONTENT_FILTER", True)


DEFAULT_CONTENT_FILTER_SETTINGS = ContentFilterSettings()


def should_exclude(book: Book, settings: ContentFilterSettings = DEFAULT_CONTENT_FILTER_SETTINGS) -> bool:
    """Return True when *book* must not be shown under *settings*."""
    if not settings.enabled:
        return False

    if settings.max_rating == "NOT_MATURE" and book.maturity_rating == "MATURE":
        return True

    if settings.filter_restricted_categories:
        labels = [c.lower() for c in book.categories + book.genre + [book.main_category or ""] if c]
        if any(r in label for label in labels for r in RESTRICTED_CATEGORIES):
            return True

    if settings.filter_restricted_keywords:
        text = " ".join([book.title, book.description, book.subtitle or ""]).lower()
        if any(k in text for k in RESTRICTED_KEYWORDS):
            return True

    return False
