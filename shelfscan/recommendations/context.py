from __future__ import annotations

from dataclasses import dataclass, field

from ..ports import BookRepository, CatalogLookup, ChatModel
from .cache import RecommendationCache
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .content_filter import DEFAULT_CONTENT_FILTER_SETTINGS, ContentFilterSettings, should_exclude
from .models import Book


@dataclass
class RecommenderContext:
    """Collaborators shared by every recommendation strategy for one engine."""

    store: BookRepository
    catalog: CatalogLookup
    llm: ChatModel
    cache: RecommendationCache
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG
    content_filter: ContentFilterSettings = field(default=DEFAULT_CONTENT_FILTER_SETTINGS)

    def is_restricted(self, book: Book) -> bool:
        return should_exclude(book, self.content_filter)
