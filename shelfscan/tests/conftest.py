from __future__ import annotations

from collections.abc import Iterable

import pytest

from shelfscan.analytics.store import EventLog
from shelfscan.errors import CatalogError, LLMError
from shelfscan.ports import CatalogLookup, ChatModel, Embedder
from shelfscan.recommendations.cache import RecommendationCache
from shelfscan.recommendations.config import RecommendationConfig
from shelfscan.recommendations.content_filter import ContentFilterSettings
from shelfscan.recommendations.context import RecommenderContext
from shelfscan.recommendations.data_store import InMemoryBookStore
from shelfscan.recommendations.engine import RecommendationEngine
from shelfscan.recommendations.models import Book, normalize_title


class FakeEmbedder(Embedder):
    """Returns a fixed vector per exact text, or the default vector."""

    def __init__(self, default: list[float] | None = None) -> None:
        self.default = default or [1.0, 0.0, 0.0]
        self.vectors: dict[str, list[float]] = {}
        self.calls: list[str] = []
        self.fail = False

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("embedding service down")
        return list(self.vectors.get(text, self.default))


class FakeCatalog(CatalogLookup):
    def __init__(self) -> None:
        self.results: dict[str, list[Book]] = {}
        self.similar: list[Book] = []
        self.failing: set[str] = set()
        self.queries: list[str] = []

    async def search(self, query: str, limit: int = 3) -> list[Book]:
        self.queries.append(query)
        if query in self.failing:
            raise CatalogError(f"lookup failed for {query}")
        return [b.model_copy(deep=True) for b in self.results.get(query, [])[:limit]]

    async def find_similar(self, seed: Book, limit: int = 4, seen_titles: Iterable[str] = ()) -> list[Book]:
        seen = {normalize_title(t) for t in seen_titles}
        return [b.model_copy(deep=True) for b in self.similar if b.normalized_title not in seen][:limit]


class FakeChatModel(ChatModel):
    def __init__(self, response: str = "", error: bool = False) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise LLMError("model unavailable")
        return self.response


def _book(title: str, authors=None, **fields) -> Book:
    return Book(title=title, authors=authors or [], **fields)


@pytest.fixture
def make_book():
    return _book


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def chat_model():
    return FakeChatModel()


@pytest.fixture
def store(embedder):
    return InMemoryBookStore(embedder)


@pytest.fixture
def cache():
    return RecommendationCache(ttl_seconds=3600)


@pytest.fixture
def settings():
    return RecommendationConfig(
        cache_ttl_seconds=3600,
        cache_enabled=True,
        max_enrichment_attempts=15,
        use_llm_recommendations=True,
        max_scan_candidates=10,
        force_reembed=False,
    )


@pytest.fixture
def content_filter():
    return ContentFilterSettings(
        max_rating="NOT_MATURE",
        filter_restricted_categories=True,
        filter_restricted_keywords=True,
        enabled=True,
    )


@pytest.fixture
def ctx(store, catalog, chat_model, cache, settings, content_filter):
    return RecommenderContext(
        store=store,
        catalog=catalog,
        llm=chat_model,
        cache=cache,
        config=settings,
        content_filter=content_filter,
    )


@pytest.fixture
def engine(store, catalog, embedder, chat_model, cache, settings, content_filter):
    return RecommendationEngine(
        store=store,
        catalog=catalog,
        embedder=embedder,
        llm_client=chat_model,
        cache=cache,
        settings=settings,
        content_filter=content_filter,
        events=EventLog(),
    )
