"""Collaborator interfaces consumed by the recommendation engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from .recommendations.models import Book


class CatalogLookup(ABC):
    """External book catalog. Best-effort: failures yield empty lists, never exceptions."""

    @abstractmethod
    async def search(self, query: str, limit: int = 3) -> list[Book]:
        ...

    @abstractmethod
    async def find_similar(
        self,
        seed: Book,
        limit: int = 4,
        seen_titles: Iterable[str] = (),
    ) -> list[Book]:
        ...


class Embedder(ABC):
    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        ...


class ChatModel(ABC):
    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's raw text. Raises ``LLMError`` when the call fails."""
        ...


class BookRepository(ABC):
    """Persistent book records. Raises ``StoreError`` when unavailable."""

    @abstractmethod
    async def upsert_by_identity(self, meta: Book, force_reembed: bool = False) -> Book:
        ...

    @abstractmethod
    async def find_all(self, exclude_ids: Iterable[str] = ()) -> list[Book]:
        ...

    @abstractmethod
    async def find_by_title(self, title: str) -> Book | None:
        ...

    @abstractmethod
    async def get_many(self, ids: Iterable[str]) -> list[Book]:
        ...

    @abstractmethod
    async def delete_all(self) -> list[str]:
        """Remove every record and return the removed ids."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...
