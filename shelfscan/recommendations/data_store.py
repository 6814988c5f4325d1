from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable

from ..errors import StoreError
from ..ports import BookRepository, Embedder
from .models import Book, normalize_title

logger = logging.getLogger(__name__)

_MERGE_EXCLUDE = {"id", "embedding"}


class InMemoryBookStore(BookRepository):
    """Process-local book store keyed by a generated id, in insertion order."""

    def __init__(self, embedder: Embedder, force_reembed: bool = False) -> None:
        self._embedder = embedder
        self._force_reembed = force_reembed
        self._books: dict[str, Book] = {}

    def _find_existing(self, meta: Book) -> Book | None:
        if meta.isbn13:
            for book in self._books.values():
                if book.isbn13 == meta.isbn13:
                    return book
        if meta.isbn10:
            for book in self._books.values():
                if book.isbn10 == meta.isbn10:
                    return book
        authors = set(meta.authors)
        if authors:
            for book in self._books.values():
                if book.title == meta.title and authors & set(book.authors):
                    return book
        return None

    async def _embed(self, book: Book) -> list[float]:
        try:
            return await self._embedder.embed(book.embedding_text())
        except Exception as exc:
            raise StoreError(f"could not embed {book.title!r}: {exc}") from exc

    async def upsert_by_identity(self, meta: Book, force_reembed: bool = False) -> Book:
        """Insert or merge *meta*; an existing embedding is kept unless re-embedding is forced."""
        existing = self._find_existing(meta)
        force = force_reembed or self._force_reembed

        if existing is not None:
            updates = {
                k: v
                for k, v in meta.model_dump(exclude=_MERGE_EXCLUDE).items()
                if v not in (None, "", [])
            }
            merged = Book.model_validate({**existing.model_dump(), **updates})
            if force or not existing.embedding:
                merged.embedding = await self._embed(merged)
            self._books[existing.id] = merged
            return merged.model_copy(deep=True)

        book = meta.model_copy(deep=True)
        book.id = uuid.uuid4().hex
        if force or not book.embedding:
            book.embedding = await self._embed(book)
        self._books[book.id] = book
        logger.debug("Stored %r as %s", book.title, book.id)
        return book.model_copy(deep=True)

    async def find_all(self, exclude_ids: Iterable[str] = ()) -> list[Book]:
        excluded = set(exclude_ids)
        return [b.model_copy(deep=True) for i, b in self._books.items() if i not in excluded]

    async def find_by_title(self, title: str) -> Book | None:
        wanted = normalize_title(title)
        if not wanted:
            return None
        pattern = re.compile(rf"\b{re.escape(wanted)}\b")
        fuzzy = None
        for book in self._books.values():
            stored = book.normalized_title
            if stored == wanted:
                return book.model_copy(deep=True)
            if fuzzy is None and pattern.search(stored):
                fuzzy = book
        return fuzzy.model_copy(deep=True) if fuzzy else None

    async def get_many(self, ids: Iterable[str]) -> list[Book]:
        return [self._books[i].model_copy(deep=True) for i in ids if i in self._books]

    async def delete_all(self) -> list[str]:
        removed = list(self._books)
        self._books.clear()
        return removed

    async def count(self) -> int:
        return len(self._books)
