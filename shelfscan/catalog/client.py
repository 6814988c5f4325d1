from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from ..errors import CatalogError
from ..ports import CatalogLookup
from ..recommendations.models import Book, SeriesInfo, normalize_title
from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig

logger = logging.getLogger(__name__)

_TITLE_SERIES_RE = re.compile(r"(.+?)\s*\((.+?)\s*#(\d+)\)")
_SUBTITLE_SERIES_RE = re.compile(r"(.+?)\s*#(\d+)")


def _parse_year(raw: Any) -> int | None:
    if raw is None:
        return None
    match = re.match(r"\s*(\d{3,4})", str(raw))
    return int(match.group(1)) if match else None


def _series_from_volume(info: dict[str, Any]) -> SeriesInfo | None:
    title = info.get("title") or ""
    subtitle = info.get("subtitle") or ""
    match = _TITLE_SERIES_RE.search(title)
    if match:
        return SeriesInfo(name=match.group(2).strip(), number=int(match.group(3)))
    match = _SUBTITLE_SERIES_RE.search(subtitle)
    if match:
        return SeriesInfo(name=match.group(1).strip(), number=int(match.group(2)))
    for category in info.get("categories") or []:
        if "series" in category.lower():
            return SeriesInfo(name=category)
    return None


def map_google_volume(item: dict[str, Any]) -> Book | None:
    info = item.get("volumeInfo") or {}
    if not info.get("title"):
        return None
    identifiers = {
        i.get("type"): i.get("identifier") for i in info.get("industryIdentifiers") or []
    }
    images = info.get("imageLinks") or {}
    categories = info.get("categories") or []
    return Book(
        title=info["title"],
        authors=info.get("authors") or [],
        categories=categories,
        genre=categories,
        description=info.get("description") or "",
        subtitle=info.get("subtitle"),
        series=_series_from_volume(info),
        publication_year=_parse_year(info.get("publishedDate")),
        page_count=info.get("pageCount"),
        publisher=info.get("publisher"),
        language=info.get("language"),
        isbn10=identifiers.get("ISBN_10"),
        isbn13=identifiers.get("ISBN_13"),
        thumbnail=images.get("thumbnail") or images.get("smallThumbnail"),
        maturity_rating=info.get("maturityRating"),
        main_category=info.get("mainCategory"),
        source="googlebooks",
    )


def map_open_library_doc(doc: dict[str, Any], covers_url: str) -> Book | None:
    if not doc.get("title"):
        return None
    subjects = (doc.get("subject") or [])[:5]
    isbns = [str(x) for x in doc.get("isbn") or []]
    year = doc.get("first_publish_year")
    if year is None and doc.get("publish_date"):
        year = _parse_year(doc["publish_date"][0])
    return Book(
        title=doc["title"],
        authors=doc.get("author_name") or [],
        categories=subjects,
        genre=subjects,
        publication_year=year,
        page_count=doc.get("number_of_pages_median"),
        publisher=(doc.get("publisher") or [None])[0],
        isbn10=next((x for x in isbns if len(x) == 10), None),
        isbn13=next((x for x in isbns if len(x) == 13), None),
        language=(doc.get("language") or [None])[0],
        thumbnail=f"{covers_url}/{doc['cover_i']}-M.jpg" if doc.get("cover_i") else None,
        source="openlibrary",
    )


def _map_records(records: Any, mapper: Callable[[Any], Book | None]) -> list[Book]:
    if not records:
        return []
    try:
        books = [mapper(record) for record in records]
    except (ValidationError, AttributeError, TypeError) as exc:
        raise CatalogError(f"Unexpected catalog record: {exc}") from exc
    return [b for b in books if b is not None]


class BookCatalogClient(CatalogLookup):
    """Google Books lookup with an Open Library fallback."""

    def __init__(
        self,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout, follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._get_client().get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogError(f"{url} lookup failed: {exc}") from exc
        if not isinstance(data, dict):
            raise CatalogError(f"{url} returned {type(data).__name__}, expected an object")
        return data

    async def search_google_books(self, query: str, limit: int = 3) -> list[Book]:
        params: dict[str, Any] = {"q": query, "maxResults": limit}
        if self._config.google_books_api_key:
            params["key"] = self._config.google_books_api_key
        data = await self._get_json(self._config.google_books_url, params)
        return _map_records(data.get("items"), map_google_volume)

    async def search_open_library(self, query: str, limit: int = 3) -> list[Book]:
        data = await self._get_json(self._config.open_library_url, {"q": query, "limit": limit})
        covers_url = self._config.open_library_covers_url
        return _map_records(data.get("docs"), lambda doc: map_open_library_doc(doc, covers_url))

    async def search(self, query: str, limit: int = 3) -> list[Book]:
        try:
            results = await self.search_google_books(query, limit)
        except CatalogError:
            logger.warning("Google Books search failed for %r", query, exc_info=True)
            results = []
        if results or not self._config.use_open_library_fallback:
            return results

        try:
            return await self.search_open_library(query, limit)
        except CatalogError:
            logger.warning("Open Library search failed for %r", query, exc_info=True)
            return []

    async def find_similar(
        self,
        seed: Book,
        limit: int = 4,
        seen_titles: Iterable[str] = (),
    ) -> list[Book]:
        seen = {normalize_title(t) for t in seen_titles}
        seen.add(seed.normalized_title)

        hints: list[str] = []
        if seed.authors:
            hints.append(seed.authors[0])
        if seed.genre:
            hints.append(seed.genre[0])
        if seed.categories:
            hints.append(seed.categories[0])
        hints.append(seed.title)

        similar: list[Book] = []
        for hint in hints:
            for meta in await self.search(hint, limit=max(limit * 2, 3)):
                key = meta.normalized_title
                if not key or key in seen:
                    continue
                seen.add(key)
                similar.append(meta)
                if len(similar) >= limit:
                    return similar
        return similar
