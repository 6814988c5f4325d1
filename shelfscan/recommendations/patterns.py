from __future__ import annotations

from dataclasses import dataclass, field

from .models import Book


def normalize_tag(value: object) -> str:
    return str(value or "").strip().lower()


@dataclass
class TasteProfile:
    """Lowercased metadata signals aggregated across a seed set."""

    genres: set[str] = field(default_factory=set)
    categories: set[str] = field(default_factory=set)
    authors: set[str] = field(default_factory=set)
    titles: set[str] = field(default_factory=set)
    series: set[str] = field(default_factory=set)
    publishers: set[str] = field(default_factory=set)
    avg_year: int | None = None

    @property
    def has_subjects(self) -> bool:
        return bool(self.genres or self.categories)

    def shares_author(self, book: Book) -> bool:
        return any(a in self.authors for a in book.normalized_authors)

    def is_seed_title(self, book: Book) -> bool:
        return book.normalized_title in self.titles

    def excludes(self, book: Book) -> bool:
        """True for a seed title or any book by a seed author."""
        return self.is_seed_title(book) or self.shares_author(book)


def extract_patterns(books: list[Book]) -> TasteProfile:
    profile = TasteProfile()
    years: list[int] = []

    for book in books:
        profile.genres.update(normalize_tag(g) for g in book.genre if normalize_tag(g))
        profile.categories.update(normalize_tag(c) for c in book.categories if normalize_tag(c))
        if book.main_category:
            profile.categories.add(normalize_tag(book.main_category))
        profile.authors.update(normalize_tag(a) for a in book.authors if normalize_tag(a))
        if book.title:
            profile.titles.add(normalize_tag(book.title))
        if book.series and book.series.name:
            profile.series.add(normalize_tag(book.series.name))
        if book.publisher:
            profile.publishers.add(normalize_tag(book.publisher))
        if book.publication_year:
            years.append(book.publication_year)

    if years:
        profile.avg_year = round(sum(years) / len(years))
    return profile
