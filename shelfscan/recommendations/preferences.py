from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .models import Book


@dataclass
class PreferenceProfile:
    total_books: int = 0
    language_distribution: dict[str, float] = field(default_factory=dict)
    dominant_language: str | None = None
    language_confidence: float = 0.0
    genre_distribution: dict[str, float] = field(default_factory=dict)
    genre_weights: dict[str, float] = field(default_factory=dict)
    author_diversity: float = 0.0
    publisher_distribution: dict[str, float] = field(default_factory=dict)
    avg_year: float | None = None


def _shares(counter: Counter[str], total: int) -> dict[str, float]:
    if not total:
        return {}
    return {key: count / total for key, count in counter.most_common()}


def analyze_preferences(books: list[Book]) -> PreferenceProfile:
    """Summarise language, genre, author and year tendencies of a seed set."""
    total = len(books)
    if not total:
        return PreferenceProfile()

    languages: Counter[str] = Counter(
        b.language.strip().lower() for b in books if b.language and b.language.strip()
    )
    language_distribution = _shares(languages, sum(languages.values()))
    dominant_language, language_confidence = None, 0.0
    if languages:
        dominant_language = languages.most_common(1)[0][0]
        language_confidence = language_distribution[dominant_language]

    # Each seed counts once per genre even if tagged twice.
    genres: Counter[str] = Counter()
    for book in books:
        genres.update({g.strip().lower() for g in book.subjects if g.strip()})
    genre_distribution = _shares(genres, total)
    genre_weights = {g: min(share * 2, 1.0) for g, share in genre_distribution.items()}

    unique_authors = {a for b in books for a in b.normalized_authors}

    publishers: Counter[str] = Counter(
        b.publisher.strip().lower() for b in books if b.publisher and b.publisher.strip()
    )

    years = [b.publication_year for b in books if b.publication_year]

    return PreferenceProfile(
        total_books=total,
        language_distribution=language_distribution,
        dominant_language=dominant_language,
        language_confidence=language_confidence,
        genre_distribution=genre_distribution,
        genre_weights=genre_weights,
        author_diversity=len(unique_authors) / total,
        publisher_distribution=_shares(publishers, total),
        avg_year=sum(years) / len(years) if years else None,
    )
