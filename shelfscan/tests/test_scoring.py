import pytest

from shelfscan.recommendations.content_filter import ContentFilterSettings, should_exclude
from shelfscan.recommendations.models import AuthorPreference, Book, RecommendationFilters
from shelfscan.recommendations.preferences import analyze_preferences
from shelfscan.recommendations.scoring import passes_language_filter, score_candidate

SEEDS = [
    Book(title="Dune", authors=["Frank Herbert"], genre=["Science Fiction"], language="en", publication_year=1965),
    Book(title="Foundation", authors=["Isaac Asimov"], genre=["Science Fiction"], language="en", publication_year=1951),
]
PROFILE = analyze_preferences(SEEDS)


def _score(book, **filters):
    return score_candidate(book, PROFILE, SEEDS, RecommendationFilters(**filters))


def test_language_filter_is_a_hard_reject():
    result = _score(Book(title="Solaris", language="pl"), languages=["en"])
    assert result.rejected
    assert result.score == 0.0


def test_unknown_language_fails_a_non_empty_filter():
    assert not passes_language_filter(Book(title="X"), ["en"])
    assert passes_language_filter(Book(title="X"), [])
    assert passes_language_filter(Book(title="X", language="EN"), ["en"])


def test_language_filter_match_boost():
    result = _score(Book(title="Hyperion", language="en"), languages=["en"])
    assert result.breakdown.language == pytest.approx(0.3)


def test_dominant_language_boost_without_filter():
    result = _score(Book(title="Hyperion", language="en"))
    assert result.breakdown.language == pytest.approx(0.3)


def test_genre_filter_boost_is_capped():
    book = Book(title="X", genre=["Science Fiction", "Space Opera", "Adventure"])
    result = _score(book, genres=["science fiction", "space opera", "adventure"])
    assert result.breakdown.genre == pytest.approx(0.4)


def test_genre_filter_miss_penalty():
    result = _score(Book(title="X", genre=["Romance"]), genres=["Horror"])
    assert result.breakdown.genre == pytest.approx(-0.1)


def test_genre_profile_weight_without_filter():
    result = _score(Book(title="X", genre=["Science Fiction"]))
    # weight 1.0 (both seeds) * 0.2
    assert result.breakdown.genre == pytest.approx(0.2)


def test_author_layer_follows_preference():
    book = Book(title="Children of Dune", authors=["Frank Herbert"])
    assert _score(book, author_preference="positive").breakdown.author == pytest.approx(0.2)
    assert _score(book, author_preference="negative").breakdown.author == pytest.approx(-0.3)
    assert _score(book, author_preference="neutral").breakdown.author == 0.0


def test_recency_layer():
    assert _score(Book(title="X", publication_year=1960)).breakdown.other == pytest.approx(0.1)
    assert _score(Book(title="X", publication_year=1950)).breakdown.other == pytest.approx(0.05)
    assert _score(Book(title="X", publication_year=2020)).breakdown.other == 0.0


@pytest.mark.parametrize("book", [
    Book(title="Max", language="en", genre=["Science Fiction"], authors=["Frank Herbert"], publication_year=1958),
    Book(title="Min", genre=["Romance"], authors=["Frank Herbert"]),
    Book(title="Bare"),
])
@pytest.mark.parametrize("preference", list(AuthorPreference))
def test_score_always_within_bounds(book, preference):
    for genres in ([], ["Romance"], ["Science Fiction"]):
        result = _score(book, author_preference=preference, genres=genres)
        assert 0.0 <= result.score <= 1.0


SAFE = ContentFilterSettings(
    max_rating="NOT_MATURE",
    filter_restricted_categories=True,
    filter_restricted_keywords=True,
    enabled=True,
)


def test_content_filter_maturity_rating():
    assert should_exclude(Book(title="X", maturity_rating="MATURE"), SAFE)
    assert not should_exclude(Book(title="X", maturity_rating="NOT_MATURE"), SAFE)


def test_content_filter_categories_and_keywords():
    assert should_exclude(Book(title="X", categories=["Erotica"]), SAFE)
    assert should_exclude(Book(title="X", main_category="Adult Content"), SAFE)
    assert should_exclude(Book(title="X", description="For mature audiences only"), SAFE)
    assert not should_exclude(Book(title="Dune", categories=["Fiction"]), SAFE)


def test_content_filter_can_be_disabled():
    off = ContentFilterSettings(enabled=False)
    assert not should_exclude(Book(title="X", maturity_rating="MATURE", categories=["Erotica"]), off)
    keywords_only = ContentFilterSettings(
        filter_restricted_categories=False, filter_restricted_keywords=True, enabled=True,
    )
    assert not should_exclude(Book(title="X", categories=["Erotica"]), keywords_only)
