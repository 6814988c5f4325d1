import pytest

from shelfscan.recommendations.models import Book, SeriesInfo
from shelfscan.recommendations.patterns import extract_patterns
from shelfscan.recommendations.preferences import analyze_preferences


def test_extract_patterns_lowercases_and_collects():
    books = [
        Book(
            title=" Dune ",
            authors=["Frank Herbert"],
            genre=["Science Fiction"],
            categories=["Fiction"],
            series=SeriesInfo(name="Dune Chronicles", number=1),
            publisher="Chilton Books",
            publication_year=1965,
            main_category="Space Opera",
        ),
        Book(title="Foundation", authors=["Isaac Asimov"], genre=["science fiction"], publication_year=1951),
    ]
    profile = extract_patterns(books)
    assert profile.genres == {"science fiction"}
    assert profile.categories == {"fiction", "space opera"}
    assert profile.authors == {"frank herbert", "isaac asimov"}
    assert profile.titles == {"dune", "foundation"}
    assert profile.series == {"dune chronicles"}
    assert profile.publishers == {"chilton books"}
    assert profile.avg_year == 1958


def test_extract_patterns_empty():
    profile = extract_patterns([])
    assert not profile.has_subjects
    assert profile.avg_year is None


def test_profile_excludes_seed_titles_and_authors():
    profile = extract_patterns([Book(title="Dune", authors=["Frank Herbert"])])
    assert profile.excludes(Book(title="dune"))
    assert profile.excludes(Book(title="Children of Dune", authors=["Frank Herbert"]))
    assert not profile.excludes(Book(title="Hyperion", authors=["Dan Simmons"]))


def test_analyze_preferences_language_and_genres():
    books = [
        Book(title="A", language="en", genre=["Fantasy"], authors=["X"], publication_year=2000),
        Book(title="B", language="en", genre=["Fantasy", "Mystery"], authors=["Y"], publication_year=2010),
        Book(title="C", language="fr", categories=["Fantasy"], authors=["X"]),
        Book(title="D", genre=["Horror"]),
    ]
    profile = analyze_preferences(books)

    assert profile.total_books == 4
    assert profile.dominant_language == "en"
    assert profile.language_confidence == pytest.approx(2 / 3)
    assert profile.genre_distribution["fantasy"] == pytest.approx(0.75)
    assert profile.genre_weights["fantasy"] == 1.0
    assert profile.genre_weights["mystery"] == pytest.approx(0.5)
    assert profile.author_diversity == pytest.approx(2 / 4)
    assert profile.avg_year == pytest.approx(2005)


def test_analyze_preferences_empty():
    profile = analyze_preferences([])
    assert profile.total_books == 0
    assert profile.dominant_language is None
    assert profile.genre_weights == {}
