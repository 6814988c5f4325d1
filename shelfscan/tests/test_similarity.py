import pytest

from shelfscan.recommendations.models import Book
from shelfscan.recommendations.similarity import cosine, cosine_many, mean_embedding


def test_cosine_is_symmetric():
    a, b = [0.2, 0.5, 0.1], [0.9, 0.1, 0.4]
    assert cosine(a, b) == pytest.approx(cosine(b, a))


def test_cosine_of_vector_with_itself_is_one():
    assert cosine([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)


def test_cosine_empty_and_zero_vectors():
    assert cosine([], [1.0, 2.0]) == 0.0
    assert cosine([1.0, 2.0], []) == 0.0
    assert cosine([0.0, 0.0], [1.0, 2.0]) == 0.0


def test_cosine_uses_shorter_length():
    # Trailing components of the longer vector are ignored.
    assert cosine([1.0, 0.0], [1.0, 0.0, 5.0]) == pytest.approx(1.0)


def test_cosine_opposite_vectors():
    assert cosine([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_cosine_many_matches_pairwise():
    query = [1.0, 1.0, 0.0]
    vectors = [[1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [2.0, 2.0, 0.0]]
    scores = cosine_many(query, vectors)
    assert scores == pytest.approx([cosine(query, v) for v in vectors])


def test_cosine_many_mixed_dimensions():
    scores = cosine_many([1.0, 0.0], [[1.0, 0.0, 3.0], [0.0, 1.0]])
    assert scores == pytest.approx([1.0, 0.0])


def test_cosine_many_empty_inputs():
    assert cosine_many([1.0], []) == []
    assert cosine_many([], [[1.0], [2.0]]) == [0.0, 0.0]


def test_mean_embedding_skips_unembedded_books():
    books = [
        Book(title="A", embedding=[1.0, 0.0]),
        Book(title="B"),
        Book(title="C", embedding=[0.0, 1.0]),
    ]
    assert mean_embedding(books) == pytest.approx([0.5, 0.5])


def test_mean_embedding_empty():
    assert mean_embedding([]) == []
    assert mean_embedding([Book(title="A")]) == []
