import pytest

from shelfscan.errors import StoreError
from shelfscan.recommendations.data_store import InMemoryBookStore


async def test_upsert_assigns_id_and_embeds(store, embedder, make_book):
    book = await store.upsert_by_identity(make_book("Dune", ["Frank Herbert"], isbn13="9780441013593"))
    assert book.id
    assert book.embedding == [1.0, 0.0, 0.0]
    assert len(embedder.calls) == 1
    assert await store.count() == 1


async def test_upsert_merges_by_isbn_without_reembedding(store, embedder, make_book):
    first = await store.upsert_by_identity(make_book("Dune", ["Frank Herbert"], isbn13="9780441013593"))
    embedder.default = [0.0, 1.0, 0.0]
    second = await store.upsert_by_identity(
        make_book("Dune", ["Frank Herbert"], isbn13="9780441013593", publisher="Ace", description="")
    )

    assert second.id == first.id
    assert second.publisher == "Ace"
    assert second.embedding == [1.0, 0.0, 0.0]
    assert len(embedder.calls) == 1
    assert await store.count() == 1


async def test_upsert_force_reembed(store, embedder, make_book):
    await store.upsert_by_identity(make_book("Dune", ["Frank Herbert"], isbn10="0441013597"))
    embedder.default = [0.0, 1.0, 0.0]
    again = await store.upsert_by_identity(make_book("Dune", ["Frank Herbert"], isbn10="0441013597"), force_reembed=True)
    assert again.embedding == [0.0, 1.0, 0.0]
    assert len(embedder.calls) == 2


async def test_store_level_force_flag(embedder, make_book):
    store = InMemoryBookStore(embedder, force_reembed=True)
    await store.upsert_by_identity(make_book("Dune", ["Frank Herbert"]))
    await store.upsert_by_identity(make_book("Dune", ["Frank Herbert"]))
    assert len(embedder.calls) == 2
    assert await store.count() == 1


async def test_title_match_requires_shared_author(store, make_book):
    await store.upsert_by_identity(make_book("Emma", ["Jane Austen"]))
    await store.upsert_by_identity(make_book("Emma", ["Someone Else"]))
    assert await store.count() == 2


async def test_provided_embedding_is_kept(store, embedder, make_book):
    book = await store.upsert_by_identity(make_book("Dune", embedding=[0.5, 0.5]))
    assert book.embedding == [0.5, 0.5]
    assert embedder.calls == []


async def test_embed_failure_raises_store_error(store, embedder, make_book):
    embedder.fail = True
    with pytest.raises(StoreError):
        await store.upsert_by_identity(make_book("Dune"))


async def test_find_by_title_exact_then_word_match(store, make_book):
    await store.upsert_by_identity(make_book("Little Women", ["Louisa May Alcott"]))
    await store.upsert_by_identity(make_book("The Hobbit", ["J.R.R. Tolkien"]))

    assert (await store.find_by_title("the hobbit")).title == "The Hobbit"
    assert (await store.find_by_title("Hobbit")).title == "The Hobbit"
    assert await store.find_by_title("it") is None
    assert await store.find_by_title("  ") is None


async def test_find_all_excludes_and_returns_copies(store, make_book):
    a = await store.upsert_by_identity(make_book("A"))
    await store.upsert_by_identity(make_book("B"))

    rest = await store.find_all(exclude_ids=[a.id])
    assert [b.title for b in rest] == ["B"]

    rest[0].title = "Changed"
    assert [b.title for b in await store.find_all()] == ["A", "B"]


async def test_delete_all_returns_removed_ids(store, make_book):
    a = await store.upsert_by_identity(make_book("A"))
    b = await store.upsert_by_identity(make_book("B"))
    got = await store.get_many([b.id, "missing", a.id])
    assert [x.id for x in got] == [b.id, a.id]
    assert sorted(await store.delete_all()) == sorted([a.id, b.id])
    assert await store.count() == 0
