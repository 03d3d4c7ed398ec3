import json
import os

import pytest

from book import DEFAULT_LANGUAGE, UNKNOWN_AUTHOR, UNKNOWN_PUBLISHER
from config import DEFAULT_SEED_FILE, settings
from library import BOOKS_STORAGE_KEY, BookRepository


def _selected(repo):
    return [b.id for b in repo.list_books() if b.selected]


# ------------------------- Loading ------------------------- #
def test_load_falls_back_to_seed_when_nothing_stored(books):
    assert books.book_ids() == ["b1", "b2", "b3", "b4"]
    assert _selected(books) == []


def test_loaded_books_always_have_sentinel_fields(books):
    for book in books.list_books():
        assert book.author and book.publisher and book.language
    assert books.find_book("b3").author == UNKNOWN_AUTHOR
    assert books.find_book("b2").language == DEFAULT_LANGUAGE


def test_load_reads_and_normalizes_stored_books(store, seed_file):
    store.save(BOOKS_STORAGE_KEY, json.dumps([
        {"id": "s1", "title": "Stored", "selected": True},
        {"id": "s2", "title": "Other", "author": "Someone", "publisher": "Pub", "language": "German"},
    ]))
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()

    assert repo.book_ids() == ["s1", "s2"]
    stored = repo.find_book("s1")
    assert stored.author == UNKNOWN_AUTHOR
    assert stored.publisher == UNKNOWN_PUBLISHER
    assert repo.selected_id == "s1"


@pytest.mark.parametrize("raw", ["{not json", '{"id": "1"}', '["just a string"]'])
def test_unusable_stored_books_fall_back_to_seed(store, seed_file, raw):
    store.save(BOOKS_STORAGE_KEY, raw)
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    assert repo.book_ids() == ["b1", "b2", "b3", "b4"]


def test_store_read_error_falls_back_to_seed(failing_store, seed_file):
    repo = BookRepository(failing_store, seed_file=seed_file)
    repo.load_initial()
    assert len(repo.list_books()) == 4


def test_missing_seed_file_gives_empty_catalog(store, tmp_path):
    repo = BookRepository(store, seed_file=str(tmp_path / "missing.json"))
    assert repo.load_initial() == []


def test_load_uses_bundled_seed_dataset(store):
    assert os.path.isfile(DEFAULT_SEED_FILE)
    repo = BookRepository(store)
    loaded = repo.load_initial()

    assert loaded
    assert "9781449373320" in repo.book_ids()
    for book in loaded:
        assert book.id and book.author and book.publisher and book.language
        assert book.selected is False


def test_duplicate_ids_are_reassigned_on_load(store, seed_file):
    store.save(BOOKS_STORAGE_KEY, json.dumps([
        {"id": "dup", "title": "First"},
        {"id": "dup", "title": "Second"},
    ]))
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    ids = repo.book_ids()
    assert ids[0] == "dup"
    assert len(set(ids)) == 2
    assert repo.find_book("dup").title == "First"


def test_only_first_stored_selection_survives_load(store, seed_file):
    store.save(BOOKS_STORAGE_KEY, json.dumps([
        {"id": "1", "title": "A", "selected": True},
        {"id": "2", "title": "B", "selected": True},
    ]))
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    assert _selected(repo) == ["1"]


# ------------------------- Add ------------------------- #
def test_add_assigns_id_and_placeholders(books):
    book = books.add({"title": "Hyperion", "author": "Dan Simmons", "url": "https://example.com/h",
                      "publisher": "Doubleday", "language": "English"})
    assert book.id not in {"b1", "b2", "b3", "b4"}
    assert book.price == settings.placeholder_price
    assert book.image == settings.placeholder_image
    assert book.subtitle == ""
    assert book.selected is False
    assert books.book_ids()[-1] == book.id


def test_add_applies_sentinels_and_ignores_draft_identity(books):
    book = books.add({"id": "b1", "isbn13": "b2", "title": "Draft", "price": "$99", "selected": True})
    assert book.id not in {"b1", "b2"}
    assert book.price == settings.placeholder_price
    assert book.selected is False
    assert (book.author, book.publisher, book.language) == (UNKNOWN_AUTHOR, UNKNOWN_PUBLISHER, DEFAULT_LANGUAGE)


def test_add_persists(books, store, seed_file):
    book = books.add({"title": "Persisted"})
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    assert repo.find_book(book.id).title == "Persisted"
    assert len(repo.list_books()) == 5


# ------------------------- Select ------------------------- #
def test_select_sets_single_selection(books):
    assert books.select("b2") == "b2"
    assert _selected(books) == ["b2"]
    assert books.select("b3") == "b3"
    assert _selected(books) == ["b3"]


def test_select_same_id_twice_clears_selection(books):
    books.select("b1")
    assert books.select("b1") is None
    assert _selected(books) == []


def test_at_most_one_selected_after_any_sequence(books):
    for book_id in ["b1", "b2", "b2", "b4", "b3", "b1", "missing", "b4"]:
        books.select(book_id)
        assert len(_selected(books)) <= 1


def test_select_unknown_id_clears_selection(books):
    books.select("b1")
    assert books.select("nope") is None
    assert _selected(books) == []


def test_selection_is_persisted(books, store, seed_file):
    books.select("b4")
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    assert repo.selected_id == "b4"


# ------------------------- Update ------------------------- #
def test_update_is_noop_for_non_selected_book(books):
    books.select("b1")
    assert books.update("b2", {"title": "Changed"}) is None
    assert books.find_book("b2").title == "Foundation"


def test_update_is_noop_without_selection(books):
    assert books.update("b1", {"title": "Changed"}) is None
    assert books.find_book("b1").title == "Dune Messiah"


def test_update_replaces_editable_fields_only(books):
    books.select("b1")
    before = books.find_book("b1").to_dict()
    updated = books.update("b1", {
        "title": "Children of Dune", "author": "F. Herbert", "url": "https://example.com/new",
        "publisher": "Putnam", "language": "French",
        "id": "hijack", "price": "$0", "image": "x", "selected": False,
    })
    assert updated.title == "Children of Dune"
    assert updated.author == "F. Herbert"
    assert updated.url == "https://example.com/new"
    assert updated.publisher == "Putnam"
    assert updated.language == "French"
    assert updated.id == before["id"]
    assert updated.price == before["price"]
    assert updated.image == before["image"]
    assert updated.selected is True


def test_update_keeps_sentinels(books):
    books.select("b1")
    updated = books.update("b1", {"author": "", "publisher": None})
    assert updated.author == UNKNOWN_AUTHOR
    assert updated.publisher == UNKNOWN_PUBLISHER
    assert updated.title == "Dune Messiah"


def test_update_persists(books, store, seed_file):
    books.select("b2")
    books.update("b2", {"title": "Foundation and Empire"})
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    assert repo.find_book("b2").title == "Foundation and Empire"


# ------------------------- Remove ------------------------- #
def test_remove_is_noop_for_non_selected_book(books):
    books.select("b1")
    assert books.remove("b2") is False
    assert "b2" in books.book_ids()
    assert books.selected_id == "b1"


def test_remove_selected_book(books, store, seed_file):
    books.select("b3")
    assert books.remove("b3") is True
    assert "b3" not in books.book_ids()
    assert books.selected_id is None

    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    assert repo.book_ids() == ["b1", "b2", "b4"]


# ------------------------- Persistence failures ------------------------- #
def test_persist_failure_keeps_memory_state(failing_store, seed_file):
    repo = BookRepository(failing_store, seed_file=seed_file)
    repo.load_initial()

    book = repo.add({"title": "Only in memory"})
    assert repo.find_book(book.id) is book
    assert len(repo.list_books()) == 5

    assert repo.select(book.id) == book.id
    assert repo.persist() is False
    assert repo.selected_id == book.id
