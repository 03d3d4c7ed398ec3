import json

import pytest

from database import KeyValueStore, StorePersistError, StoreReadError
from library import BookRepository
from loans import LoanLedger

SEED_BOOKS = [
    {"isbn13": "b1", "title": "Dune Messiah", "author": "Frank Herbert", "publisher": "Ace",
     "language": "English", "price": "$9.99", "url": "https://example.com/b1"},
    {"isbn13": "b2", "title": "Foundation", "author": "Isaac Asimov", "publisher": "Gnome Press",
     "url": "https://example.com/b2"},
    {"isbn13": "b3", "title": "Cien años de soledad", "publisher": "Sudamericana", "language": "Spanish",
     "url": "https://example.com/b3"},
    {"isbn13": "b4", "title": "Dune", "author": "Frank Herbert", "publisher": "Ace", "language": "English",
     "url": "https://example.com/b4"},
]


class FailingStore(KeyValueStore):
    """Store whose every read and write fails, as with a full or missing disk."""

    def load(self, key):
        raise StoreReadError(f"cannot read {key}")

    def save(self, key, text):
        raise StorePersistError(f"quota exceeded for {key}")


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # The CLI stores its output mode in the environment
    monkeypatch.delenv("LIB_CLI_OUTPUT", raising=False)


@pytest.fixture
def db_file(tmp_path, request):
    # Each test gets its own database file
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed_books.json"
    path.write_text(json.dumps(SEED_BOOKS), encoding="utf-8")
    return str(path)


@pytest.fixture
def store(db_file):
    return KeyValueStore(db_file)


@pytest.fixture
def failing_store(db_file):
    return FailingStore(db_file)


@pytest.fixture
def books(store, seed_file):
    repo = BookRepository(store, seed_file=seed_file)
    repo.load_initial()
    return repo


@pytest.fixture
def ledger(store):
    ledger = LoanLedger(store)
    ledger.load_initial()
    return ledger
