import logging
from dataclasses import dataclass
from typing import Optional

from database import KeyValueStore
from library import BookRepository
from loans import LoanLedger

logger = logging.getLogger(__name__)


@dataclass
class LibrarySession:
    """The store and the two repositories for one session.

    Built once at start-up and handed to every command explicitly.
    """
    store: KeyValueStore
    books: BookRepository
    loans: LoanLedger

    @classmethod
    def open(cls, db_file: Optional[str] = None, seed_file: Optional[str] = None) -> "LibrarySession":
        store = KeyValueStore(db_file)
        books = BookRepository(store, seed_file=seed_file)
        loans = LoanLedger(store)
        books.load_initial()
        loans.load_initial()
        logger.debug("Session opened on %s with %d books and %d loans",
                     store.db_file, len(books.books), len(loans.loans))
        return cls(store=store, books=books, loans=loans)
