import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from book import Book, EDITABLE_FIELDS, generate_id, normalize_book
from config import settings
from database import KeyValueStore, StorePersistError, StoreReadError

logger = logging.getLogger(__name__)

BOOKS_STORAGE_KEY = "books"


class BookRepository:
    """Owns the book collection, its single selection and its persistence."""

    def __init__(self, store: KeyValueStore, seed_file: Optional[str] = None) -> None:
        self.store = store
        self.seed_file = seed_file or settings.seed_file
        self.books: List[Book] = []

    # ------------------------- Loading ------------------------- #
    def load_initial(self) -> List[Book]:
        """Load stored books, falling back to the seed dataset. Never raises."""
        records = self._read_stored_records()
        if records is None:
            records = self._read_seed_records()
            logger.info("Loaded %d seed books from %s", len(records), self.seed_file)
        self.books = self._normalize_all(records)
        return self.list_books()

    def _read_stored_records(self) -> Optional[List[Dict[str, Any]]]:
        try:
            raw = self.store.load(BOOKS_STORAGE_KEY)
        except StoreReadError as exc:
            logger.error("Error loading books from store: %s", exc)
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Stored books are not valid JSON: %s", exc)
            return None
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            logger.error("Stored books are not a list of records, using seed data")
            return None
        return data

    def _read_seed_records(self) -> List[Dict[str, Any]]:
        try:
            with open(self.seed_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read seed dataset %s: %s", self.seed_file, exc)
            return []
        # Seed selection state is never honoured.
        return [dict(item, selected=False) for item in data if isinstance(item, dict)]

    def _normalize_all(self, records: List[Dict[str, Any]]) -> List[Book]:
        books: List[Book] = []
        seen = set()
        selected_seen = False
        for record in records:
            book = normalize_book(record, id_factory=lambda: generate_id(seen))
            if book.id in seen:
                new_id = generate_id(seen)
                logger.warning("Duplicate book id %s re-assigned to %s", book.id, new_id)
                book.id = new_id
            if book.selected:
                if selected_seen:
                    book.selected = False
                selected_seen = True
            seen.add(book.id)
            books.append(book)
        return books

    # ------------------------- Read helpers ------------------------- #
    def list_books(self) -> List[Book]:
        return list(self.books)

    def find_book(self, book_id: str) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def book_ids(self) -> List[str]:
        return [book.id for book in self.books]

    @property
    def selected_id(self) -> Optional[str]:
        book = self.selected_book()
        return book.id if book else None

    def selected_book(self) -> Optional[Book]:
        for book in self.books:
            if book.selected:
                return book
        return None

    # ------------------------- Mutations ------------------------- #
    def add(self, draft: Mapping[str, Any]) -> Book:
        """Append a new book built from form input.

        Required fields are checked by the form, not here. The id, price and
        image are always assigned by the repository.
        """
        record = dict(draft)
        record.update(
            id=generate_id(self.book_ids()),
            price=settings.placeholder_price,
            image=settings.placeholder_image,
            selected=False,
        )
        record.pop("isbn13", None)
        book = normalize_book(record)
        self.books.append(book)
        logger.info("Added book %s (%s)", book.id, book.title)
        self.persist()
        return book

    def update(self, book_id: str, patch: Mapping[str, Any]) -> Optional[Book]:
        """Replace the editable fields of the selected book.

        Returns None without touching anything when ``book_id`` is not the
        selected book.
        """
        book = self.find_book(book_id)
        if book is None or not book.selected:
            logger.debug("Ignoring update for non-selected book %s", book_id)
            return None

        record = book.to_dict()
        for field in EDITABLE_FIELDS:
            if field in patch:
                record[field] = patch[field]
        edited = normalize_book(record)
        for field in EDITABLE_FIELDS:
            setattr(book, field, getattr(edited, field))

        logger.info("Updated book %s", book.id)
        self.persist()
        return book

    def remove(self, book_id: str) -> bool:
        """Delete the selected book. Loans referring to it are left alone."""
        book = self.find_book(book_id)
        if book is None or not book.selected:
            logger.debug("Ignoring delete for non-selected book %s", book_id)
            return False
        self.books = [b for b in self.books if b.id != book_id]
        logger.info("Removed book %s", book_id)
        self.persist()
        return True

    def select(self, book_id: str) -> Optional[str]:
        """Toggle selection of ``book_id`` and clear every other selection."""
        for book in self.books:
            book.selected = (not book.selected) if book.id == book_id else False
        self.persist()
        return self.selected_id

    # ------------------------- Persistence ------------------------- #
    def persist(self) -> bool:
        """Save the full collection. Failures are logged, never raised."""
        try:
            text = json.dumps([book.to_dict() for book in self.books], ensure_ascii=False)
            return self.store.save(BOOKS_STORAGE_KEY, text)
        except (StorePersistError, TypeError, ValueError) as exc:
            logger.error("Error saving books to store: %s", exc)
            return False
