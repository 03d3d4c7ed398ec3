"""Derived views over the book and loan collections.

Everything here is a pure function of its arguments; nothing is cached.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from book import Book
from loans import Loan

FACET_FIELDS = ("publisher", "language")


@dataclass(frozen=True)
class BookFilter:
    """Listing criteria; a criterion left as None or empty matches every book."""
    title: Optional[str] = None
    publisher: Optional[str] = None
    language: Optional[str] = None

    def matches(self, book: Book) -> bool:
        matches_title = not self.title or self.title.lower() in (book.title or "").lower()
        matches_publisher = not self.publisher or book.publisher == self.publisher
        matches_language = not self.language or book.language == self.language
        return matches_title and matches_publisher and matches_language


@dataclass(frozen=True)
class LoanRow:
    borrower_name: str
    book_title: str
    due_date: datetime


def filtered_books(books: Iterable[Book], book_filter: Optional[BookFilter] = None) -> List[Book]:
    if book_filter is None:
        return list(books)
    return [book for book in books if book_filter.matches(book)]


def distinct_facet_values(books: Iterable[Book], field: str) -> List[str]:
    """Sorted unique non-empty values of ``field`` for filter drop-downs."""
    if field not in FACET_FIELDS:
        raise ValueError(f"Unsupported facet field: {field}")
    return sorted({getattr(book, field) for book in books if getattr(book, field)})


def partition_by_loan(books: Sequence[Book], loans: Iterable[Loan]) -> Tuple[List[Book], List[Book]]:
    """Split books into (loaned, available), keeping catalog order."""
    loaned_ids = {loan.book_id for loan in loans}
    loaned = [book for book in books if book.id in loaned_ids]
    available = [book for book in books if book.id not in loaned_ids]
    return loaned, available


def active_loan_display_rows(loans: Iterable[Loan], books: Iterable[Book]) -> List[LoanRow]:
    # Loans whose book was deleted are hidden here but stay in the ledger.
    titles = {book.id: book.title for book in books}
    return [
        LoanRow(borrower_name=loan.borrower_name, book_title=titles[loan.book_id], due_date=loan.due_date)
        for loan in loans
        if loan.book_id in titles
    ]


def format_due_date(value: datetime) -> str:
    """Short US style date in local time, e.g. ``Jan 5, 2025``."""
    local = value.astimezone()
    return f"{local.strftime('%b')} {local.day}, {local.year}"
