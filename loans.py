from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Set

from book import generate_id
from database import KeyValueStore, StorePersistError, StoreReadError

logger = logging.getLogger(__name__)

LOANS_STORAGE_KEY = "loans"
MIN_LOAN_WEEKS = 1
MAX_LOAN_WEEKS = 4
DAYS_PER_WEEK = 7


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def serialize_instant(value: datetime) -> str:
    """ISO-8601 text that parses back to the same instant."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def deserialize_instant(text: str) -> datetime:
    """Parse ISO-8601 text, including the trailing ``Z`` form, into an aware datetime."""
    if not isinstance(text, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(text).__name__}")
    raw = text.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def compute_due_date(loan_date: datetime, loan_period_weeks: int) -> datetime:
    return loan_date + timedelta(days=loan_period_weeks * DAYS_PER_WEEK)


class Loan:
    """A book handed to a borrower. Loans are never modified after creation."""

    def __init__(self, id: str, borrower_name: str, book_id: str, loan_period_weeks: int,
                 loan_date: datetime, due_date: datetime) -> None:
        self.id = id
        self.borrower_name = borrower_name
        self.book_id = book_id
        self.loan_period_weeks = loan_period_weeks
        self.loan_date = loan_date
        self.due_date = due_date

    def __repr__(self) -> str:  # pragma: no cover
        return f"Loan(id={self.id!r}, borrower_name={self.borrower_name!r}, book_id={self.book_id!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "borrowerName": self.borrower_name,
            "bookId": self.book_id,
            "loanPeriodWeeks": self.loan_period_weeks,
            "loanDate": serialize_instant(self.loan_date),
            "dueDate": serialize_instant(self.due_date),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Loan":
        # Older records used "borrower" and "loanPeriod".
        borrower = data.get("borrowerName", data.get("borrower"))
        period = data.get("loanPeriodWeeks", data.get("loanPeriod"))
        if not data.get("id") or not borrower or not data.get("bookId") or period is None:
            raise ValueError(f"Incomplete loan record: {dict(data)!r}")
        return Loan(
            id=str(data["id"]),
            borrower_name=str(borrower),
            book_id=str(data["bookId"]),
            loan_period_weeks=int(period),
            loan_date=deserialize_instant(data["loanDate"]),
            due_date=deserialize_instant(data["dueDate"]),
        )


class LoanLedger:
    """Append-only collection of loans, persisted as one document."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock
        self.loans: List[Loan] = []

    def load_initial(self) -> List[Loan]:
        """Load stored loans. Missing or unreadable data gives an empty ledger."""
        self.loans = []
        try:
            raw = self.store.load(LOANS_STORAGE_KEY)
        except StoreReadError as exc:
            logger.error("Error loading loans from store: %s", exc)
            return self.list_loans()
        if raw is None:
            return self.list_loans()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Stored loans are not valid JSON: %s", exc)
            return self.list_loans()
        if not isinstance(data, list):
            logger.error("Stored loans are not a list, starting with an empty ledger")
            return self.list_loans()

        for item in data:
            try:
                self.loans.append(Loan.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed loan record: %s", exc)
        return self.list_loans()

    def list_loans(self) -> List[Loan]:
        return list(self.loans)

    def loaned_book_ids(self) -> Set[str]:
        return {loan.book_id for loan in self.loans}

    def available_book_ids(self, all_book_ids: Iterable[str]) -> Set[str]:
        """Ids of books that no loan refers to."""
        return set(all_book_ids) - self.loaned_book_ids()

    def create_loan(self, borrower_name: str, book_id: str, loan_period_weeks: Any) -> Optional[Loan]:
        """Record a new loan, or return None when the request is incomplete."""
        borrower_name = (borrower_name or "").strip()
        book_id = (book_id or "").strip()
        if not borrower_name or not book_id or not loan_period_weeks:
            logger.debug("Rejected loan request with missing fields")
            return None
        try:
            weeks = int(loan_period_weeks)
        except (TypeError, ValueError):
            logger.debug("Rejected loan request with invalid period %r", loan_period_weeks)
            return None
        if not MIN_LOAN_WEEKS <= weeks <= MAX_LOAN_WEEKS:
            logger.debug("Rejected loan request with out-of-range period %d", weeks)
            return None

        loan_date = self.clock()
        loan = Loan(
            id=generate_id(existing.id for existing in self.loans),
            borrower_name=borrower_name,
            book_id=book_id,
            loan_period_weeks=weeks,
            loan_date=loan_date,
            due_date=compute_due_date(loan_date, weeks),
        )
        self.loans.append(loan)
        logger.info("Created loan %s for book %s due %s", loan.id, book_id, loan.due_date.date())
        self.persist()
        return loan

    def persist(self) -> bool:
        """Save all loans. Failures are logged, never raised."""
        try:
            text = json.dumps([loan.to_dict() for loan in self.loans], ensure_ascii=False)
            return self.store.save(LOANS_STORAGE_KEY, text)
        except (StorePersistError, TypeError, ValueError) as exc:
            logger.error("Error saving loans to store: %s", exc)
            return False
