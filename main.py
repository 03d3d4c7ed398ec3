import logging
from typing import Optional

import typer

from config import settings
from itbook_service import ExternalServiceError, ITBookService
from session import LibrarySession
from utils.ui_helpers import (
    print_book_list,
    print_facets,
    print_loan_rows,
    print_similar_books,
    set_output_mode,
)
from utils.validators import BookFormValidator, LANGUAGE_CHOICES
from views import (
    BookFilter,
    active_loan_display_rows,
    distinct_facet_values,
    filtered_books,
    format_due_date,
    partition_by_loan,
)

logger = logging.getLogger(__name__)

app = typer.Typer(help=f"{settings.app_name} CLI")


def configure_logging(level_name: str) -> None:
    level = getattr(logging, (level_name or "WARNING").upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")


def _session(ctx: typer.Context) -> LibrarySession:
    return ctx.obj


def _print_errors(errors: dict) -> None:
    for hint in errors.values():
        print(f"Error: {hint}")


@app.callback()
def _global_options(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(None, "--db", help="SQLite file holding the catalog and loans"),
    seed: Optional[str] = typer.Option(None, "--seed", help="Seed dataset used when no catalog is stored"),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
):
    """Global options (storage location, output mode)."""
    configure_logging(settings.log_level)
    if output:
        set_output_mode(output)
    ctx.obj = LibrarySession.open(db_file=db, seed_file=seed)


@app.command("list")
def cli_list(
    ctx: typer.Context,
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Case-insensitive title search"),
    publisher: Optional[str] = typer.Option(None, "--publisher", "-p", help="Exact publisher"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Exact language"),
):
    """List books, optionally filtered. The selected book is marked with '*'."""
    session = _session(ctx)
    books = filtered_books(session.books.list_books(), BookFilter(title, publisher, language))
    print_book_list(books, session.loans.loaned_book_ids())


@app.command("facets")
def cli_facets(ctx: typer.Context):
    """Show the publishers and languages available as filters."""
    books = _session(ctx).books.list_books()
    print_facets(distinct_facet_values(books, "publisher"), distinct_facet_values(books, "language"))


@app.command("add")
def cli_add(
    ctx: typer.Context,
    title: Optional[str] = typer.Option(None, "--title", help="Book title"),
    author: Optional[str] = typer.Option(None, "--author", help="Author"),
    url: Optional[str] = typer.Option(None, "--url", help="Book cover URL"),
    publisher: Optional[str] = typer.Option(None, "--publisher", help="Publisher"),
    language: Optional[str] = typer.Option(None, "--language", help=f"One of: {', '.join(LANGUAGE_CHOICES)}"),
    subtitle: Optional[str] = typer.Option(None, "--subtitle", help="Subtitle"),
):
    """Add a new book to the catalog."""
    draft = {"title": title, "author": author, "url": url, "publisher": publisher,
             "language": language, "subtitle": subtitle}
    errors = BookFormValidator.validate(draft)
    if errors:
        _print_errors(errors)
        raise typer.Exit(code=1)
    book = _session(ctx).books.add(draft)
    print(f"Successfully added: {book.title} by {book.author} (ID: {book.id})")


@app.command("select")
def cli_select(ctx: typer.Context, book_id: str = typer.Argument(..., help="Book ID")):
    """Select a book, or clear the selection when it is already selected."""
    books = _session(ctx).books
    selected = books.select(book_id)
    if selected:
        print(f"Selected: {books.find_book(selected).title}")
    else:
        print("Selection cleared.")


@app.command("edit")
def cli_edit(
    ctx: typer.Context,
    title: Optional[str] = typer.Option(None, "--title", help="Book title"),
    author: Optional[str] = typer.Option(None, "--author", help="Author"),
    url: Optional[str] = typer.Option(None, "--url", help="Book cover URL"),
    publisher: Optional[str] = typer.Option(None, "--publisher", help="Publisher"),
    language: Optional[str] = typer.Option(None, "--language", help=f"One of: {', '.join(LANGUAGE_CHOICES)}"),
):
    """Edit the selected book."""
    books = _session(ctx).books
    selected = books.selected_book()
    if selected is None:
        print("No book selected.")
        raise typer.Exit(code=1)

    patch = {k: v for k, v in {"title": title, "author": author, "url": url,
                               "publisher": publisher, "language": language}.items() if v is not None}
    if not patch:
        print("Nothing to update. Provide at least one field.")
        raise typer.Exit(code=1)
    errors = BookFormValidator.validate(dict(selected.to_dict(), **patch))
    if errors:
        _print_errors(errors)
        raise typer.Exit(code=1)

    book = books.update(selected.id, patch)
    print(f"Updated: {book.title} by {book.author}")


@app.command("delete")
def cli_delete(ctx: typer.Context):
    """Delete the selected book."""
    books = _session(ctx).books
    selected = books.selected_book()
    if selected is None:
        print("No book selected.")
        raise typer.Exit(code=1)
    books.remove(selected.id)
    print(f"Deleted: {selected.title}")


@app.command("loan")
def cli_loan(
    ctx: typer.Context,
    borrower: str = typer.Argument(..., help="Borrower name"),
    book_id: str = typer.Argument(..., help="ID of an available book"),
    weeks: int = typer.Option(1, "--weeks", "-w", min=1, max=4, help="Loan period in weeks"),
):
    """Lend an available book."""
    session = _session(ctx)
    available = session.loans.available_book_ids(session.books.book_ids())
    if book_id not in available:
        print(f"Book {book_id} is not available for loan.")
        raise typer.Exit(code=1)
    loan = session.loans.create_loan(borrower, book_id, weeks)
    if loan is None:
        print("Loan not created: borrower, book and loan period are required.")
        raise typer.Exit(code=1)
    title = session.books.find_book(book_id).title
    print(f"Loan created: {loan.borrower_name} - {title} - Due: {format_due_date(loan.due_date)}")


@app.command("loans")
def cli_loans(ctx: typer.Context):
    """List active loans with their due dates."""
    session = _session(ctx)
    print_loan_rows(active_loan_display_rows(session.loans.list_loans(), session.books.list_books()))


@app.command("available")
def cli_available(ctx: typer.Context):
    """List books that can be lent."""
    session = _session(ctx)
    _, available = partition_by_loan(session.books.list_books(), session.loans.list_loans())
    print_book_list(available, empty_message="All books are on loan.")


@app.command("similar")
def cli_similar(ctx: typer.Context, book_id: Optional[str] = typer.Argument(None, help="Book ID (default: selected)")):
    """Look up similar books on the IT Book Store."""
    books = _session(ctx).books
    book = books.find_book(book_id) if book_id else books.selected_book()
    if book is None:
        print(f"Book {book_id} not found." if book_id else "No book selected.")
        raise typer.Exit(code=1)
    try:
        similar = ITBookService().find_similar(book)
    except ExternalServiceError as e:
        logger.error("Error fetching similar books: %s", e)
        print("Failed to load similar books")
        raise typer.Exit(code=1)
    print_similar_books(similar)


if __name__ == "__main__":
    app()
