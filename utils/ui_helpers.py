import os
import json
from typing import Any, Dict, Iterable, List, Optional, Set
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from views import LoanRow, format_due_date

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_book_list(books: List[Any], loaned_ids: Optional[Set[str]] = None,
                    empty_message: str = "No books match the current filters.") -> None:
    """Print books in the current output mode.
    - plain: '[*] id - Title by Author (Publisher, Language) [On Loan]' lines
    - json: JSON array of book records with an on_loan flag
    - rich: Rich table
    """
    loaned_ids = loaned_ids or set()
    mode = get_output_mode()

    if not books:
        print(empty_message)
        return

    if mode == "json":
        payload = [dict(b.to_dict(), on_loan=b.id in loaned_ids) for b in books]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("", no_wrap=True)
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Publisher", style="white")
        table.add_column("Language", style="white")
        table.add_column("Price", style="green")
        table.add_column("Status", style="yellow")
        for b in books:
            table.add_row("*" if b.selected else "", b.id, b.title, b.author, b.publisher,
                          b.language, b.price, "On Loan" if b.id in loaned_ids else "")
        _console.print(table)
    else:
        for b in books:
            marker = "*" if b.selected else " "
            badge = " [On Loan]" if b.id in loaned_ids else ""
            print(f"{marker} {b.id} - {b.title} by {b.author} ({b.publisher}, {b.language}){badge}")


def print_facets(publishers: Iterable[str], languages: Iterable[str]) -> None:
    publishers, languages = list(publishers), list(languages)
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"publishers": publishers, "languages": languages}, ensure_ascii=False))
    elif mode == "rich":
        content = ("[bold]Publishers:[/] " + ", ".join(publishers) + "\n"
                   "[bold]Languages:[/] " + ", ".join(languages))
        _console.print(Panel.fit(content, title="🔎 Filters", border_style="blue"))
    else:
        print(f"Publishers: {', '.join(publishers)}")
        print(f"Languages: {', '.join(languages)}")


def print_loan_rows(rows: List[LoanRow]) -> None:
    mode = get_output_mode()

    if not rows:
        print("No active loans")
        return

    if mode == "json":
        payload = [
            {"borrowerName": r.borrower_name, "bookTitle": r.book_title, "dueDate": r.due_date.isoformat()}
            for r in rows
        ]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📖 Active Loans", show_lines=True, header_style="bold cyan")
        table.add_column("Borrower", style="magenta")
        table.add_column("Book", style="white")
        table.add_column("Due", style="white", no_wrap=True)
        for r in rows:
            table.add_row(r.borrower_name, r.book_title, format_due_date(r.due_date))
        _console.print(table)
    else:
        for r in rows:
            print(f"{r.borrower_name} - {r.book_title} - Due: {format_due_date(r.due_date)}")


def print_similar_books(items: List[Dict[str, Any]]) -> None:
    mode = get_output_mode()

    if not items:
        print("No similar books found.")
        return

    if mode == "json":
        print(json.dumps(items, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="✨ Similar Books", header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Price", style="green")
        for item in items:
            table.add_row(item.get("isbn13", ""), item.get("title", ""), item.get("price", ""))
        _console.print(table)
    else:
        for item in items:
            print(f"{item.get('isbn13', '')} - {item.get('title', '')} {item.get('price', '')}".rstrip())
