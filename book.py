from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Mapping, Optional

UNKNOWN_AUTHOR = "Unknown Author"
UNKNOWN_PUBLISHER = "Unknown Publisher"
DEFAULT_LANGUAGE = "English"

# Fields an edit may replace; id, price, image and selected are never edited.
EDITABLE_FIELDS = ("title", "author", "url", "publisher", "language")


class Book:
    """A single record in the catalog."""

    def __init__(self, id: str, title: str, author: str = UNKNOWN_AUTHOR, publisher: str = UNKNOWN_PUBLISHER,
                 language: str = DEFAULT_LANGUAGE, subtitle: str = "", url: str = "", image: str = "",
                 price: str = "", selected: bool = False) -> None:
        self.id = id
        self.title = title
        self.subtitle = subtitle
        self.author = author
        self.publisher = publisher
        self.language = language
        self.url = url
        self.image = image
        self.price = price
        self.selected = selected

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.id})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, selected={self.selected!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "author": self.author,
            "publisher": self.publisher,
            "language": self.language,
            "url": self.url,
            "image": self.image,
            "price": self.price,
            "selected": self.selected,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Book":
        return normalize_book(data)


def generate_id(existing: Iterable[str] = ()) -> str:
    """Millisecond timestamp id, bumped until it does not clash with ``existing``."""
    taken = set(existing)
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_book(data: Mapping[str, Any], id_factory: Optional[Callable[[], str]] = None) -> Book:
    """Build a Book from a partial record, back-filling every missing field.

    This is the only place sentinel defaults are applied; it is used for
    stored records, seed records and newly added drafts alike. Records written
    before ids were called ``id`` carry the identifier as ``isbn13``.
    """
    book_id = _text(data.get("id")) or _text(data.get("isbn13"))
    if not book_id:
        book_id = id_factory() if id_factory else generate_id()

    return Book(
        id=book_id,
        title=_text(data.get("title")),
        subtitle=_text(data.get("subtitle")),
        author=_text(data.get("author")) or UNKNOWN_AUTHOR,
        publisher=_text(data.get("publisher")) or UNKNOWN_PUBLISHER,
        language=_text(data.get("language")) or DEFAULT_LANGUAGE,
        url=_text(data.get("url")),
        image=_text(data.get("image")),
        price=_text(data.get("price")),
        selected=data.get("selected") is True,
    )
