import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from book import Book, UNKNOWN_AUTHOR, UNKNOWN_PUBLISHER
from config import settings

logger = logging.getLogger(__name__)

STOP_WORDS = {"the", "and", "with", "for"}


class ExternalServiceError(Exception):
    """Raised when the IT Book Store API cannot be reached or answers with an error."""


class ITBookService:
    """Looks up books similar to a catalog entry on the IT Book Store API."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.base_url = (base_url or settings.itbook_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.itbook_timeout

    @staticmethod
    def build_query(book: Book) -> str:
        """Pick a search term: author first, then publisher, then a title keyword."""
        if book.author and book.author != UNKNOWN_AUTHOR:
            return book.author.split(" ")[0]
        if book.publisher and book.publisher != UNKNOWN_PUBLISHER:
            return book.publisher
        if book.title:
            words = book.title.split(" ")
            keywords = [w for w in words if len(w) > 3 and w.lower() not in STOP_WORDS]
            return keywords[0] if keywords else words[0]
        return ""

    def search(self, query: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/search/{quote(query)}"
        try:
            resp = self._http_get_with_retry(url, timeout=self.timeout)
        except httpx.RequestError as exc:
            raise ExternalServiceError("IT Book Store unreachable") from exc
        if resp is None:
            raise ExternalServiceError("IT Book Store unreachable")
        if resp.status_code != 200:
            raise ExternalServiceError(f"Failed to fetch similar books (HTTP {resp.status_code})")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ExternalServiceError("IT Book Store returned invalid JSON") from exc
        books = data.get("books") if isinstance(data, dict) else None
        if not isinstance(books, list):
            raise ExternalServiceError("IT Book Store returned an unexpected payload")
        return [item for item in books if isinstance(item, dict)]

    def find_similar(self, book: Book, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        limit = settings.similar_books_limit if limit is None else limit
        query = self.build_query(book)
        if not query:
            return []
        results = self.search(query)
        similar = [item for item in results if item.get("isbn13") != book.id][:limit]
        logger.info("Found %d similar books for %s (query=%r)", len(similar), book.id, query)
        return similar

    def _http_get_with_retry(self, url: str, timeout: float, retries: int = 3,
                             backoff: float = 0.5) -> Optional[httpx.Response]:
        """Retry transient network errors with exponential backoff."""
        for attempt in range(retries):
            try:
                return httpx.get(url, timeout=timeout)
            except httpx.RequestError:
                if attempt < retries - 1:
                    logger.warning("Request to %s failed (attempt %d/%d)", url, attempt + 1, retries)
                    time.sleep(backoff * (2 ** attempt))
                else:
                    raise
        return None
