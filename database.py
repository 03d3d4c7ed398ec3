import logging
import os
import sqlite3
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)


class StoreReadError(Exception):
    """Raised when persisted text cannot be read from the store."""


class StorePersistError(Exception):
    """Raised when text cannot be written to the store."""


class KeyValueStore:
    """Durable store for raw text blobs keyed by name.

    Backed by a single SQLite table. A connection is opened per operation so
    the store holds no open handles between intents.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or settings.data_file
        self._initialized = False

    def get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the key/value table if it does not exist yet."""
        directory = os.path.dirname(os.path.abspath(self.db_file))
        os.makedirs(directory, exist_ok=True)
        conn = self.get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
        finally:
            conn.close()
        self._initialized = True

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    # ------------------------- Core operations ------------------------- #
    def load(self, key: str) -> Optional[str]:
        """Return the text stored under ``key`` or None when absent."""
        try:
            self._ensure_initialized()
            conn = self.get_connection()
            try:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise StoreReadError(f"Could not read '{key}' from {self.db_file}") from exc
        return row["value"] if row else None

    def save(self, key: str, text: str) -> bool:
        """Store ``text`` under ``key``, replacing any previous value."""
        try:
            self._ensure_initialized()
            conn = self.get_connection()
            try:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, text)
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise StorePersistError(f"Could not write '{key}' to {self.db_file}") from exc
        logger.debug("Saved %d characters under key %s", len(text), key)
        return True
