"""SQLite store for persisted save history.

Database Schema:
---------------
```
save_data (
    save_data_key   TEXT PRIMARY KEY,   -- Save slot identifier
    updated_at      TEXT NOT NULL,      -- ISO format timestamp of the last write
    snapshot        TEXT NOT NULL       -- JSON: HistorySnapshot
)
```

Each write is a single ``INSERT OR REPLACE`` inside a transaction, so a
reader sees either the previous snapshot or the new one.
"""

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from .store import SaveStore

logger = structlog.get_logger(__name__)


class SQLiteSaveStore(SaveStore):
    """
    SQLite-based save store.

    Features:
    - One row per save slot
    - Atomic replace on write
    - Safe to call from worker threads (connection guarded by a lock)
    """

    backend_name = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize SQLiteSaveStore.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self.conn: sqlite3.Connection = self._initialize_db()

        logger.info("SQLiteSaveStore initialized", db_path=str(self.db_path))

    def _initialize_db(self) -> sqlite3.Connection:
        """Initialize database schema."""
        # Store I/O runs through asyncio.to_thread, so the connection is used
        # from several worker threads; access is serialized by self._lock.
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS save_data (
                save_data_key TEXT PRIMARY KEY,
                updated_at TEXT NOT NULL,
                snapshot TEXT NOT NULL
            )
        """
        )
        conn.commit()

        logger.debug("Database schema initialized")
        return conn

    def _read_text(self, save_data_key: str) -> str | None:
        with self._lock:
            cursor = self.conn.execute(
                "SELECT snapshot FROM save_data WHERE save_data_key = ?",
                (save_data_key,),
            )
            row = cursor.fetchone()
        return row["snapshot"] if row else None

    def _write_text(self, save_data_key: str, text: str) -> None:
        with self._lock, self.conn:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO save_data (save_data_key, updated_at, snapshot)
                VALUES (?, ?, ?)
                """,
                (save_data_key, datetime.now(timezone.utc).isoformat(), text),
            )

    def _delete(self, save_data_key: str) -> bool:
        with self._lock, self.conn:
            cursor = self.conn.execute(
                "DELETE FROM save_data WHERE save_data_key = ?",
                (save_data_key,),
            )
        return cursor.rowcount > 0

    def list_ids(self) -> list[str]:
        with self._lock:
            cursor = self.conn.execute("SELECT save_data_key FROM save_data ORDER BY save_data_key")
            return [row["save_data_key"] for row in cursor.fetchall()]

    def get_slot_summaries(self) -> list[dict[str, Any]]:
        """
        Get every stored slot with its last write time.

        Returns:
            List of {"save_data_key", "updated_at"} dictionaries
        """
        with self._lock:
            cursor = self.conn.execute(
                "SELECT save_data_key, updated_at FROM save_data ORDER BY updated_at DESC"
            )
            return [dict(row) for row in cursor.fetchall()]

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            logger.info("SQLiteSaveStore closed")
