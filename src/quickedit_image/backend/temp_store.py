"""
SQLite temp store for uncommitted entity edits.

An uploaded image is not written to its entity straight away: the new field
value waits here, keyed by entity uuid, until the user saves (commit) or it
is discarded.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .utils import ensure_directory

# Default database path
DEFAULT_DB_PATH = Path("data/tempstore.db")


def _serialize_datetime(dt: datetime) -> str:
    """Serialize datetime to ISO format string."""
    return dt.isoformat()


class TempStore:
    """
    Key/value store of pending field values.

    Values are stored per entity as ``{langcode: {field_name: value}}``.
    Thread-safe: SQLite handles concurrent access with WAL mode.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH, collection: str = "quickedit"):
        self.db_path = db_path
        self.collection = collection
        ensure_directory(db_path.parent)
        self._init_db()

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper settings."""
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tempstore (
                    collection TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (collection, key)
                )
            """)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM tempstore WHERE collection = ? AND key = ?",
                (self.collection, key),
            ).fetchone()
            return json.loads(row["value"]) if row else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO tempstore (collection, key, value, updated_at)
                VALUES (?, ?, ?, ?)
            """, (self.collection, key, json.dumps(value), _serialize_datetime(datetime.now(timezone.utc))))

    def delete(self, key: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM tempstore WHERE collection = ? AND key = ?",
                (self.collection, key),
            )
            return cursor.rowcount > 0

    def get_field(self, key: str, langcode: str, field_name: str) -> Optional[Dict[str, Any]]:
        pending = self.get(key) or {}
        return pending.get(langcode, {}).get(field_name)

    def set_field(self, key: str, langcode: str, field_name: str, value: Dict[str, Any]) -> None:
        pending = self.get(key) or {}
        pending.setdefault(langcode, {})[field_name] = value
        self.set(key, pending)

    def delete_field(self, key: str, langcode: str, field_name: str) -> None:
        pending = self.get(key)
        if not pending:
            return
        pending.get(langcode, {}).pop(field_name, None)
        if not pending.get(langcode):
            pending.pop(langcode, None)
        if pending:
            self.set(key, pending)
        else:
            self.delete(key)
