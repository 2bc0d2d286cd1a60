"""
SQLite context storage.

Keeps resumable upload contexts in a local SQLite database file, one row
per task identity.
"""
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from .protocols import ContextStore


class SQLiteContextStore(ContextStore):
    """
    SQLite-based context storage.

    Thread-safe; a single connection is shared behind a lock.

    Example:
        >>> store = SQLiteContextStore("uploads")
        >>> # Creates uploads.ctx file
        >>> store.save(identity.key, ctx.to_json())
    """

    EXTENSION = '.ctx'
    SCHEMA_VERSION = 1

    def __init__(
        self,
        name: Union[str, Path],
        base_path: Optional[Path] = None
    ):
        """
        Initialize SQLite context storage.

        Args:
            name: Store name (without extension) or full path
            base_path: Optional base directory for the store file
        """
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        if isinstance(name, Path) or name.endswith(self.EXTENSION):
            self._path = Path(name)
        elif base_path:
            self._path = base_path / f"{name}{self.EXTENSION}"
        else:
            self._path = Path(f"{name}{self.EXTENSION}")

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @property
    def path(self) -> Path:
        """Get store file path."""
        return self._path

    @contextmanager
    def _get_connection(self):
        """Get thread-safe database connection."""
        with self._lock:
            if self._conn is None:
                self._conn = sqlite3.connect(
                    str(self._path),
                    check_same_thread=False
                )
                self._conn.row_factory = sqlite3.Row
            yield self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS version (
                    version INTEGER PRIMARY KEY
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS contexts (
                    key TEXT PRIMARY KEY,
                    record TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')

            cursor.execute('SELECT version FROM version LIMIT 1')
            if cursor.fetchone() is None:
                cursor.execute(
                    'INSERT INTO version (version) VALUES (?)',
                    (self.SCHEMA_VERSION,)
                )

            conn.commit()

    def load(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT record FROM contexts WHERE key = ?', (key,))
            row = cursor.fetchone()
            return row['record'] if row else None

    def save(self, key: str, record: str) -> None:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT OR REPLACE INTO contexts (key, record, updated_at)
                VALUES (?, ?, ?)
            ''', (key, record, datetime.now().isoformat()))
            conn.commit()

    def delete(self, key: str) -> None:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM contexts WHERE key = ?', (key,))
            conn.commit()

    def all(self) -> Dict[str, str]:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT key, record FROM contexts ORDER BY updated_at')
            return {row['key']: row['record'] for row in cursor.fetchall()}

    def clear(self) -> None:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM contexts')
            conn.commit()

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def delete_file(self) -> None:
        """Delete the store file completely."""
        self.close()
        if self._path.exists():
            self._path.unlink()

    def __enter__(self) -> 'SQLiteContextStore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
