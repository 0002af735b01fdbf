"""SQLite connection management with context manager."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from job_tracker.config import Config
from job_tracker.errors import TransientIOError

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages SQLite connections with foreign key enforcement.

    Every ``get_connection()`` opens an independent connection, so
    concurrent callers serialise on SQLite's own write lock. ``timeout``
    is how long a writer waits for that lock.
    """

    def __init__(self, db_path: str | Path, timeout: float | None = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = Config.DB_TIMEOUT if timeout is None else timeout

    @contextmanager
    def get_connection(self):
        """Yield a connection that auto-commits or rolls back.

        ``sqlite3.OperationalError`` (locked, unreadable, disk errors)
        surfaces as ``TransientIOError``; integrity errors propagate
        unchanged so the repository can map them.
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.OperationalError as e:
            raise TransientIOError(f"Cannot open database: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            logger.warning("Database operation failed: %s", e)
            raise TransientIOError() from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()):
        """Run a single statement and return the fetched rows."""
        with self.get_connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()
