"""SQLite connection management — one transaction per context."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path


class DatabaseConnection:
    """Manages SQLite connections with foreign key enforcement.

    Each ``get_connection()`` block is a single unit of work: it either
    commits everything written inside it or rolls all of it back.  Write
    blocks start with ``BEGIN IMMEDIATE`` so only one writer holds the
    database at a time; the merge-or-create checks in the order engine
    rely on that.
    """

    def __init__(self, db_path: str | Path, timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

    @contextmanager
    def get_connection(self, write: bool = True):
        """Yield a connection inside a transaction that commits or rolls back."""
        conn = sqlite3.connect(
            str(self.db_path), timeout=self.timeout, isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()):
        """Run a single read-only statement and return all rows."""
        with self.get_connection(write=False) as conn:
            return conn.execute(sql, params).fetchall()
