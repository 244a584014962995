import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

# Keys accepted for the database location in a "Key=Value;Key=Value" string.
_DATA_SOURCE_KEYS = {"data source", "datasource", "filename"}


def parse_connection_string(value: str) -> str:
    """Resolve a connection string to the path of the SQLite database file.

    Both the key/value form (``Data Source=./library.db;Cache=Shared``) and a
    bare path (``./library.db``) are accepted.
    """
    if value is None or not value.strip():
        raise ValueError("Database connection string is empty.")

    text = value.strip()
    if "=" not in text:
        path = text
    else:
        path = ""
        for part in text.split(";"):
            if "=" not in part:
                continue
            key, _, raw = part.partition("=")
            if key.strip().lower() in _DATA_SOURCE_KEYS:
                path = raw.strip().strip('"').strip("'")
                break

    if not path:
        raise ValueError(f"No data source found in connection string: {value!r}")
    if path == ":memory:":
        raise ValueError("In-memory databases are not supported; use a file path.")
    return path


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


class ConnectionFactory:
    """Hands out a fresh SQLite connection per operation."""

    def __init__(self, connection_string: str, timeout: float = 5.0) -> None:
        self.database_file = parse_connection_string(connection_string)
        self.timeout = timeout

    def create_connection(self) -> sqlite3.Connection:
        directory = os.path.dirname(os.path.abspath(self.database_file))
        os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(self.database_file, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on error, always close."""
        conn = self.create_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def create_tables(factory: ConnectionFactory) -> None:
    """Creates the books table if it does not already exist."""
    with factory.connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS books (
                isbn TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                short_description TEXT NOT NULL,
                page_count INTEGER NOT NULL CHECK (page_count > 0)
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")


def initialize_database(factory: ConnectionFactory) -> None:
    """Initializes the database schema. Safe to call against an existing store."""
    logger.info(f"Initializing database at {os.path.abspath(factory.database_file)}")
    create_tables(factory)
