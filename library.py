import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import List, Optional

from book import Book
from database import ConnectionFactory

logger = logging.getLogger(__name__)

_COLUMNS = "isbn, title, author, short_description, page_count"
_DUPLICATE_KEY_ERROR = "UNIQUE constraint failed: books.isbn"


class StorageUnavailableError(Exception):
    """Raised when the book store cannot be reached or is corrupt."""


class BookRepository(ABC):
    """Contract for storing and querying books."""

    @abstractmethod
    def create(self, book: Book) -> bool:
        """Store a new book. Returns False if the ISBN is already taken."""

    @abstractmethod
    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        ...

    @abstractmethod
    def get_all(self) -> List[Book]:
        ...

    @abstractmethod
    def search_by_title(self, term: str) -> List[Book]:
        """Case-insensitive substring match on title."""

    @abstractmethod
    def update(self, book: Book) -> bool:
        """Overwrite the book identified by ``book.isbn``. False if absent."""

    @abstractmethod
    def delete(self, isbn: str) -> bool:
        """Remove a book. False if absent."""

    @abstractmethod
    def count(self) -> int:
        ...


class Library(BookRepository):
    """SQLite-backed book repository.

    Holds no state besides the connection factory; every call opens its own
    connection, so a single instance can be shared across requests.
    """

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self.connection_factory = connection_factory

    # ------------------------- Core operations ------------------------- #
    def create(self, book: Book) -> bool:
        try:
            with self.connection_factory.connection() as conn:
                conn.execute(
                    f"INSERT INTO books ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                    (book.isbn, book.title, book.author, book.short_description, book.page_count),
                )
        except sqlite3.IntegrityError as e:
            if _DUPLICATE_KEY_ERROR not in str(e):
                raise
            # The primary key rejects the second of two concurrent inserts.
            logger.warning(f"Book with ISBN {book.isbn} already exists")
            return False
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("create", e) from e
        logger.info(f"Created book {book.isbn}")
        return True

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        try:
            with self.connection_factory.connection() as conn:
                row = conn.execute(
                    f"SELECT {_COLUMNS} FROM books WHERE isbn = ?", (isbn,)
                ).fetchone()
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("get_by_isbn", e) from e
        return Book.from_dict(row) if row else None

    def get_all(self) -> List[Book]:
        try:
            with self.connection_factory.connection() as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM books ORDER BY rowid"
                ).fetchall()
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("get_all", e) from e
        return [Book.from_dict(row) for row in rows]

    def search_by_title(self, term: str) -> List[Book]:
        try:
            with self.connection_factory.connection() as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM books WHERE instr(casefold(title), casefold(?)) > 0 ORDER BY rowid",
                    (term,),
                ).fetchall()
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("search_by_title", e) from e
        return [Book.from_dict(row) for row in rows]

    def update(self, book: Book) -> bool:
        try:
            with self.connection_factory.connection() as conn:
                cursor = conn.execute(
                    """
                    UPDATE books
                    SET title = ?, author = ?, short_description = ?, page_count = ?
                    WHERE isbn = ?
                    """,
                    (book.title, book.author, book.short_description, book.page_count, book.isbn),
                )
                updated = cursor.rowcount > 0
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("update", e) from e
        if updated:
            logger.info(f"Updated book {book.isbn}")
        else:
            logger.info(f"Update skipped, book {book.isbn} not found")
        return updated

    def delete(self, isbn: str) -> bool:
        try:
            with self.connection_factory.connection() as conn:
                cursor = conn.execute("DELETE FROM books WHERE isbn = ?", (isbn,))
                deleted = cursor.rowcount > 0
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("delete", e) from e
        if deleted:
            logger.info(f"Deleted book {isbn}")
        return deleted

    def count(self) -> int:
        try:
            with self.connection_factory.connection() as conn:
                return conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]
        except (sqlite3.Error, OSError) as e:
            raise self._storage_error("count", e) from e

    @staticmethod
    def _storage_error(operation: str, error: Exception) -> StorageUnavailableError:
        logger.error(f"Storage failure during {operation}: {error}")
        return StorageUnavailableError(f"Book store unavailable during {operation}: {error}")
