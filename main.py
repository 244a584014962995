import logging
import sqlite3
import subprocess
import sys
from functools import wraps
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from book import Book
from config import settings
from database import ConnectionFactory, initialize_database
from library import Library, StorageUnavailableError
from validators import BookValidator

logging.basicConfig(level=settings.log_level.upper())

console = Console()

app = typer.Typer(help="Library CLI")


def _get_library() -> Library:
    """Build a Library against the configured store, creating the schema if needed."""
    try:
        factory = ConnectionFactory(settings.database_connection_string, timeout=settings.database_timeout)
        initialize_database(factory)
    except (sqlite3.Error, OSError, ValueError) as e:
        raise StorageUnavailableError(f"Could not open the book store: {e}") from e
    return Library(factory)


def handle_storage_errors(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StorageUnavailableError as e:
            console.print(f"[bold red]Storage unavailable: {escape(str(e))}[/]")
            raise typer.Exit(code=1)
    return wrapper


def print_books(books: List[Book]) -> None:
    if not books:
        print("No books in library.")
        return
    table = Table(title="Books", show_lines=True, header_style="bold cyan")
    table.add_column("ISBN", style="magenta", no_wrap=True)
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Pages", justify="right")
    for b in books:
        table.add_row(b.isbn, b.title, b.author, str(b.page_count))
    console.print(table)


@app.command("init-db")
def cli_init_db():
    """Create the books table if it does not exist."""
    try:
        factory = ConnectionFactory(settings.database_connection_string, timeout=settings.database_timeout)
        initialize_database(factory)
    except (sqlite3.Error, OSError, ValueError) as e:
        console.print(f"[bold red]Database initialization failed: {escape(str(e))}[/]")
        raise typer.Exit(code=1)
    print(f"Database ready at {factory.database_file}")


@app.command("list")
@handle_storage_errors
def cli_list(search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by title")):
    """List all books, optionally filtered by title."""
    lib = _get_library()
    if search is not None and search.strip():
        books = lib.search_by_title(search)
    else:
        books = lib.get_all()
    print_books(books)


@app.command("find")
@handle_storage_errors
def cli_find(isbn: str):
    """Find a book by ISBN and show its details."""
    book = _get_library().get_by_isbn(isbn)
    if book is None:
        print(f"Book with ISBN {isbn} not found.")
        return
    print("Book Found")
    print(f"Title: {book.title}")
    print(f"Author: {book.author}")
    print(f"ISBN: {book.isbn}")
    print(f"Pages: {book.page_count}")
    print(f"Description: {book.short_description}")


@app.command("add")
@handle_storage_errors
def cli_add(
    isbn: str,
    title: str = typer.Option(..., "--title", "-t"),
    author: str = typer.Option(..., "--author", "-a"),
    description: str = typer.Option(..., "--description", "-d"),
    pages: int = typer.Option(..., "--pages", "-p"),
):
    """Add a book to the catalog."""
    book = Book(isbn=isbn, title=title, author=author, short_description=description, page_count=pages)
    failures = BookValidator().validate(book)
    if failures:
        for failure in failures:
            print(f"Error: {failure.field}: {failure.message}")
        raise typer.Exit(code=1)

    if _get_library().create(book):
        print(f"Successfully added: {book.title} by {book.author}")
    else:
        print(f"Book with ISBN {isbn} already exists.")


@app.command("remove")
@handle_storage_errors
def cli_remove(isbn: str):
    """Remove a book by ISBN."""
    if _get_library().delete(isbn):
        print(f"Book with ISBN {isbn} has been removed.")
    else:
        print(f"Book with ISBN {isbn} not found.")


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
):
    """Run the API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    try:
        subprocess.run(args, check=False)
    except KeyboardInterrupt:
        print("Server stopped.")


if __name__ == "__main__":
    app()
