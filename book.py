from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class Book:
    """Represents a single book in the catalog."""

    isbn: str
    title: str
    author: str
    short_description: str
    page_count: int

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            isbn=data["isbn"],
            title=data["title"],
            author=data["author"],
            short_description=data["short_description"],
            page_count=data["page_count"],
        )
