import re
from dataclasses import dataclass
from typing import Any, List, Optional

# 13 digits overall, a leading group of three, hyphen separated, no empty groups.
ISBN13_PATTERN = re.compile(r"(?=(?:\D*\d){13}$)\d{3}(?:-\d+)+", re.ASCII)

INVALID_ISBN_MESSAGE = "Value was not a valid ISBN-13"
DUPLICATE_ISBN_MESSAGE = "A book with this ISBN-13 already exists"

# Largest value an SQLite INTEGER column can hold.
MAX_PAGE_COUNT = 2**63 - 1


@dataclass(frozen=True)
class ValidationFailure:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


def is_valid_isbn13(value: Optional[str]) -> bool:
    if not value:
        return False
    return ISBN13_PATTERN.fullmatch(value) is not None


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class BookValidator:
    """Field-level rules every book must pass before it is stored.

    ``validate`` never touches storage and returns failures in a fixed order:
    isbn, title, short_description, page_count, author.
    """

    def validate(self, book: Any) -> List[ValidationFailure]:
        failures: List[ValidationFailure] = []

        if not is_valid_isbn13(book.isbn):
            failures.append(ValidationFailure("isbn", INVALID_ISBN_MESSAGE))
        if _is_blank(book.title):
            failures.append(ValidationFailure("title", "'Title' must not be empty."))
        if _is_blank(book.short_description):
            failures.append(
                ValidationFailure("short_description", "'Short Description' must not be empty.")
            )
        if book.page_count is None or book.page_count <= 0:
            failures.append(
                ValidationFailure("page_count", "'Page Count' must be greater than '0'.")
            )
        elif book.page_count > MAX_PAGE_COUNT:
            failures.append(
                ValidationFailure(
                    "page_count", f"'Page Count' must be less than or equal to '{MAX_PAGE_COUNT}'."
                )
            )
        if _is_blank(book.author):
            failures.append(ValidationFailure("author", "'Author' must not be empty."))

        return failures

    def is_valid(self, book: Any) -> bool:
        return not self.validate(book)
