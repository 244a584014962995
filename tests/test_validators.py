import pytest

from book import Book
from validators import (
    DUPLICATE_ISBN_MESSAGE,
    INVALID_ISBN_MESSAGE,
    BookValidator,
    ValidationFailure,
    is_valid_isbn13,
)


def make_book(**overrides):
    data = {
        "isbn": "978-0134190440",
        "title": "The Go Programming Language",
        "author": "Alan Donovan",
        "short_description": "An introduction to Go",
        "page_count": 380,
    }
    data.update(overrides)
    return Book(**data)


@pytest.mark.parametrize("isbn", [
    "978-0134190440",
    "978-0-13-468599-1",
    "979-1-234-56789-0",
])
def test_valid_isbn13(isbn):
    assert is_valid_isbn13(isbn)


@pytest.mark.parametrize("isbn", [
    "12345",
    "9780134190440",        # no hyphen after the first group
    "97-80134190440",       # first group too short
    "978-013419044",        # 12 digits
    "978-01341904401",      # 14 digits
    "978--0134190440",      # empty group
    "978-0134190440-",      # trailing hyphen
    "978-013419044X",       # letters
    "978 0134190440",
    "",
    None,
])
def test_invalid_isbn13(isbn):
    assert not is_valid_isbn13(isbn)


def test_valid_book_has_no_failures():
    validator = BookValidator()
    assert validator.validate(make_book()) == []
    assert validator.is_valid(make_book())


def test_rejects_bad_isbn():
    failures = BookValidator().validate(make_book(isbn="12345"))
    assert failures == [ValidationFailure("isbn", INVALID_ISBN_MESSAGE)]


def test_rejects_empty_title():
    failures = BookValidator().validate(make_book(title=""))
    assert [f.field for f in failures] == ["title"]


def test_whitespace_counts_as_empty():
    failures = BookValidator().validate(make_book(author="   ", short_description="\t"))
    assert [f.field for f in failures] == ["short_description", "author"]


@pytest.mark.parametrize("page_count", [0, -1, None])
def test_rejects_non_positive_page_count(page_count):
    failures = BookValidator().validate(make_book(page_count=page_count))
    assert failures == [ValidationFailure("page_count", "'Page Count' must be greater than '0'.")]


def test_failures_are_ordered():
    book = make_book(isbn="bad", title="", author="", short_description="", page_count=0)
    failures = BookValidator().validate(book)
    assert [f.field for f in failures] == [
        "isbn", "title", "short_description", "page_count", "author",
    ]


def test_failure_to_dict():
    failure = ValidationFailure("isbn", DUPLICATE_ISBN_MESSAGE)
    assert failure.to_dict() == {
        "field": "isbn",
        "message": "A book with this ISBN-13 already exists",
    }


def test_rejects_page_count_too_large_for_store():
    failures = BookValidator().validate(make_book(page_count=2**63))
    assert failures == [ValidationFailure(
        "page_count", "'Page Count' must be less than or equal to '9223372036854775807'."
    )]
    assert BookValidator().validate(make_book(page_count=2**63 - 1)) == []
