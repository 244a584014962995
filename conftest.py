import pytest
from fastapi.testclient import TestClient

from api import create_app
from book import Book
from config import Settings
from database import ConnectionFactory, initialize_database
from library import Library

TEST_API_KEY = "test-api-key"


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file for every test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def factory(db_file):
    return ConnectionFactory(f"Data Source={db_file}")


@pytest.fixture
def lib(factory):
    initialize_database(factory)
    return Library(factory)


@pytest.fixture
def test_settings(db_file):
    return Settings(
        api_key=TEST_API_KEY,
        database_connection_string=f"Data Source={db_file}",
        cors_origins=["http://example.com"],
    )


@pytest.fixture
def client(test_settings):
    app = create_app(test_settings)
    # Entering the context runs the lifespan, which creates the schema.
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"X-API-Key": TEST_API_KEY}


@pytest.fixture
def effective_go():
    return Book(
        isbn="978-0-13-468599-1",
        title="Effective Go",
        author="A",
        short_description="d",
        page_count=100,
    )
