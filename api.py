import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel

from book import Book
from config import Settings, settings
from database import ConnectionFactory, initialize_database
from library import BookRepository, Library, StorageUnavailableError
from validators import DUPLICATE_ISBN_MESSAGE, BookValidator, ValidationFailure

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

validator = BookValidator()


# --- API Models ---
class BookModel(BaseModel):
    """Request body for creating or replacing a book.

    Every field is optional here so that missing values are reported by
    ``BookValidator`` as 400 field errors instead of a framework 422.
    """
    isbn: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    short_description: Optional[str] = None
    page_count: Optional[int] = None


class BookResponse(BaseModel):
    isbn: str
    title: str
    author: str
    short_description: str
    page_count: int


class ValidationErrorModel(BaseModel):
    field: str
    message: str


# --- Helpers ---
def _to_book(payload: BookModel) -> Book:
    return Book(
        isbn=payload.isbn,
        title=payload.title,
        author=payload.author,
        short_description=payload.short_description,
        page_count=payload.page_count,
    )


def _validation_response(failures: List[ValidationFailure]) -> JSONResponse:
    return JSONResponse(status_code=400, content=[f.to_dict() for f in failures])


def get_repository(request: Request) -> BookRepository:
    return request.app.state.repository


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(request: Request, api_key: Optional[str] = Security(api_key_header)) -> str:
    """Dependency that checks the X-API-Key header."""
    if api_key and api_key == request.app.state.settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


def create_app(app_settings: Settings = settings, repository: Optional[BookRepository] = None) -> FastAPI:
    """Build the API. Without an explicit repository the SQLite store from settings is used."""
    connection_factory: Optional[ConnectionFactory] = None
    if repository is None:
        connection_factory = ConnectionFactory(
            app_settings.database_connection_string, timeout=app_settings.database_timeout
        )
        repository = Library(connection_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup must fail if the schema cannot be created.
        if connection_factory is not None:
            initialize_database(connection_factory)
        logger.info("Book catalog API ready")
        yield

    app = FastAPI(
        title="Library API",
        description="Manage a catalog of books: create, read, update, delete and search by title.",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.repository = repository

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    # --- Books ---
    @app.post(
        "/books",
        status_code=201,
        response_model=BookResponse,
        responses={400: {"model": List[ValidationErrorModel]}},
        dependencies=[Depends(get_api_key)],
    )
    def create_book(payload: BookModel, response: Response,
                    repo: BookRepository = Depends(get_repository)):
        """Add a new book to the catalog."""
        failures = validator.validate(payload)
        if failures:
            return _validation_response(failures)

        book = _to_book(payload)
        if not repo.create(book):
            return _validation_response([ValidationFailure("isbn", DUPLICATE_ISBN_MESSAGE)])

        response.headers["Location"] = f"/books/{book.isbn}"
        return BookResponse(**book.to_dict())

    @app.put(
        "/books/{isbn}",
        response_model=BookResponse,
        responses={400: {"model": List[ValidationErrorModel]}, 404: {"description": "Book not found"}},
        dependencies=[Depends(get_api_key)],
    )
    def update_book(isbn: str, payload: BookModel,
                    repo: BookRepository = Depends(get_repository)):
        """Replace every field of a book. The ISBN always comes from the path."""
        payload.isbn = isbn
        failures = validator.validate(payload)
        if failures:
            return _validation_response(failures)

        book = _to_book(payload)
        if not repo.update(book):
            raise HTTPException(status_code=404, detail="Book not found.")
        return BookResponse(**book.to_dict())

    @app.get("/books", response_model=List[BookResponse])
    def get_books(search_term: Optional[str] = Query(None, alias="searchTerm"),
                  repo: BookRepository = Depends(get_repository)):
        """List all books, or only those whose title contains ``searchTerm``."""
        if search_term is not None and search_term.strip():
            books = repo.search_by_title(search_term)
        else:
            books = repo.get_all()
        return [BookResponse(**b.to_dict()) for b in books]

    @app.get("/books/{isbn}", response_model=BookResponse, responses={404: {"description": "Book not found"}})
    def get_book(isbn: str, repo: BookRepository = Depends(get_repository)):
        book = repo.get_by_isbn(isbn)
        if book is None:
            raise HTTPException(status_code=404, detail="Book not found.")
        return BookResponse(**book.to_dict())

    @app.delete(
        "/books/{isbn}",
        status_code=204,
        responses={404: {"description": "Book not found"}},
        dependencies=[Depends(get_api_key)],
    )
    def delete_book(isbn: str, repo: BookRepository = Depends(get_repository)):
        if not repo.delete(isbn):
            raise HTTPException(status_code=404, detail="Book not found.")
        return Response(status_code=204)

    # --- Health check ---
    @app.get("/health")
    def health_check(repo: BookRepository = Depends(get_repository)):
        """Health check with a quick round trip to the store."""
        now_iso = datetime.now(timezone.utc).isoformat()
        try:
            total = repo.count()
        except StorageUnavailableError:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "timestamp": now_iso, "total_books": None},
            )
        return {"status": "healthy", "timestamp": now_iso, "total_books": total}

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    def read_root():
        return HTMLResponse(_LANDING_PAGE)

    return app


_LANDING_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Library API</title></head>
<body>
<h1>Library API</h1>
<p>Book catalog service. See the <a href="/docs">interactive documentation</a>
or the raw <a href="/openapi.json">OpenAPI schema</a>.</p>
</body>
</html>
"""

app = create_app()
