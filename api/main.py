"""
FastAPI main application for the Book Catalog API.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config as api_config
from api.database import BookStore, MongoDBManager
from api.errors import (
    BookNotFoundError, BookServiceError, BookValidationError, StoreError,
    format_validation_errors
)
from api.hypermedia import collection_url, shape_book_list
from api.models import (
    BookCreate, BookEnvelope, BookListResponse, BookPatch, BookReplace,
    ErrorResponse, HealthResponse, SuccessResponse
)
from api.queries import build_book_query
from utilities.config import config

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Book Catalog API")

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.mongodb_collection,
        timeout_ms=config.mongodb_timeout_ms
    )
    try:
        await db_manager.connect()
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.book_store = db_manager.book_store()
    logger.info("Database connection established")

    yield

    logger.info("Shutting down Book Catalog API")
    app.state.book_store = None
    await db_manager.disconnect()


def get_book_store(request: Request) -> BookStore:
    """Dependency returning the store handle created during startup."""
    store = getattr(request.app.state, "book_store", None)
    if store is None:
        raise StoreError("Book store not available")
    return store


def _envelope(model, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json", exclude_none=True))


router = APIRouter(prefix=api_config.api_prefix, tags=["Books"])


@router.get("/books", response_model=BookListResponse, response_model_exclude_none=True)
async def list_books(request: Request, store: BookStore = Depends(get_book_store)):
    """
    List books with filtering and pagination.

    - **genre**: Exact genre match (2-50 characters)
    - **author**: Exact author match (2-50 characters)
    - **title**: Case-insensitive title substring
    - **limit**: Books per page (default 10, at most 100)
    - **page**: Page number (starts from 1)
    """
    query = build_book_query(
        request.query_params,
        default_limit=config.default_page_size,
        max_limit=config.max_page_size
    )

    try:
        books = await store.find_books(query)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching books."
        ) from e

    result = shape_book_list(books, collection_url(request, api_config.api_prefix))
    return _envelope(result)


@router.get("/books/{book_id}", response_model=BookEnvelope, response_model_exclude_none=True)
async def get_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """
    Get a single book by ID.

    - **book_id**: MongoDB ObjectId of the book
    """
    try:
        book = await store.get_book(book_id)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the book."
        ) from e

    if not book:
        raise BookNotFoundError(f"Book with id of {book_id} not found")

    return _envelope(BookEnvelope(data=book))


@router.post(
    "/books",
    response_model=BookEnvelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED
)
async def add_book(payload: BookCreate, store: BookStore = Depends(get_book_store)):
    """Create a book. Title and author are required."""
    try:
        book = await store.create_book(payload)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while adding the book."
        ) from e

    logger.info("Book created", book_id=book.id)
    return _envelope(
        BookEnvelope(message="Book added!", data=book),
        status_code=status.HTTP_201_CREATED
    )


@router.put("/books/{book_id}", response_model=BookEnvelope, response_model_exclude_none=True)
async def update_book(
    book_id: str,
    payload: BookReplace,
    store: BookStore = Depends(get_book_store)
):
    """Replace a book. Title and author are required; omitted genre is removed."""
    try:
        book = await store.replace_book(book_id, payload)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while updating the book."
        ) from e

    if not book:
        raise BookNotFoundError("Book not found. Please check the ID.")

    return _envelope(BookEnvelope(message="Book updated successfully!", data=book))


@router.patch("/books/{book_id}", response_model=BookEnvelope, response_model_exclude_none=True)
async def patch_book(
    book_id: str,
    payload: BookPatch,
    store: BookStore = Depends(get_book_store)
):
    """Update only the supplied fields of a book."""
    if not payload.model_fields_set:
        raise BookValidationError("Please provide at least one field to update.")

    try:
        book = await store.patch_book(book_id, payload)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while updating the book."
        ) from e

    if not book:
        raise BookNotFoundError("Book not found. Please check the ID.")

    return _envelope(BookEnvelope(message="Book updated successfully!", data=book))


@router.delete("/books/{book_id}", response_model=SuccessResponse, response_model_exclude_none=True)
async def delete_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Delete a book permanently."""
    try:
        deleted = await store.delete_book(book_id)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while trying to delete the book."
        ) from e

    if not deleted:
        raise BookNotFoundError("Book not found. Please check the ID.")

    logger.info("Book deleted", book_id=book_id)
    return _envelope(SuccessResponse(message=f"Book with ID {book_id} deleted successfully."))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=api_config.api_title,
        description=api_config.api_description,
        version=api_config.api_version,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=api_config.cors_allow_credentials,
        allow_methods=api_config.cors_allow_methods,
        allow_headers=api_config.cors_allow_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request aborted",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=500,
                error=str(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 2)
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        logger.info(
            "Request handled",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2)
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(BookServiceError)
    async def book_service_exception_handler(request: Request, exc: BookServiceError):
        """Handle validation, not-found and store errors."""
        if isinstance(exc, StoreError):
            logger.error("Store error", error=exc.message, path=request.url.path)
            message = "Internal server error"
        else:
            message = exc.message
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=message, errors=exc.errors).model_dump(exclude_none=True)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as 400 with every field error."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(
                message="Validation failed!",
                errors=format_validation_errors(exc.errors())
            ).model_dump(exclude_none=True)
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        if exc.__cause__ is not None:
            logger.error("Request failed", error=str(exc.__cause__), path=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=str(exc.detail)).model_dump(exclude_none=True),
            headers=exc.headers
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                message="Internal server error",
                detail=str(exc) if api_config.debug else None
            ).model_dump(exclude_none=True)
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        db_status = "unhealthy"
        store = getattr(request.app.state, "book_store", None)
        if store is not None:
            health_info = await store.health_check()
            db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=api_config.api_version,
            database_status=db_status
        )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower()
    )
