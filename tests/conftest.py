"""
Pytest configuration and shared fixtures.
"""

import re
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.database import BookStore, _to_book, _to_object_id, patch_update, replace_update
from api.main import create_app, get_book_store
from api.models import Book, BookCreate, BookPatch, BookQuery, BookReplace


def _matches(doc: Dict[str, Any], filter_query: Dict[str, Any]) -> bool:
    for field, condition in filter_query.items():
        value = doc.get(field)
        if isinstance(condition, dict) and "$regex" in condition:
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if value is None or not re.search(condition["$regex"], value, flags):
                return False
        elif value != condition:
            return False
    return True


class InMemoryBookStore(BookStore):
    """BookStore double keeping documents in a dict, in insertion order."""

    def __init__(self):
        super().__init__(collection=None)
        self.docs: Dict[Any, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def find_books(self, query: BookQuery) -> List[Book]:
        self._check_failure()
        matches = [doc for doc in self.docs.values() if _matches(doc, query.filter)]
        return [_to_book(doc) for doc in matches[query.offset:query.offset + query.limit]]

    async def get_book(self, book_id: str) -> Optional[Book]:
        object_id = _to_object_id(book_id)
        self._check_failure()
        doc = self.docs.get(object_id)
        return _to_book(doc) if doc else None

    def add(self, book: BookCreate) -> Book:
        doc = book.model_dump(exclude_none=True)
        doc["_id"] = ObjectId()
        self.docs[doc["_id"]] = doc
        return _to_book(doc)

    async def create_book(self, book: BookCreate) -> Book:
        self._check_failure()
        return self.add(book)

    async def insert_books(self, books: List[BookCreate]) -> List[str]:
        return [(await self.create_book(book)).id for book in books]

    async def replace_book(self, book_id: str, replacement: BookReplace) -> Optional[Book]:
        return self._apply(book_id, replace_update(replacement))

    async def patch_book(self, book_id: str, patch: BookPatch) -> Optional[Book]:
        return self._apply(book_id, patch_update(patch))

    def _apply(self, book_id: str, update: Dict[str, Dict[str, Any]]) -> Optional[Book]:
        object_id = _to_object_id(book_id)
        self._check_failure()
        doc = self.docs.get(object_id)
        if doc is None:
            return None
        doc.update(update.get("$set", {}))
        for field in update.get("$unset", {}):
            doc.pop(field, None)
        return _to_book(doc)

    async def delete_book(self, book_id: str) -> bool:
        object_id = _to_object_id(book_id)
        self._check_failure()
        return self.docs.pop(object_id, None) is not None

    async def delete_all_books(self) -> int:
        count = len(self.docs)
        self.docs.clear()
        return count

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "books_count": len(self.docs)}


@pytest.fixture
def book_store():
    """Empty in-memory book store."""
    return InMemoryBookStore()


@pytest.fixture
def seeded_store(book_store):
    """In-memory store holding two classic books."""
    for book in (
        BookCreate(title="The Great Gatsby", author="F. Scott Fitzgerald", genre="Classic"),
        BookCreate(title="1984", author="George Orwell", genre="Dystopian"),
    ):
        book_store.add(book)
    return book_store


@pytest.fixture
def app(seeded_store):
    """Application with the store dependency pointed at the in-memory store."""
    application = create_app()
    application.dependency_overrides[get_book_store] = lambda: seeded_store
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def mock_collection():
    """Mock motor collection for BookStore unit tests."""
    collection = MagicMock()
    collection.find_one = AsyncMock()
    collection.insert_one = AsyncMock()
    collection.insert_many = AsyncMock()
    collection.find_one_and_update = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.count_documents = AsyncMock()
    collection.database.command = AsyncMock()
    return collection
