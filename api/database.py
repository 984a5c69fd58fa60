"""
MongoDB access for the book API.

``MongoDBManager`` owns the client connection and indexes; ``BookStore``
wraps the books collection and exposes the record operations used by the
HTTP handlers. Driver failures are logged here and re-raised as
``StoreError``.
"""

from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError

from api.errors import StoreError
from api.models import Book, BookCreate, BookPatch, BookQuery, BookReplace

logger = structlog.get_logger(__name__)


class MongoDBManager:
    """
    Async MongoDB connection manager.
    Handles connection, ping and index creation for the books collection.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        collection_name: str = "books",
        timeout_ms: int = 5000
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the books collection
            timeout_ms: Server selection timeout passed to the driver
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                serverSelectionTimeoutMS=self.timeout_ms
            )
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create indexes for the exact-match listing filters."""
        try:
            await self.collection.create_index("genre")
            await self.collection.create_index("author")
            logger.info("Successfully created MongoDB indexes")

        except PyMongoError as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    def book_store(self) -> "BookStore":
        """Build a BookStore bound to the managed collection."""
        if self.collection is None:
            raise RuntimeError("MongoDBManager.connect() must be awaited first")
        return BookStore(self.collection)


def _to_object_id(book_id: str) -> ObjectId:
    try:
        return ObjectId(book_id)
    except (InvalidId, TypeError) as e:
        logger.error("Malformed book ID", book_id=book_id, error=str(e))
        raise StoreError(f"Malformed book ID: {book_id}") from e


def _to_book(doc: Dict[str, Any]) -> Book:
    return Book(
        id=str(doc["_id"]),
        title=doc["title"],
        author=doc["author"],
        genre=doc.get("genre"),
        read=doc.get("read", False),
    )


def patch_update(patch: BookPatch) -> Dict[str, Dict[str, Any]]:
    """
    Build a MongoDB update document from the fields present in a patch.

    Fields sent as null are removed from the record.
    """
    supplied = patch.model_dump(include=patch.model_fields_set)
    update: Dict[str, Dict[str, Any]] = {}

    to_set = {k: v for k, v in supplied.items() if v is not None}
    to_unset = {k: "" for k, v in supplied.items() if v is None}
    if to_set:
        update["$set"] = to_set
    if to_unset:
        update["$unset"] = to_unset
    return update


def replace_update(replacement: BookReplace) -> Dict[str, Dict[str, Any]]:
    """Build the update document for a full replacement."""
    update: Dict[str, Dict[str, Any]] = {
        "$set": {
            "title": replacement.title,
            "author": replacement.author,
        }
    }
    if replacement.read is not None:
        update["$set"]["read"] = replacement.read
    if replacement.genre is not None:
        update["$set"]["genre"] = replacement.genre
    else:
        update["$unset"] = {"genre": ""}
    return update


class BookStore:
    """Record operations on the books collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def find_books(self, query: BookQuery) -> List[Book]:
        """
        Get one page of books matching a filter.

        Args:
            query: Validated filter and pagination window

        Returns:
            Books in insertion order
        """
        try:
            cursor = (
                self.collection.find(query.filter)
                .sort("_id", 1)
                .skip(query.offset)
                .limit(query.limit)
            )
            docs = await cursor.to_list(length=query.limit)
            return [_to_book(doc) for doc in docs]

        except (PyMongoError, OverflowError) as e:
            logger.error("Failed to get books", error=str(e), filter=query.filter)
            raise StoreError("Failed to get books") from e

    async def get_book(self, book_id: str) -> Optional[Book]:
        """
        Get a single book by ID.

        Returns:
            Book if found, None otherwise

        Raises:
            StoreError: If the ID is malformed or the query fails
        """
        object_id = _to_object_id(book_id)
        try:
            doc = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise StoreError("Failed to get book") from e

        return _to_book(doc) if doc else None

    async def create_book(self, book: BookCreate) -> Book:
        """Insert a new book and return it with its assigned ID."""
        doc = book.model_dump(exclude_none=True)
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.error("Failed to insert book", title=book.title, error=str(e))
            raise StoreError("Failed to insert book") from e

        doc["_id"] = result.inserted_id
        logger.debug("Inserted book", book_id=str(result.inserted_id), title=book.title)
        return _to_book(doc)

    async def insert_books(self, books: List[BookCreate]) -> List[str]:
        """Insert several books at once, returning their IDs."""
        if not books:
            return []
        docs = [book.model_dump(exclude_none=True) for book in books]
        try:
            result = await self.collection.insert_many(docs)
        except PyMongoError as e:
            logger.error("Batch insert failed", total=len(docs), error=str(e))
            raise StoreError("Failed to insert books") from e

        logger.info("Batch insert completed", total=len(result.inserted_ids))
        return [str(inserted_id) for inserted_id in result.inserted_ids]

    async def replace_book(self, book_id: str, replacement: BookReplace) -> Optional[Book]:
        """
        Replace every mutable field of a book.

        Returns:
            The book after the update, or None if it does not exist
        """
        return await self._update(book_id, replace_update(replacement))

    async def patch_book(self, book_id: str, patch: BookPatch) -> Optional[Book]:
        """
        Apply a partial update to a book.

        Returns:
            The book after the update, or None if it does not exist
        """
        return await self._update(book_id, patch_update(patch))

    async def _update(self, book_id: str, update: Dict[str, Dict[str, Any]]) -> Optional[Book]:
        object_id = _to_object_id(book_id)
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": object_id},
                update,
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise StoreError("Failed to update book") from e

        if doc is None:
            logger.warning("Book not found for update", book_id=book_id)
            return None
        return _to_book(doc)

    async def delete_book(self, book_id: str) -> bool:
        """
        Delete a book.

        Returns:
            bool: True if deleted, False if not found
        """
        object_id = _to_object_id(book_id)
        try:
            result = await self.collection.delete_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise StoreError("Failed to delete book") from e

        if result.deleted_count == 0:
            logger.warning("Book not found for deletion", book_id=book_id)
            return False
        return True

    async def delete_all_books(self) -> int:
        """Remove every book, returning how many were deleted."""
        try:
            result = await self.collection.delete_many({})
        except PyMongoError as e:
            logger.error("Failed to delete books", error=str(e))
            raise StoreError("Failed to delete books") from e
        return result.deleted_count

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.collection.database.command("ping")
            books_count = await self.collection.count_documents({})

            return {
                "status": "healthy",
                "books_collection": "accessible",
                "books_count": books_count
            }
        except PyMongoError as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
