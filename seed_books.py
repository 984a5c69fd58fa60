#!/usr/bin/env python3
"""
Seed the books collection with sample data.

Usage:
    python seed_books.py          # insert the sample books
    python seed_books.py --drop   # remove existing books first
"""

import asyncio
import sys
from typing import List

from api.database import BookStore, MongoDBManager
from api.models import BookCreate
from utilities.config import config
from utilities.logger import setup_logging, get_logger

SAMPLE_BOOKS = [
    BookCreate(title="Book One", author="Author A", genre="Fiction", read=True),
    BookCreate(title="Book Two", author="Author B", genre="Non-Fiction", read=False),
]


async def seed(store: BookStore, books: List[BookCreate], drop: bool = False) -> List[str]:
    """
    Insert sample books.

    Args:
        store: Store to insert into
        books: Books to insert
        drop: Remove every existing book first

    Returns:
        IDs of the inserted books
    """
    logger = get_logger(__name__)
    if drop:
        removed = await store.delete_all_books()
        logger.info("Removed existing books", count=removed)

    ids = await store.insert_books(books)
    logger.info("Sample data seeded", count=len(ids))
    return ids


async def main():
    """Main function."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = get_logger(__name__)

    drop = "--drop" in sys.argv[1:]

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.mongodb_collection,
        timeout_ms=config.mongodb_timeout_ms
    )
    try:
        await db_manager.connect()
        await seed(db_manager.book_store(), SAMPLE_BOOKS, drop=drop)
    except Exception as e:
        logger.error("Could not seed the database", error=str(e))
        sys.exit(1)
    finally:
        await db_manager.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
