"""
Hypermedia response shaping for book listings.
"""

from typing import Iterable, List

from fastapi import Request

from api.models import Book, BookListResponse, BookWithLinks, Link, LinkMethod


def collection_url(request: Request, prefix: str = "/api") -> str:
    """Absolute URL of the books collection for the host the client used."""
    base = str(request.base_url).rstrip("/")
    return f"{base}{prefix}/books"


def book_links(books_url: str, book_id: str) -> List[Link]:
    """Links for reading, replacing and deleting a single book."""
    href = f"{books_url}/{book_id}"
    return [
        Link(rel="self", href=href, method=LinkMethod.GET),
        Link(rel="update", href=href, method=LinkMethod.PUT),
        Link(rel="delete", href=href, method=LinkMethod.DELETE),
    ]


def collection_links(books_url: str) -> List[Link]:
    """Links available on the collection itself."""
    return [Link(rel="create", href=books_url, method=LinkMethod.POST)]


def shape_book_list(books: Iterable[Book], books_url: str) -> BookListResponse:
    """
    Attach hypermedia links to a page of books.

    Args:
        books: Books in the order the store returned them
        books_url: Absolute URL of the books collection

    Returns:
        BookListResponse with per-book and collection links
    """
    data = [
        BookWithLinks(**book.model_dump(), links=book_links(books_url, book.id))
        for book in books
    ]
    return BookListResponse(
        count=len(data),
        data=data,
        links=collection_links(books_url)
    )
