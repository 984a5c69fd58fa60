"""
Query building for the book listing.

Turns the raw, string-valued query parameters of ``GET /api/books`` into a
MongoDB filter plus a skip/limit window.
"""

import re
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from api.errors import BookValidationError, format_validation_errors
from api.models import MAX_OFFSET, BookQuery, BookQueryParams

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _parse_int(raw: Optional[str]) -> Optional[int]:
    """Parse an integer query value, returning None when it is not one."""
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def resolve_limit(raw: Optional[str], default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """
    Resolve the page size.

    Missing, unparseable and non-positive values fall back to ``default``;
    anything above ``maximum`` is clamped down to it.
    """
    limit = _parse_int(raw)
    if limit is None or limit < 1:
        return default
    return min(limit, maximum)


def resolve_page(raw: Optional[str], limit: int = DEFAULT_LIMIT) -> int:
    """
    Resolve the 1-based page number.

    Anything below 1 becomes 1. Pages whose offset would pass ``MAX_OFFSET``
    are clamped to the last page the store can still skip to.
    """
    page = _parse_int(raw)
    if page is None:
        return 1
    last_page = MAX_OFFSET // limit + 1
    return min(max(page, 1), last_page)


def build_filter(params: BookQueryParams) -> Dict[str, Any]:
    """Build the MongoDB filter document for validated parameters."""
    filter_query: Dict[str, Any] = {}

    if params.genre:
        filter_query["genre"] = params.genre
    if params.author:
        filter_query["author"] = params.author
    if params.title:
        # Literal substring, case-insensitive
        filter_query["title"] = {"$regex": re.escape(params.title), "$options": "i"}

    return filter_query


def build_book_query(
    query_params: Mapping[str, str],
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT
) -> BookQuery:
    """
    Validate listing parameters and build the store query.

    Args:
        query_params: Raw query string values (genre, author, title, limit, page)
        default_limit: Page size used when limit is absent or unusable
        max_limit: Largest page size a caller may request

    Returns:
        BookQuery with filter, limit, page and offset

    Raises:
        BookValidationError: If any filter parameter is invalid. Every
            invalid field is reported, not just the first one.
    """
    try:
        params = BookQueryParams(
            genre=query_params.get("genre"),
            author=query_params.get("author"),
            title=query_params.get("title"),
        )
    except ValidationError as e:
        raise BookValidationError(
            "Validation failed!",
            errors=format_validation_errors(e.errors())
        ) from e

    limit = resolve_limit(query_params.get("limit"), default_limit, max_limit)
    page = resolve_page(query_params.get("page"), limit)

    return BookQuery(
        filter=build_filter(params),
        limit=limit,
        page=page,
        offset=(page - 1) * limit
    )
