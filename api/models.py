"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LinkMethod(str, Enum):
    """HTTP methods advertised in hypermedia links."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Link(BaseModel):
    """Hypermedia link describing a valid follow-up request."""
    rel: str = Field(..., description="Relation of the target to the current resource")
    href: str = Field(..., description="Absolute URL of the target")
    method: LinkMethod = Field(..., description="HTTP method to use")


class Book(BaseModel):
    """Book record as returned by the API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    read: bool = Field(False, description="Whether the book has been read")


class BookWithLinks(Book):
    """Book record with its hypermedia links."""
    links: List[Link] = Field(default_factory=list, description="Follow-up actions")


class BookListResponse(BaseModel):
    """Response model for the book listing."""
    count: int = Field(..., description="Number of books in this page")
    data: List[BookWithLinks] = Field(..., description="Books in this page")
    links: List[Link] = Field(..., description="Collection-level actions")


class BookCreate(BaseModel):
    """Request body for creating a book."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    read: bool = Field(False, description="Whether the book has been read")


class BookReplace(BaseModel):
    """
    Request body for a full update.

    A missing ``genre`` is removed from the record; a missing ``read`` keeps
    its stored value.
    """
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    read: Optional[bool] = Field(None, description="Whether the book has been read")


class BookPatch(BaseModel):
    """
    Request body for a partial update.

    Only fields present in the request are applied; presence is tracked
    through ``model_fields_set``. Sending ``null`` for ``genre`` or
    ``read`` removes the value from the record.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, description="Book title")
    author: Optional[str] = Field(None, min_length=1, description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    read: Optional[bool] = Field(None, description="Whether the book has been read")

    @field_validator('title', 'author')
    @classmethod
    def validate_required_fields(cls, v):
        """Title and author can be changed but never cleared."""
        if v is None:
            raise ValueError('must not be null.')
        return v


class BookQueryParams(BaseModel):
    """Filter parameters for the book listing."""
    genre: Optional[str] = Field(None, min_length=2, max_length=50, description="Exact genre")
    author: Optional[str] = Field(None, min_length=2, max_length=50, description="Exact author")
    title: Optional[str] = Field(None, description="Case-insensitive title substring")


# Largest skip value MongoDB accepts (signed 64-bit)
MAX_OFFSET = 2 ** 63 - 1


class BookQuery(BaseModel):
    """Validated store query with its pagination window."""
    filter: Dict[str, Any] = Field(default_factory=dict, description="MongoDB filter document")
    limit: int = Field(..., ge=1, description="Maximum number of books to return")
    page: int = Field(..., ge=1, description="Page number")
    offset: int = Field(..., ge=0, le=MAX_OFFSET, description="Number of books to skip")


class SuccessResponse(BaseModel):
    """Plain success envelope."""
    success: bool = Field(True, description="Whether the request succeeded")
    message: Optional[str] = Field(None, description="Human-readable outcome")


class BookEnvelope(SuccessResponse):
    """Success envelope carrying a single book."""
    data: Book = Field(..., description="The book")


class ErrorResponse(BaseModel):
    """Error response model."""
    success: bool = Field(False, description="Always false for errors")
    message: str = Field(..., description="Error message")
    errors: Optional[List[str]] = Field(None, description="Per-field error messages")
    detail: Optional[str] = Field(None, description="Internal detail, only in debug mode")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
