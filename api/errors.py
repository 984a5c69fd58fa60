"""
Error taxonomy for the book API.

Every failure that reaches a client is one of three kinds:

* ``BookValidationError`` - bad caller input, reported as 400 with one
  message per offending field.
* ``BookNotFoundError`` - the referenced id has no record, reported as 404.
* ``StoreError`` - anything that went wrong inside MongoDB or the driver,
  reported as a generic 500. The driver detail is logged, never returned.
"""

from typing import Any, Dict, Iterable, List, Optional

from fastapi import status


class BookServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class BookValidationError(BookServiceError):
    """Caller supplied missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class BookNotFoundError(BookServiceError):
    """No book exists for the requested id."""

    status_code = status.HTTP_404_NOT_FOUND


class StoreError(BookServiceError):
    """The record store failed to complete an operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _field_label(loc: Iterable[Any]) -> str:
    # Drop the "body"/"query" prefix FastAPI puts in front of field paths
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    if not parts:
        return "Request body"
    return ".".join(parts).capitalize()


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """
    Turn pydantic error dicts into human readable messages.

    Args:
        errors: Output of ``ValidationError.errors()`` or
            ``RequestValidationError.errors()``

    Returns:
        One message per error, in the order pydantic reported them
    """
    messages = []
    for error in errors:
        label = _field_label(error.get("loc", ()))
        ctx = error.get("ctx") or {}
        kind = error.get("type")

        if kind == "missing":
            messages.append(f"{label} is required.")
        elif kind == "string_too_short":
            if ctx.get("min_length") == 1:
                messages.append(f"{label} must not be empty.")
            else:
                messages.append(f"{label} must have at least {ctx.get('min_length')} characters.")
        elif kind == "string_too_long":
            messages.append(f"{label} must not exceed {ctx.get('max_length')} characters.")
        elif kind == "string_type":
            messages.append(f"{label} must be a string.")
        elif kind == "bool_type" or kind == "bool_parsing":
            messages.append(f"{label} must be a boolean.")
        elif kind == "extra_forbidden":
            messages.append(f"{label} is not allowed.")
        elif kind == "value_error" and "error" in ctx:
            messages.append(f"{label} {ctx['error']}")
        else:
            messages.append(f"{label}: {error.get('msg')}")
    return messages
