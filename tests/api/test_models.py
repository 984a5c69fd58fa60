"""
Unit tests for request and response models.
"""

import pytest
from pydantic import ValidationError

from api.errors import format_validation_errors
from api.models import BookCreate, BookPatch, BookReplace, ErrorResponse


class TestBookCreate:
    """Test cases for BookCreate model."""

    def test_defaults(self):
        book = BookCreate(title="Beloved", author="Toni Morrison")
        assert book.genre is None
        assert book.read is False

    def test_title_and_author_required(self):
        with pytest.raises(ValidationError) as exc_info:
            BookCreate()
        assert format_validation_errors(exc_info.value.errors()) == [
            "Title is required.",
            "Author is required.",
        ]

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", publisher="P")


class TestBookReplace:
    """Test cases for BookReplace model."""

    def test_optional_fields_default_to_absent(self):
        replacement = BookReplace(title="T", author="A")
        assert replacement.genre is None
        assert replacement.read is None


class TestBookPatch:
    """Test cases for BookPatch model."""

    def test_tracks_supplied_fields(self):
        patch = BookPatch(read=True)
        assert patch.model_fields_set == {"read"}

    def test_empty_patch_has_no_fields(self):
        assert BookPatch().model_fields_set == set()

    def test_title_cannot_be_null(self):
        with pytest.raises(ValidationError) as exc_info:
            BookPatch(title=None)
        assert format_validation_errors(exc_info.value.errors()) == ["Title must not be null."]

    def test_author_cannot_be_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            BookPatch(author="")
        assert format_validation_errors(exc_info.value.errors()) == ["Author must not be empty."]

    def test_genre_can_be_null(self):
        patch = BookPatch(genre=None)
        assert patch.model_fields_set == {"genre"}


def test_error_response_shape():
    error = ErrorResponse(message="Validation failed!", errors=["Genre must be a string."])
    assert error.model_dump(exclude_none=True) == {
        "success": False,
        "message": "Validation failed!",
        "errors": ["Genre must be a string."],
    }


def test_format_validation_errors_strips_location_prefix():
    errors = [
        {"type": "missing", "loc": ("body", "title"), "msg": "Field required"},
        {"type": "extra_forbidden", "loc": ("body", "isbn"), "msg": "Extra inputs are not permitted"},
        {"type": "json_invalid", "loc": ("body", 12), "msg": "JSON decode error"},
    ]
    assert format_validation_errors(errors) == [
        "Title is required.",
        "Isbn is not allowed.",
        "12: JSON decode error",
    ]
