"""
Tests for configuration and logging setup.
"""

import logging

import pytest
import structlog
from pydantic import ValidationError

from utilities.config import ServiceConfig
from utilities.logger import get_logger, setup_logging


class TestServiceConfig:
    """Test cases for ServiceConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URL", raising=False)
        cfg = ServiceConfig(_env_file=None)
        assert cfg.mongodb_url == "mongodb://127.0.0.1:27017"
        assert cfg.mongodb_database == "bookAPI"
        assert cfg.default_page_size == 10
        assert cfg.max_page_size == 100
        assert cfg.get_log_file_path() is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MONGODB_DATABASE", "library")
        monkeypatch.setenv("MAX_PAGE_SIZE", "25")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        cfg = ServiceConfig(_env_file=None)
        assert cfg.mongodb_database == "library"
        assert cfg.max_page_size == 25
        assert cfg.log_level == "DEBUG"

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            ServiceConfig(_env_file=None, log_format="xml")

    def test_default_page_size_bounded_by_max(self):
        with pytest.raises(ValidationError):
            ServiceConfig(_env_file=None, default_page_size=50, max_page_size=20)

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            ServiceConfig(_env_file=None, max_page_size=0)


def test_setup_logging_writes_file(tmp_path):
    """Test that file logging creates the log directory."""
    log_file = tmp_path / "logs" / "api.log"
    setup_logging(log_level="INFO", log_format="console", log_file=log_file)
    try:
        assert log_file.parent.exists()
        assert get_logger("tests") is not None
    finally:
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler):
                root.removeHandler(handler)
                handler.close()
        structlog.reset_defaults()
