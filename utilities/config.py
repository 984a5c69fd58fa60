"""
Configuration management using environment variables.
Handles database, pagination and logging settings with validation and defaults.
"""

from typing import Optional
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceConfig(BaseSettings):
    """
    Configuration class for the book service.
    Uses pydantic BaseSettings for environment variable management.
    """

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://127.0.0.1:27017")
    mongodb_database: str = Field(default="bookAPI")
    mongodb_collection: str = Field(default="books")
    mongodb_timeout_ms: int = Field(default=5000)

    # Pagination
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    @field_validator('mongodb_timeout_ms')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure the server selection timeout is reasonable."""
        if v < 100 or v > 120000:
            raise ValueError('mongodb_timeout_ms must be between 100 and 120000')
        return v

    @field_validator('default_page_size', 'max_page_size')
    @classmethod
    def validate_page_size(cls, v):
        """Ensure page sizes are positive."""
        if v < 1:
            raise ValueError('page sizes must be at least 1')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    @model_validator(mode='after')
    def validate_page_bounds(self):
        """Default page size cannot exceed the maximum."""
        if self.default_page_size > self.max_page_size:
            raise ValueError('default_page_size must not exceed max_page_size')
        return self

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None


# Global configuration instance
config = ServiceConfig()
